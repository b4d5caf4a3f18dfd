"""
aggregation.py - Profile Sample Aggregation
============================================
Reads per-function timing samples from a profile CSV and folds them into
per-(module, function) totals.
"""

import logging
import re
from collections import defaultdict
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

import pandas as pd

from config import Config
from models import AggregateKey, Profile, Sample
from utils import CsvFormatError, InputNotFoundError, check_readable


logger = logging.getLogger(__name__)

_DIGITS = re.compile(r'[0-9]+')


def import_profile(samples: Iterable[Sample], multi_module: bool = True) -> Profile:
    """Sum sample durations per AggregateKey.

    Duplicate keys are accumulated, so the result does not depend on the
    order of ``samples``.
    """
    durations = defaultdict(int)
    count = 0

    for sample in samples:
        durations[sample.key] += sample.duration_us
        count += 1

    logger.debug(f"Aggregated {count} samples into {len(durations)} buckets")
    return Profile(durations=durations, multi_module=multi_module)


def read_header(path: Union[str, Path]) -> List[str]:
    """Return the column names of a profile CSV, checking the required ones."""
    path = check_readable(path)
    columns = Config.PROFILE['columns']

    try:
        header = pd.read_csv(path, nrows=0, dtype=str, skipinitialspace=True)
    except pd.errors.EmptyDataError as e:
        raise CsvFormatError(f"{path}: profile has no header row") from e
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise CsvFormatError(f"{path}: cannot parse header: {e}") from e
    except OSError as e:
        raise InputNotFoundError(f"Cannot read {path}: {e}") from e

    names = [str(c).strip() for c in header.columns]
    missing = [columns[c] for c in ('func_index', 'duration') if columns[c] not in names]
    if missing:
        raise CsvFormatError(
            f"{path}: missing column(s) {', '.join(missing)} in header {names}"
        )

    known = set(columns.values())
    for name in names:
        if name not in known:
            logger.debug(f"{path}: ignoring extra column '{name}'")

    return names


def is_multi_module(header: List[str]) -> bool:
    """A profile is module-aware when its header carries a module index column."""
    return Config.PROFILE['columns']['module_index'] in header


def _parse_field(value, column: str, record: int, limit: int, source) -> int:
    """Parse one unsigned integer field, raising CsvFormatError on anything else."""
    if isinstance(value, str):
        text = value.strip()
        if _DIGITS.fullmatch(text):
            number = int(text)
            if number <= limit:
                return number
            raise CsvFormatError(
                f"{source}: record {record}: {column} value {text} out of range"
            )

    raise CsvFormatError(
        f"{source}: record {record}: {column} must be an unsigned integer, got {value!r}"
    )


def read_samples(path: Union[str, Path], header: Optional[List[str]] = None) -> Iterator[Sample]:
    """Yield one Sample per CSV record.

    The file is read in chunks of ``Config.PROFILE['chunk_size']`` rows.
    Profiles without a module index column yield samples in module 0.
    ``header`` skips re-reading the header when the caller already has it.
    """
    if header is None:
        header = read_header(path)
    path = Path(path)
    columns = Config.PROFILE['columns']
    max_index = Config.PROFILE['max_index']
    max_duration = Config.PROFILE['max_duration']
    multi_module = is_multi_module(header)

    wanted = [columns['func_index'], columns['duration']]
    if multi_module:
        wanted.append(columns['module_index'])

    record = 0
    try:
        with pd.read_csv(
            path,
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
            chunksize=Config.PROFILE['chunk_size'],
        ) as reader:
            for chunk in reader:
                # pandas turns a surplus leading field into an implicit index
                if len(chunk) and not isinstance(chunk.index, pd.RangeIndex):
                    raise CsvFormatError(f"{path}: records have more fields than the header")
                chunk.columns = [str(c).strip() for c in chunk.columns]
                logger.debug(f"Read chunk of {len(chunk)} rows from {path}")

                for row in chunk[wanted].itertuples(index=False, name=None):
                    record += 1
                    func_index = _parse_field(row[0], columns['func_index'], record, max_index, path)
                    duration = _parse_field(row[1], columns['duration'], record, max_duration, path)
                    module_index = 0
                    if multi_module:
                        module_index = _parse_field(row[2], columns['module_index'], record, max_index, path)

                    yield Sample(module_index, func_index, duration)
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise CsvFormatError(f"{path}: malformed record after record {record}: {e}") from e
    except OSError as e:
        raise InputNotFoundError(f"Cannot read {path}: {e}") from e


def import_profile_from_file(path: Union[str, Path]) -> Profile:
    """Build a Profile from a profile CSV.

    Raises InputNotFoundError if the file cannot be read and CsvFormatError
    if any record is malformed; no Profile is returned in either case.
    """
    logger.info(f"Importing profile from {path}")

    header = read_header(path)
    profile = import_profile(read_samples(path, header), multi_module=is_multi_module(header))

    logger.info(f"Imported {len(profile)} functions, "
                f"total {profile.total_us}us")
    return profile
