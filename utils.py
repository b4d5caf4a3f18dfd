"""
utils.py - Utility Functions and Helpers
=========================================
Error types, file helpers and logging setup shared across the profiler.
"""

import logging
from pathlib import Path
from typing import Optional, Union


logger = logging.getLogger(__name__)


# ============================================================================
# ERRORS
# ============================================================================

class ProfilerError(Exception):
    """Base class for every failure that aborts a profiling report."""
    pass


class InputNotFoundError(ProfilerError):
    """A profile or module path does not exist or cannot be read."""
    pass


class CsvFormatError(ProfilerError):
    """A profile CSV header or record does not match the expected schema."""
    pass


class ModuleDecodeError(ProfilerError):
    """The bytes given for a module are not a WebAssembly binary."""
    pass


class NameSectionError(ProfilerError):
    """A module carries a ``name`` section that cannot be parsed."""
    pass


# ============================================================================
# FILE OPERATIONS
# ============================================================================

def ensure_directory(path: Union[str, Path]) -> Path:
    """Ensure directory exists, create if necessary."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def check_readable(filepath: Union[str, Path]) -> Path:
    """Return ``filepath`` as a Path, raising InputNotFoundError if it is not a file."""
    filepath = Path(filepath)

    if not filepath.is_file():
        raise InputNotFoundError(f"Input file not found: {filepath}")

    return filepath


def read_binary(filepath: Union[str, Path]) -> bytes:
    """Read a whole file into memory."""
    filepath = check_readable(filepath)

    try:
        with open(filepath, 'rb') as f:
            data = f.read()
    except OSError as e:
        raise InputNotFoundError(f"Cannot read {filepath}: {e}") from e

    logger.debug(f"Read {len(data)} bytes from {filepath}")
    return data


# ============================================================================
# LOGGING
# ============================================================================

def setup_logging(log_level: Optional[str] = None, log_file: Optional[str] = None):
    """Setup logging configuration.

    Console output goes to stderr so that stdout only carries the report.
    """
    from config import Config

    log_config = Config.LOGGING

    # Set log level
    level_name = log_level or log_config.get('level', 'WARNING')
    level = getattr(logging, level_name.upper(), logging.WARNING)

    # Create formatter
    formatter = logging.Formatter(
        log_config['format'],
        datefmt=log_config['date_format']
    )

    # Setup handlers
    handlers = []

    # Console handler
    if log_config.get('console_output', True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    # File handler
    if log_file or log_config.get('file'):
        file_path = log_file or log_config['file']
        ensure_directory(Path(file_path).parent)

        from logging.handlers import RotatingFileHandler
        file_handler = RotatingFileHandler(
            file_path,
            maxBytes=log_config.get('max_bytes', 10*1024*1024),
            backupCount=log_config.get('backup_count', 5)
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    # Configure root logger
    logging.basicConfig(
        level=level,
        handlers=handlers
    )

    logger.info(f"Logging configured: level={level_name}")
