"""
profiler.py - Profiler Facade
==============================
Ties aggregation, name resolution and reporting together for one run.
"""

import logging
import sys
from pathlib import Path
from typing import Iterable, Mapping, Optional, TextIO, Union

from aggregation import import_profile, import_profile_from_file
from config import Config
from models import AggregateKey, Profile, Sample
from reports import ReportGenerator, render_report
from wasm_names import NameResolver


logger = logging.getLogger(__name__)


class Profiler:
    """Owns one aggregated profile plus the names resolved for it.

    Loading modules only adds names; the profile itself is fixed at
    construction.
    """

    def __init__(self, profile: Profile, source: str = "profile"):
        self._profile = profile
        self.resolver = NameResolver()
        self.source = source

    @classmethod
    def import_profile(cls, samples: Iterable[Sample], multi_module: bool = True) -> 'Profiler':
        return cls(import_profile(samples, multi_module=multi_module))

    @classmethod
    def import_profile_from_file(cls, path: Union[str, Path]) -> 'Profiler':
        return cls(import_profile_from_file(path), source=Path(path).name)

    @property
    def profile(self) -> Mapping[AggregateKey, int]:
        """Read-only view of the aggregated durations."""
        return self._profile.durations

    @property
    def modules(self) -> Mapping[int, str]:
        return self.resolver.modules

    @property
    def names(self) -> Mapping[AggregateKey, str]:
        return self.resolver.names

    def load_module(self, module_index: int, module_binary: bytes,
                    module_label: Optional[str] = None):
        if module_label is None:
            module_label = Config.NAMES['unknown_module'].format(index=module_index)
        self.resolver.register(module_index, module_label, module_binary)

    load_module_from_bytes = load_module

    def load_module_from_file(self, module_index: int, path: Union[str, Path],
                              module_label: Optional[str] = None):
        self.resolver.register_file(module_index, path, module_label)

    def render(self) -> str:
        return render_report(self._profile, self.modules, self.names)

    def report_generator(self) -> ReportGenerator:
        return ReportGenerator(self._profile, self.modules, self.names, source=self.source)

    def print(self, stream: Optional[TextIO] = None):
        stream = stream or sys.stdout
        stream.write(self.render())

    def __str__(self) -> str:
        return self.render()
