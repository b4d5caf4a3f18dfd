"""
models.py - Core Data Models for the WebAssembly Profiler
==========================================================
Defines the data structures passed between aggregation, name resolution
and reporting.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, NamedTuple


U32_MAX = 2 ** 32 - 1
U64_MAX = 2 ** 64 - 1


class AggregateKey(NamedTuple):
    """Identifies one aggregation bucket: (module index, function index)."""
    module_index: int
    func_index: int


@dataclass(frozen=True)
class Sample:
    """A single profiling measurement, in microseconds."""
    module_index: int
    func_index: int
    duration_us: int

    def __post_init__(self):
        for name, limit in (('module_index', U32_MAX),
                            ('func_index', U32_MAX),
                            ('duration_us', U64_MAX)):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
            if value < 0 or value > limit:
                raise ValueError(f"{name} out of range: {value}")

    @property
    def key(self) -> AggregateKey:
        return AggregateKey(self.module_index, self.func_index)


@dataclass(frozen=True)
class Profile:
    """Aggregated durations for one profiling run.

    ``durations`` is read-only once the profile is built. ``multi_module``
    records whether the source carried a module index column; when it did
    not, every key lives in module 0 and reports omit the module label.
    """
    durations: Mapping[AggregateKey, int] = field(default_factory=dict)
    multi_module: bool = True

    def __post_init__(self):
        if not isinstance(self.durations, MappingProxyType):
            object.__setattr__(self, 'durations', MappingProxyType(dict(self.durations)))

    @property
    def total_us(self) -> int:
        """Sum of all durations, zero for an empty profile."""
        return sum(self.durations.values())

    @property
    def is_empty(self) -> bool:
        return not self.durations

    def __len__(self) -> int:
        return len(self.durations)


@dataclass
class ReportEntry:
    """One resolved report line."""
    key: AggregateKey
    module_label: str
    function_label: str
    duration_us: int
    percent: int

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization."""
        return {
            'module_index': self.key.module_index,
            'func_index': self.key.func_index,
            'module': self.module_label,
            'function': self.function_label,
            'duration_us': self.duration_us,
            'percent': self.percent
        }
