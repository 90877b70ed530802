import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, NamedTuple, Optional, Tuple, Union

BOOL = "bool"
STRING = "string"
FLAG_TYPES = (BOOL, STRING)

# variant name -> weight, sorted by variant name
VariantTable = Tuple[Tuple[str, int], ...]
FlagValue = Union[bool, str]


class Reason(str, Enum):
    MATCH = "match"
    PERCENT = "percent"
    DEFAULT = "default"
    DISABLED = "disabled"
    MISSING = "missing"
    ERROR = "error"


@dataclass(frozen=True)
class CompiledCondition:
    attr: str
    op: str
    value: Any
    pattern: Optional["re.Pattern[str]"] = None


@dataclass(frozen=True)
class CompiledRule:
    conditions: Tuple[CompiledCondition, ...]
    match_all: bool
    variants: VariantTable


@dataclass(frozen=True)
class CompiledFlag:
    key: str
    enabled: bool
    type: str
    variants: VariantTable
    rules: Tuple[CompiledRule, ...]
    default: Optional[FlagValue] = None


@dataclass(frozen=True)
class CompiledConfig:
    version: int
    flags: Mapping[str, CompiledFlag]

    def get(self, key: str) -> Optional[CompiledFlag]:
        return self.flags.get(key)

    def __len__(self) -> int:
        return len(self.flags)


@dataclass
class EvalContext:
    """Subject of an evaluation.

    ``key`` is the only input to sticky bucketing and must be stable per
    subject. ``attrs`` is only consulted by rule conditions.
    """

    key: str
    attrs: Dict[str, Any] = field(default_factory=dict)


class Decision(NamedTuple):
    value: FlagValue
    reason: Reason
