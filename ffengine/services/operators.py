import numbers
from collections.abc import Mapping
from typing import Any, Optional

from ffengine.errors import EvaluationError


def to_number(value: Any) -> Optional[float]:
    # None means "not a number"; callers decide whether that is an error
    if isinstance(value, bool):
        return None
    if isinstance(value, (numbers.Real, str)):
        try:
            return float(value)
        except (OverflowError, ValueError):
            # ints beyond float range, non-numeric strings
            return None
    return None


def _is_int(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    # lists and their compiled tuple form render the same way
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(to_text(v) for v in value) + "]"
    if isinstance(value, (set, frozenset)):
        return "[" + " ".join(sorted(to_text(v) for v in value)) + "]"
    if isinstance(value, Mapping):
        return "map[" + " ".join(f"{to_text(k)}:{to_text(v)}" for k, v in value.items()) + "]"
    return str(value)


def _eq(attr_value, op_value, pattern=None) -> bool:
    if isinstance(attr_value, bool) == isinstance(op_value, bool) and attr_value == op_value:
        return True

    a, b = to_number(attr_value), to_number(op_value)
    if a is not None and b is not None:
        return a == b

    return to_text(attr_value) == to_text(op_value)


def _neq(attr_value, op_value, pattern=None) -> bool:
    return not _eq(attr_value, op_value)


def _compare(attr_value, op_value) -> int:
    if _is_int(attr_value) and _is_int(op_value):
        return (attr_value > op_value) - (attr_value < op_value)
    a, b = to_number(attr_value), to_number(op_value)
    if a is None or b is None:
        raise EvaluationError("comparison requires numeric values")
    if a > b:
        return 1
    if a < b:
        return -1
    return 0


def _gt(attr_value, op_value, pattern=None) -> bool:
    return _compare(attr_value, op_value) > 0


def _gte(attr_value, op_value, pattern=None) -> bool:
    return _compare(attr_value, op_value) >= 0


def _lt(attr_value, op_value, pattern=None) -> bool:
    return _compare(attr_value, op_value) < 0


def _lte(attr_value, op_value, pattern=None) -> bool:
    return _compare(attr_value, op_value) <= 0


def _in(attr_value, op_value, pattern=None) -> bool:
    if not isinstance(op_value, (list, tuple, set, frozenset)):
        raise EvaluationError("'in' operator requires a sequence value")
    needle = to_text(attr_value)
    return any(to_text(v) == needle for v in op_value)


def _contains(attr_value, op_value, pattern=None) -> bool:
    return to_text(op_value) in to_text(attr_value)


def _matches(attr_value, op_value, pattern=None) -> bool:
    if pattern is None:
        raise EvaluationError("regex not compiled")
    return pattern.search(to_text(attr_value)) is not None


OPERATORS = {
    "eq": _eq,
    "neq": _neq,
    "gt": _gt,
    "gte": _gte,
    "lt": _lt,
    "lte": _lte,
    "in": _in,
    "contains": _contains,
    "matches": _matches,
}


def evaluate_operator(attr_value: Any, op: str, op_value: Any, pattern=None) -> bool:
    """Apply ``op`` to an attribute value.

    Raises ``EvaluationError`` for an unknown operator, a non-numeric operand
    of an ordering comparison, a non-sequence ``in`` value, or a ``matches``
    condition without a compiled pattern.
    """
    fn = OPERATORS.get(op)
    if fn is None:
        raise EvaluationError(f"unknown operator: {op}")
    try:
        return fn(attr_value, op_value, pattern)
    except (ArithmeticError, TypeError, ValueError) as exc:
        # e.g. ints too long to render as text
        raise EvaluationError(f"{op}: {exc}") from exc
