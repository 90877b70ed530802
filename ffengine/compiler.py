import re
from types import MappingProxyType
from typing import Dict, List, Optional

from ffengine.errors import CompileError
from ffengine.models import (
    CompiledCondition,
    CompiledConfig,
    CompiledFlag,
    CompiledRule,
    VariantTable,
)
from ffengine.schemas import AttributeCondition, Configuration, Flag, Rule


def compile_config(config: Optional[Configuration]) -> CompiledConfig:
    """Build the immutable, evaluation-ready form of a validated configuration.

    Either every flag compiles or a ``CompileError`` is raised and nothing is
    produced. The result shares no mutable state with ``config``.
    """
    if config is None:
        raise CompileError("configuration is required")

    flags: Dict[str, CompiledFlag] = {}
    for key, flag in config.flags.items():
        try:
            flags[key] = _compile_flag(key, flag)
        except CompileError as exc:
            raise CompileError(f'compile flag "{key}": {exc.args[0]}') from exc

    return CompiledConfig(version=config.version, flags=MappingProxyType(flags))


def compile_variants(variants: Dict[str, int]) -> VariantTable:
    # bands are assigned in lexicographic order of variant name
    return tuple(sorted((str(name), int(weight)) for name, weight in variants.items()))


def _compile_flag(key: str, flag: Flag) -> CompiledFlag:
    rules: List[CompiledRule] = []
    for i, rule in enumerate(flag.rules):
        try:
            rules.append(_compile_rule(rule))
        except CompileError as exc:
            raise CompileError(f"compile rule {i}: {exc.args[0]}") from exc

    return CompiledFlag(
        key=key,
        enabled=flag.enabled,
        type=flag.type,
        variants=compile_variants(flag.variants),
        rules=tuple(rules),
        default=flag.default,
    )


def _compile_rule(rule: Rule) -> CompiledRule:
    match_all = bool(rule.when.all)
    source = rule.when.all if match_all else rule.when.any
    return CompiledRule(
        conditions=tuple(_compile_condition(cond) for cond in source),
        match_all=match_all,
        variants=compile_variants(rule.then.variants),
    )


def _compile_condition(cond: AttributeCondition) -> CompiledCondition:
    pattern = None
    if cond.op == "matches":
        if not isinstance(cond.value, str):
            raise CompileError("matches operator requires string value")
        try:
            pattern = re.compile(cond.value)
        except re.error as exc:
            raise CompileError(f"compile regex: {exc}") from exc

    return CompiledCondition(attr=cond.attr, op=cond.op, value=_freeze(cond.value), pattern=pattern)


def _freeze(value):
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(value)
    if isinstance(value, dict):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    return value
