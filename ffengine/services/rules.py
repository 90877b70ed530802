from ffengine.errors import EvaluationError
from ffengine.models import CompiledRule, EvalContext
from ffengine.services.operators import evaluate_operator


def rule_matches(rule: CompiledRule, ctx: EvalContext) -> bool:
    if not rule.conditions:
        return False
    attrs = ctx.attrs or {}

    if rule.match_all:
        for cond in rule.conditions:
            if cond.attr not in attrs:
                return False
            try:
                if not evaluate_operator(attrs[cond.attr], cond.op, cond.value, cond.pattern):
                    return False
            except EvaluationError:
                return False
        return True

    for cond in rule.conditions:
        if cond.attr not in attrs:
            continue
        try:
            if evaluate_operator(attrs[cond.attr], cond.op, cond.value, cond.pattern):
                return True
        except EvaluationError:
            # skipped, the next condition may still match
            continue
    return False
