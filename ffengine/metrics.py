from prometheus_client import Counter

from ffengine.hooks import Hooks
from ffengine.models import Reason

EVALS = Counter("ffengine_flag_evaluations_total", "Total flag evaluations", ["key", "reason"])
RELOAD_FAILURES = Counter("ffengine_reload_failures_total", "Failed configuration reload attempts")


def record_evaluation(flag_key: str, variant: str, reason: Reason) -> None:
    if reason is Reason.ERROR and not flag_key:
        RELOAD_FAILURES.inc()
        return
    EVALS.labels(flag_key, reason.value).inc()


def prometheus_hooks() -> Hooks:
    return Hooks(after_eval=record_evaluation)
