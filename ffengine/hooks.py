from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from ffengine.models import Reason

log = structlog.get_logger(__name__)

AfterEval = Callable[[str, str, Reason], None]


@dataclass(frozen=True)
class Hooks:
    """Observability callbacks.

    ``after_eval(flag_key, variant, reason)`` runs inline on every evaluation,
    so it must be cheap and must not block. A failed background reload is
    reported as ``after_eval("", "", Reason.ERROR)``. An exception raised by the
    callback is logged and never reaches the evaluation caller.
    """

    after_eval: Optional[AfterEval] = None

    def notify(self, flag_key: str, variant: str, reason: Reason) -> None:
        if self.after_eval is None:
            return
        try:
            self.after_eval(flag_key, variant, reason)
        except Exception:
            log.exception("after_eval_hook_failed", flag=flag_key, reason=reason.value)


def combine_hooks(*hooks: Optional[Hooks]) -> Hooks:
    callbacks = [h.after_eval for h in hooks if h is not None and h.after_eval is not None]
    if not callbacks:
        return Hooks()
    if len(callbacks) == 1:
        return Hooks(after_eval=callbacks[0])

    def fan_out(flag_key: str, variant: str, reason: Reason) -> None:
        for cb in callbacks:
            cb(flag_key, variant, reason)

    return Hooks(after_eval=fan_out)
