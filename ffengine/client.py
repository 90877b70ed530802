from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from ffengine import settings
from ffengine.errors import FlagEngineError, InitError
from ffengine.hooks import Hooks
from ffengine.models import CompiledConfig, Decision, EvalContext, Reason
from ffengine.services.rollout import evaluate_bool, evaluate_string, variant_text
from ffengine.snapshot import SnapshotManager

log = structlog.get_logger(__name__)


@dataclass
class Options:
    file_path: str = ""
    auto_reload: float = 0.0
    hooks: Optional[Hooks] = None


Option = Callable[[Options], None]


def with_file(path) -> Option:
    def apply(opts: Options):
        opts.file_path = str(path)
    return apply


def with_auto_reload(interval: float) -> Option:
    """Reload on file change, and every ``interval`` seconds as a fallback."""
    def apply(opts: Options):
        opts.auto_reload = float(interval)
    return apply


def with_hooks(hooks: Hooks) -> Option:
    def apply(opts: Options):
        opts.hooks = hooks
    return apply


class FFClient:
    def __init__(self, snapshots: SnapshotManager, hooks: Optional[Hooks] = None):
        self._snapshots = snapshots
        self._hooks = hooks

    @property
    def snapshot(self) -> CompiledConfig:
        return self._snapshots.current

    def evaluate_bool(self, key: str, ctx: EvalContext, default: bool) -> Decision:
        # one reference read per call; a concurrent reload cannot change it
        compiled = self._snapshots.current
        decision = evaluate_bool(compiled.get(key), key, ctx, default)
        if self._hooks is not None:
            self._hooks.notify(key, variant_text(decision.value), decision.reason)
        return decision

    def evaluate_string(self, key: str, ctx: EvalContext, default: str) -> Decision:
        compiled = self._snapshots.current
        decision = evaluate_string(compiled.get(key), key, ctx, default)
        if self._hooks is not None:
            self._hooks.notify(key, variant_text(decision.value), decision.reason)
        return decision

    def boolean(self, key: str, ctx: EvalContext, default: bool) -> bool:
        return self.evaluate_bool(key, ctx, default).value

    def string(self, key: str, ctx: EvalContext, default: str) -> str:
        return self.evaluate_string(key, ctx, default).value

    def reload(self) -> None:
        """Reload the configuration file now; raises ConfigError/CompileError on failure."""
        self._snapshots.reload()

    def close(self) -> None:
        self._snapshots.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def new(*options: Option) -> FFClient:
    """Build a client from ``with_file``/``with_auto_reload``/``with_hooks`` options.

    The first load must succeed; any failure is raised as ``InitError``.
    """
    opts = Options()
    for opt in options:
        try:
            opt(opts)
        except Exception as exc:
            raise InitError(f"apply option: {exc}") from exc

    path = opts.file_path or settings.CONFIG_PATH
    if not path:
        raise InitError("file path required (use with_file)")

    hooks = opts.hooks

    def on_reload_error(exc: Exception) -> None:
        if hooks is not None:
            hooks.notify("", "", Reason.ERROR)

    try:
        snapshots = SnapshotManager(path, on_reload_error=on_reload_error)
    except FlagEngineError as exc:
        raise InitError(f"load config: {exc}") from exc

    if opts.auto_reload > 0:
        try:
            snapshots.start(opts.auto_reload)
        except OSError as exc:
            snapshots.close()
            raise InitError(f"watch file: {exc}") from exc
        log.info("auto_reload_enabled", path=snapshots.path, interval=opts.auto_reload)

    return FFClient(snapshots, hooks)
