"""Local feature-flag evaluation: YAML flags, targeting rules, sticky rollouts, hot reload."""

from ffengine.client import FFClient, Options, new, with_auto_reload, with_file, with_hooks
from ffengine.errors import (
    CompileError,
    ConfigError,
    EvaluationError,
    FlagEngineError,
    InitError,
    ValidationError,
)
from ffengine.hooks import Hooks, combine_hooks
from ffengine.models import Decision, EvalContext, Reason

__all__ = [
    "CompileError",
    "ConfigError",
    "Decision",
    "EvalContext",
    "EvaluationError",
    "FFClient",
    "FlagEngineError",
    "Hooks",
    "InitError",
    "Options",
    "Reason",
    "ValidationError",
    "combine_hooks",
    "new",
    "with_auto_reload",
    "with_file",
    "with_hooks",
]
