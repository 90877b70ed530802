from typing import Optional


class FlagEngineError(Exception):
    code = "FLAG_ENGINE_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        if code is not None:
            self.code = code

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class ConfigError(FlagEngineError):
    """Configuration document could not be read, parsed or validated."""

    code = "CONFIG_ERROR"

    MALFORMED = "malformed"
    INVALID = "invalid"
    UNREADABLE = "unreadable"

    def __init__(self, message: str, cause: str = INVALID):
        super().__init__(message)
        self.cause = cause


class ValidationError(ConfigError):
    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        flag_key: Optional[str] = None,
        rule_index: Optional[int] = None,
        condition_index: Optional[int] = None,
    ):
        self.flag_key = flag_key
        self.rule_index = rule_index
        self.condition_index = condition_index
        self.detail = message
        super().__init__(_locate(message, flag_key, rule_index, condition_index), ConfigError.INVALID)


class CompileError(FlagEngineError):
    code = "COMPILE_ERROR"


class EvaluationError(FlagEngineError):
    code = "EVALUATION_ERROR"


class InitError(FlagEngineError):
    code = "INIT_ERROR"


def _locate(message: str, flag_key, rule_index, condition_index) -> str:
    parts = []
    if flag_key is not None:
        parts.append(f'flag "{flag_key}"')
    if rule_index is not None:
        parts.append(f"rule {rule_index}")
    if condition_index is not None:
        parts.append(f"condition {condition_index}")
    parts.append(message)
    return ": ".join(parts)
