import re
from pathlib import Path
from typing import Union

import structlog
import yaml
from pydantic import ValidationError as PydanticValidationError

from ffengine.compiler import compile_config
from ffengine.errors import ConfigError
from ffengine.models import CompiledConfig
from ffengine.schemas import Configuration, validate_config

log = structlog.get_logger(__name__)

BOOL_TAG = "tag:yaml.org,2002:bool"
MERGE_TAG = "tag:yaml.org,2002:merge"


class FlagsLoader(yaml.SafeLoader):
    """SafeLoader with YAML 1.2 core booleans and no duplicate mapping keys.

    Only true/false (any of the three casings) resolve to bool, so variant
    names and values such as on, off, yes or NO stay strings.
    """

    def construct_mapping(self, node, deep=False):
        if isinstance(node, yaml.MappingNode):
            seen = set()
            for key_node, _ in node.value:
                if key_node.tag == MERGE_TAG:
                    continue
                key = self.construct_object(key_node, deep=deep)
                try:
                    duplicate = key in seen
                except TypeError:
                    # unhashable, reported by the base constructor
                    break
                if duplicate:
                    raise yaml.constructor.ConstructorError(
                        "while constructing a mapping",
                        node.start_mark,
                        f"mapping key {key!r} already defined",
                        key_node.start_mark,
                    )
                seen.add(key)
        return super().construct_mapping(node, deep=deep)


FlagsLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != BOOL_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
FlagsLoader.add_implicit_resolver(
    BOOL_TAG,
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)


def _describe(exc: PydanticValidationError) -> str:
    first = exc.errors()[0]
    loc = ".".join(str(part) for part in first["loc"])
    extra = exc.error_count() - 1
    suffix = f" (and {extra} more)" if extra else ""
    return f"{loc}: {first['msg']}{suffix}"


def parse_config(text: Union[str, bytes]) -> Configuration:
    """Parse and validate a YAML configuration document."""
    try:
        data = yaml.load(text, Loader=FlagsLoader)
    except yaml.YAMLError as exc:
        raise ConfigError(f"parse YAML: {exc}", ConfigError.MALFORMED) from exc
    if not isinstance(data, dict):
        raise ConfigError("parse YAML: document must be a mapping", ConfigError.MALFORMED)

    try:
        config = Configuration.model_validate(data)
    except PydanticValidationError as exc:
        raise ConfigError(f"validate: {_describe(exc)}", ConfigError.INVALID) from exc

    validate_config(config)
    return config


def load_config(path: Union[str, Path]) -> Configuration:
    try:
        text = Path(path).read_bytes()
    except OSError as exc:
        raise ConfigError(f"read file {path}: {exc}", ConfigError.UNREADABLE) from exc
    return parse_config(text)


def load_compiled(path: Union[str, Path]) -> CompiledConfig:
    compiled = compile_config(load_config(path))
    log.debug("config_compiled", path=str(path), flags=len(compiled))
    return compiled
