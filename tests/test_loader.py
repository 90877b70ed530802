import pytest

from ffengine.errors import ConfigError, ValidationError
from ffengine.loader import load_compiled, load_config, parse_config
from tests.helpers import INVALID_YAML, VALID_YAML


def test_parse_valid_document():
    config = parse_config(VALID_YAML)
    assert config.version == 1
    assert config.flags["beta"].variants == {"true": 100, "false": 0}
    assert config.flags["beta"].default is False


def test_malformed_yaml():
    with pytest.raises(ConfigError) as exc_info:
        parse_config("version: 1\nflags: [unclosed")
    assert exc_info.value.cause == ConfigError.MALFORMED


def test_document_must_be_mapping():
    with pytest.raises(ConfigError) as exc_info:
        parse_config("- just\n- a list\n")
    assert exc_info.value.cause == ConfigError.MALFORMED


def test_invalid_document():
    with pytest.raises(ValidationError) as exc_info:
        parse_config(INVALID_YAML)
    assert exc_info.value.cause == ConfigError.INVALID
    assert "got 90" in str(exc_info.value)


def test_structural_error_is_invalid():
    with pytest.raises(ConfigError) as exc_info:
        parse_config("version: 1\nflags:\n  f:\n    type: bool\n    variants:\n      true: lots\n")
    assert exc_info.value.cause == ConfigError.INVALID
    assert "flags.f.variants" in str(exc_info.value)


def test_error_string_carries_code():
    with pytest.raises(ConfigError) as exc_info:
        parse_config("version: 1\nflags: {}\n")
    assert str(exc_info.value).startswith("VALIDATION_ERROR: ")


def test_load_missing_file(tmp_path):
    with pytest.raises(ConfigError) as exc_info:
        load_config(tmp_path / "nope.yaml")
    assert exc_info.value.cause == ConfigError.UNREADABLE


def test_load_compiled(flags_path):
    compiled = load_compiled(flags_path)
    assert set(compiled.flags) == {"new_checkout", "checkout_theme", "legacy_banner", "staff_tools"}


def test_yaml_11_booleans_stay_strings():
    config = parse_config(
        """
version: 1
flags:
  power:
    enabled: true
    type: string
    variants:
      on: 50
      off: 50
    default: off
  nordics:
    enabled: true
    type: bool
    rules:
      - when:
          all:
            - attr: country
              op: in
              value: [NO, SE]
        then:
          variants:
            true: 100
"""
    )
    assert config.flags["power"].variants == {"on": 50, "off": 50}
    assert config.flags["power"].default == "off"
    assert config.flags["nordics"].rules[0].when.all[0].value == ["NO", "SE"]
    assert config.flags["nordics"].rules[0].then.variants == {"true": 100}


def test_true_false_literals_are_booleans():
    config = parse_config("version: 1\nflags:\n  f:\n    type: bool\n    enabled: True\n    default: FALSE\n")
    assert config.flags["f"].enabled is True
    assert config.flags["f"].default is False


def test_duplicate_flag_key_is_malformed():
    with pytest.raises(ConfigError) as exc_info:
        parse_config("version: 1\nflags:\n  a:\n    type: bool\n  a:\n    type: string\n")
    assert exc_info.value.cause == ConfigError.MALFORMED
    assert "already defined" in str(exc_info.value)


def test_merge_keys_are_not_duplicates():
    config = parse_config(
        """
version: 1
base: &base
  type: bool
  enabled: true
flags:
  f:
    <<: *base
    enabled: false
"""
    )
    assert config.flags["f"].enabled is False
