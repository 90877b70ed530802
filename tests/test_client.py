import threading

import pytest

from ffengine import (
    EvalContext,
    Hooks,
    InitError,
    Reason,
    new,
    with_auto_reload,
    with_file,
    with_hooks,
)
from ffengine import settings
from ffengine.services.bucket import bucket
from tests.helpers import INVALID_YAML, UPDATED_YAML, wait_for


class Recorder:
    def __init__(self):
        self.calls = []
        self.lock = threading.Lock()

    def __call__(self, flag_key, variant, reason):
        with self.lock:
            self.calls.append((flag_key, variant, reason))


def test_boolean(flags_path):
    with new(with_file(flags_path)) as client:
        ctx = EvalContext("user:123", {"plan": "pro"})
        expected = bucket("new_checkout", "user:123") >= 10
        assert client.boolean("new_checkout", ctx, False) is expected
        assert client.evaluate_bool("new_checkout", ctx, False).reason is Reason.MATCH


def test_string(flags_path):
    with new(with_file(flags_path)) as client:
        assert client.string("checkout_theme", EvalContext("user:123", {"theme": "dark"}), "default") == "black"


def test_missing_flag(flags_path):
    with new(with_file(flags_path)) as client:
        assert client.evaluate_bool("nope", EvalContext("user:1"), False) == (False, Reason.MISSING)
        assert client.string("nope", EvalContext("user:1"), "fallback") == "fallback"


def test_disabled_flag(flags_path):
    with new(with_file(flags_path)) as client:
        assert client.evaluate_bool("legacy_banner", EvalContext("user:1", {"plan": "pro"}), False) == (
            True,
            Reason.DISABLED,
        )


def test_hooks(flags_path):
    recorder = Recorder()
    with new(with_file(flags_path), with_hooks(Hooks(after_eval=recorder))) as client:
        value = client.boolean("new_checkout", EvalContext("user:1"), False)
        client.string("checkout_theme", EvalContext("user:1", {"theme": "dark"}), "x")

    assert recorder.calls[0] == ("new_checkout", "true" if value else "false", Reason.PERCENT)
    assert recorder.calls[1] == ("checkout_theme", "black", Reason.MATCH)


def test_requires_file(monkeypatch):
    monkeypatch.setattr(settings, "CONFIG_PATH", "")
    with pytest.raises(InitError, match="file path required"):
        new()


def test_file_from_environment_default(monkeypatch, flags_path):
    monkeypatch.setattr(settings, "CONFIG_PATH", str(flags_path))
    with new() as client:
        assert client.string("checkout_theme", EvalContext("u", {"theme": "dark"}), "x") == "black"


def test_initial_load_failure(tmp_path):
    path = tmp_path / "flags.yaml"
    path.write_text(INVALID_YAML)
    with pytest.raises(InitError, match="load config"):
        new(with_file(path))
    with pytest.raises(InitError):
        new(with_file(tmp_path / "missing.yaml"))


def test_bad_option():
    def broken(opts):
        raise ValueError("nope")

    with pytest.raises(InitError, match="apply option"):
        new(broken)


def test_auto_reload(config_file):
    client = new(with_file(config_file), with_auto_reload(0.05))
    try:
        assert client.boolean("beta", EvalContext("u1"), False) is True
        config_file.write_text(UPDATED_YAML)
        assert wait_for(lambda: client.boolean("beta", EvalContext("u1"), True) is False)
        assert client.string("extra", EvalContext("u1"), "x") == "hello"
    finally:
        client.close()
    client.close()


def test_reload_failure_reported_through_hook(config_file):
    recorder = Recorder()
    client = new(with_file(config_file), with_auto_reload(0.05), with_hooks(Hooks(after_eval=recorder)))
    try:
        config_file.write_text(INVALID_YAML)
        assert wait_for(lambda: ("", "", Reason.ERROR) in recorder.calls)
        # still serving the last good snapshot
        assert client.evaluate_bool("beta", EvalContext("u1"), False) == (True, Reason.PERCENT)
    finally:
        client.close()


def test_manual_reload(config_file):
    with new(with_file(config_file)) as client:
        config_file.write_text(UPDATED_YAML)
        client.reload()
        assert client.string("extra", EvalContext("u1"), "x") == "hello"


def test_failing_hook_does_not_reach_caller(flags_path):
    def broken(flag_key, variant, reason):
        raise RuntimeError("hook boom")

    with new(with_file(flags_path), with_hooks(Hooks(after_eval=broken))) as client:
        assert client.string("checkout_theme", EvalContext("u1", {"theme": "dark"}), "x") == "black"
        assert client.boolean("nope", EvalContext("u1"), True) is True
