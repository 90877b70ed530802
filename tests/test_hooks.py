from prometheus_client import REGISTRY

from ffengine.hooks import Hooks, combine_hooks
from ffengine.metrics import prometheus_hooks
from ffengine.models import Reason


def test_notify_without_callback():
    Hooks().notify("f", "true", Reason.MATCH)


def test_combine_hooks_fans_out():
    seen_a, seen_b = [], []
    hooks = combine_hooks(
        Hooks(after_eval=lambda *args: seen_a.append(args)),
        None,
        Hooks(),
        Hooks(after_eval=lambda *args: seen_b.append(args)),
    )
    hooks.notify("f", "blue", Reason.PERCENT)
    assert seen_a == seen_b == [("f", "blue", Reason.PERCENT)]


def test_combine_nothing():
    assert combine_hooks().after_eval is None


def sample(name, labels=None):
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


def test_prometheus_hooks_count_evaluations():
    hooks = prometheus_hooks()
    labels = {"key": "metrics_flag", "reason": "match"}
    before = sample("ffengine_flag_evaluations_total", labels)
    hooks.notify("metrics_flag", "true", Reason.MATCH)
    hooks.notify("metrics_flag", "false", Reason.MATCH)
    assert sample("ffengine_flag_evaluations_total", labels) == before + 2


def test_prometheus_hooks_count_reload_failures():
    hooks = prometheus_hooks()
    before = sample("ffengine_reload_failures_total")
    hooks.notify("", "", Reason.ERROR)
    assert sample("ffengine_reload_failures_total") == before + 1


def test_failing_callback_is_contained():
    def broken(flag_key, variant, reason):
        raise RuntimeError("hook boom")

    Hooks(after_eval=broken).notify("f", "true", Reason.MATCH)
