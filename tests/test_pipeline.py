"""Orchestrator behaviour: ordering, selection, failure isolation, fatal abort."""

import pytest

from macsetup.errors import FatalModuleError, ModuleError, RegistryError
from macsetup.pipeline import (
    ModuleDescriptor,
    Outcome,
    RunOptions,
    format_duration,
    run_pipeline,
    validate_order,
)


def _recorder(calls, name, *, exc=None):
    def _run():
        calls.append(name)
        if exc is not None:
            raise exc

    return _run


def _modules(calls, failing=(), fatal=("boot",)):
    names = ["pre", "boot", "a", "b", "c"]
    return [
        ModuleDescriptor(
            name=n,
            display_name=n.upper(),
            run=_recorder(calls, n, exc=ModuleError(f"{n} broke") if n in failing else None),
            fatal=n in fatal,
        )
        for n in names
    ]


def test_runs_every_module_in_order():
    calls = []
    report = run_pipeline(_modules(calls), RunOptions())
    assert calls == ["pre", "boot", "a", "b", "c"]
    assert report.succeeded == 5
    assert report.ok


def test_non_fatal_failure_does_not_stop_later_modules():
    calls = []
    report = run_pipeline(_modules(calls, failing=("a",)), RunOptions())
    assert calls == ["pre", "boot", "a", "b", "c"]
    assert report.failed == 1
    assert report.succeeded == 4
    assert report.outcome_of("a") is Outcome.FAILURE
    assert report.results[2].error == "a broke"
    assert not report.ok


def test_fatal_failure_aborts_before_any_later_module():
    calls = []
    with pytest.raises(FatalModuleError) as ei:
        run_pipeline(_modules(calls, failing=("boot",)), RunOptions())
    assert calls == ["pre", "boot"]
    report = ei.value.report
    assert report.aborted_by == "boot"
    assert [r.name for r in report.results] == ["pre", "boot"]
    assert isinstance(ei.value.cause, ModuleError)


def test_interrupt_in_a_module_stops_the_run():
    calls = []
    modules = _modules(calls)
    modules[2] = ModuleDescriptor("a", "A", _recorder(calls, "a", exc=KeyboardInterrupt()))
    with pytest.raises(KeyboardInterrupt):
        run_pipeline(modules, RunOptions())
    assert calls == ["pre", "boot", "a"]


def test_only_module_runs_just_that_module():
    calls = []
    report = run_pipeline(_modules(calls), RunOptions(only_module="b"))
    assert calls == ["b"]
    assert report.skipped == 4
    assert report.attempted == 1


def test_only_module_wins_over_skip_of_same_name():
    calls = []
    run_pipeline(_modules(calls), RunOptions(only_module="b", skip_modules=frozenset({"b"})))
    assert calls == ["b"]


def test_skip_modules():
    calls = []
    report = run_pipeline(_modules(calls), RunOptions(skip_modules=frozenset({"a", "c"})))
    assert calls == ["pre", "boot", "b"]
    assert report.outcome_of("a") is Outcome.SKIPPED


def test_unknown_only_module_skips_everything():
    calls = []
    report = run_pipeline(_modules(calls), RunOptions(only_module="nope"))
    assert calls == []
    assert report.skipped == 5
    assert report.ok


def test_config_initialized_once_right_after_bootstrap():
    calls = []
    run_pipeline(
        _modules(calls),
        RunOptions(),
        init_config=lambda: calls.append("<init>"),
        config_after="boot",
    )
    assert calls == ["pre", "boot", "<init>", "a", "b", "c"]


def test_config_initialized_even_when_bootstrap_is_skipped():
    calls = []
    run_pipeline(
        _modules(calls),
        RunOptions(only_module="c"),
        init_config=lambda: calls.append("<init>"),
        config_after="boot",
    )
    assert calls == ["<init>", "c"]


def test_config_init_failure_aborts_run():
    calls = []

    def _boom():
        raise ModuleError("bad config")

    with pytest.raises(FatalModuleError) as ei:
        run_pipeline(_modules(calls), RunOptions(), init_config=_boom, config_after="boot")
    assert calls == ["pre", "boot"]
    assert ei.value.report.aborted_by == "boot"


def test_validate_order_rejects_forward_dependency():
    mods = [
        ModuleDescriptor("a", "A", lambda: None, depends_on=("b",)),
        ModuleDescriptor("b", "B", lambda: None),
    ]
    with pytest.raises(RegistryError):
        validate_order(mods)


def test_validate_order_rejects_duplicates():
    mods = [ModuleDescriptor("a", "A", lambda: None), ModuleDescriptor("a", "A", lambda: None)]
    with pytest.raises(RegistryError):
        validate_order(mods)


@pytest.mark.parametrize("seconds,expected", [(0, "0m 0s"), (59.9, "0m 59s"), (61, "1m 1s"), (3725, "62m 5s")])
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected
