import json
import os
import signal
import time

import pytest
from conftest import FakeRunner, FakeSelector, fail, ok, select_all

from macsetup.errors import ModuleError
from macsetup.modules import CloneReposModule
from macsetup.repos.hosts import GITLAB


def _listing(*names):
    return json.dumps([{"name": n, "url": f"https://github.com/o/{n}", "description": ""} for n in names])


def _runner(**listings):
    r = FakeRunner(tools={"gh": "/opt/homebrew/bin/gh"})
    for org, names in listings.items():
        r.answer(["gh", "repo", "list", org], ok(stdout=_listing(*names)))
    return r


def _make_repo(task):
    (task.repo_path / ".git").mkdir(parents=True)
    return ok(["git", "clone"])


CONFIG = {
    "repositories": {
        "github_orgs": ["acme", "other"],
        "destinations": {"acme": "x", "other": "x"},
    }
}


def test_clones_selected_repositories(make_ctx, settings):
    cloned = []

    def clone(task):
        cloned.append(task.repo_path)
        return _make_repo(task)

    ctx = make_ctx(
        {"repositories": {"github_orgs": ["acme"], "destinations": {"acme": "work"}}},
        runner=_runner(acme=["a", "b"]),
        selector=FakeSelector([select_all]),
    )
    CloneReposModule(clone_fn=clone).run(ctx)
    root = settings.dev_root / "work"
    assert sorted(cloned) == [root / "a", root / "b"]


def test_selector_labels_show_destination(make_ctx):
    selector = FakeSelector([[]])
    ctx = make_ctx(
        {"repositories": {"github_orgs": ["acme"], "repo_overrides": {"a": "clients/x"}}},
        runner=_runner(acme=["a", "b"]),
        selector=selector,
    )
    CloneReposModule(clone_fn=_make_repo).run(ctx)
    assert selector.prompts[0][1] == ["a", "b"]
    assert selector.labels[0] == ["a  ->  clients/x", "b  ->  [NO MAPPING]"]


def test_same_target_path_is_cloned_once(make_ctx, settings):
    cloned = []

    def clone(task):
        cloned.append(task.repo_path)
        return _make_repo(task)

    ctx = make_ctx(
        CONFIG,
        runner=_runner(acme=["a"], other=["a"]),
        selector=FakeSelector([select_all, select_all]),
    )
    CloneReposModule(clone_fn=clone).run(ctx)
    assert cloned == [settings.dev_root / "x" / "a"]


def test_unresolved_destination_is_skipped(make_ctx):
    cloned = []
    ctx = make_ctx(
        {"repositories": {"github_orgs": ["acme"]}},
        runner=_runner(acme=["a"]),
        # repo selection, then cancel the destination prompt
        selector=FakeSelector([select_all, []]),
    )
    CloneReposModule(clone_fn=lambda t: cloned.append(t) or _make_repo(t)).run(ctx)
    assert cloned == []


def test_failed_clone_fails_the_module(make_ctx):
    ctx = make_ctx(
        {"repositories": {"github_orgs": ["acme"], "destinations": {"acme": "w"}}},
        runner=_runner(acme=["a", "b"]),
        selector=FakeSelector([select_all]),
    )

    def clone(task):
        if task.repo_name == "a":
            return fail(["git", "clone"], code=128, stderr="remote: Repository not found.")
        return _make_repo(task)

    with pytest.raises(ModuleError, match="1 repositories failed"):
        CloneReposModule(clone_fn=clone).run(ctx)


def test_dry_run_does_not_clone(make_ctx, settings):
    runner = _runner(acme=["a"])
    runner.dry_run = True
    ctx = make_ctx(
        {"repositories": {"github_orgs": ["acme"], "destinations": {"acme": "w"}}},
        runner=runner,
        selector=FakeSelector([select_all]),
        dry_run=True,
    )
    called = []
    CloneReposModule(clone_fn=lambda t: called.append(t)).run(ctx)
    assert called == []
    assert not (settings.dev_root / "w").exists()


def test_missing_cli_fails_real_run_but_not_dry_run(make_ctx):
    data = {"repositories": {"github_orgs": ["acme"]}}
    with pytest.raises(ModuleError, match="GitHub"):
        CloneReposModule().run(make_ctx(data, runner=FakeRunner()))

    CloneReposModule().run(make_ctx(data, runner=FakeRunner(dry_run=True), dry_run=True))


def test_unauthenticated_cli_is_skipped(make_ctx):
    runner = FakeRunner(tools={"gh": "/usr/bin/gh"})
    runner.answer(["gh", "auth", "status"], fail(stderr="not logged in"))
    with pytest.raises(ModuleError):
        CloneReposModule().run(make_ctx({"repositories": {"github_orgs": ["acme"]}}, runner=runner))
    assert ["gh", "repo", "list", "acme", "--limit", "1000", "--json", "name,url,description"] not in runner.queries


def test_nothing_configured_is_a_no_op(make_ctx):
    runner = FakeRunner()
    CloneReposModule().run(make_ctx({}, runner=runner))
    assert runner.calls == []


def test_ctrl_c_during_clones_propagates(make_ctx, settings):
    started = []

    def clone(task):
        started.append(task.repo_name)
        if len(started) == 1:
            os.kill(os.getpid(), signal.SIGINT)
            time.sleep(0.3)
        return _make_repo(task)

    ctx = make_ctx(
        {"repositories": {"github_orgs": ["acme"], "destinations": {"acme": "w"}}},
        runner=_runner(acme=["a", "b", "c"]),
        selector=FakeSelector([select_all]),
        clone_parallel_jobs=1,
    )
    with pytest.raises(KeyboardInterrupt):
        CloneReposModule(clone_fn=clone).run(ctx)
    assert started == ["a"]
    assert (settings.dev_root / "w" / "a" / ".git").is_dir()
    assert not (settings.dev_root / "w" / "b").exists()


def test_listing_ignores_non_object_entries(make_ctx):
    cloned = []
    runner = FakeRunner(tools={"gh": "/opt/homebrew/bin/gh"})
    payload = json.dumps(["junk", 3, None, {"name": "a", "url": "https://github.com/o/a"}])
    runner.answer(["gh", "repo", "list", "acme"], ok(stdout=payload))
    ctx = make_ctx(
        {"repositories": {"github_orgs": ["acme"], "destinations": {"acme": "w"}}},
        runner=runner,
        selector=FakeSelector([select_all]),
    )
    CloneReposModule(clone_fn=lambda t: cloned.append(t.repo_name) or _make_repo(t)).run(ctx)
    assert cloned == ["a"]


def test_gitlab_listing_ignores_non_object_entries():
    runner = FakeRunner()
    payload = json.dumps([["nested"], {"name": "svc", "http_url_to_repo": "https://gitlab.com/g/svc.git"}])
    runner.answer(["glab", "api"], ok(stdout=payload))
    repos = GITLAB.list_repos(runner, "g")
    assert [(r.name, r.clone_url) for r in repos] == [("svc", "https://gitlab.com/g/svc.git")]
