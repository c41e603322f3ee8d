from pathlib import Path

import pytest
from conftest import FakeSelector

from macsetup.config_store import ConfigStore
from macsetup.repos.destinations import (
    NEW_FOLDER,
    DestinationResolver,
    DestinationRules,
    RuleKind,
)

DEV = Path("/dev-root")

CONFIG = {
    "repositories": {
        "destinations": {
            "acme": "org/acme",
            "my-org": "org/y",
            "group.with.dots": "gitlab/dots",
        },
        "repo_overrides": {
            "R": "clients/x",
        },
    }
}


def _resolver(selector=None, ask=lambda _p: ""):
    rules = DestinationRules.from_config(ConfigStore.from_mapping(CONFIG))
    return DestinationResolver(rules, DEV, selector or FakeSelector(), ask)


def test_rules_from_config():
    rules = DestinationRules.from_config(ConfigStore.from_mapping(CONFIG))
    assert len(rules) == 4
    assert rules.override_for("R") == "clients/x"
    assert rules.mapping_for("acme") == "org/acme"
    assert {r.kind for r in rules} == {RuleKind.OVERRIDE, RuleKind.ORGANIZATION}


def test_known_paths_sorted_and_deduplicated():
    data = {"repositories": {"destinations": {"a": "z/p", "b": "a/p"}, "repo_overrides": {"r": "z/p"}}}
    rules = DestinationRules.from_config(ConfigStore.from_mapping(data))
    assert rules.known_paths() == ["a/p", "z/p"]


def test_override_beats_organization_mapping():
    res = _resolver().resolve("R", "my-org")
    assert res.resolved
    assert res.source == "override"
    assert res.relative_path == "clients/x"
    assert res.path == DEV / "clients/x"


def test_organization_mapping():
    res = _resolver().resolve("other", "my-org")
    assert res.source == "organization"
    assert res.path == DEV / "org/y"


def test_org_names_are_opaque_keys():
    res = _resolver().resolve("repo", "group.with.dots")
    assert res.path == DEV / "gitlab/dots"


def test_lookup_never_prompts():
    selector = FakeSelector([["org/acme"]])
    res = _resolver(selector).lookup("repo", "unknown-org")
    assert not res.resolved
    assert selector.prompts == []


def test_interactive_choice_of_known_path():
    selector = FakeSelector([["org/acme"]])
    res = _resolver(selector).resolve("repo", "unknown-org")
    assert res.source == "interactive"
    assert res.path == DEV / "org/acme"
    _prompt, offered = selector.prompts[0]
    assert offered == ["clients/x", "gitlab/dots", "org/acme", "org/y", NEW_FOLDER]


def test_interactive_new_folder():
    asked = []

    def ask(prompt):
        asked.append(prompt)
        return "/personal/tools/"

    res = _resolver(FakeSelector([[NEW_FOLDER]]), ask).resolve("repo", "unknown-org")
    assert res.relative_path == "personal/tools"
    assert res.path == DEV / "personal/tools"
    assert len(asked) == 1


def test_cancelled_selection_is_unresolved():
    res = _resolver(FakeSelector([[]])).resolve("repo", "unknown-org")
    assert not res.resolved
    assert res.source is None
    assert res.path is None


def test_empty_new_folder_is_unresolved():
    res = _resolver(FakeSelector([[NEW_FOLDER]]), lambda _p: "   ").resolve("repo", "unknown-org")
    assert not res.resolved


@pytest.mark.parametrize("bad", ["/", "  ", "../x", "a/../../etc", "./"])
def test_paths_outside_the_dev_root_are_ignored(bad):
    data = {"repositories": {"destinations": {"acme": bad, "ok": "./org//ok/"}}}
    rules = DestinationRules.from_config(ConfigStore.from_mapping(data))
    assert rules.mapping_for("acme") is None
    assert rules.known_paths() == ["org/ok"]


@pytest.mark.parametrize("answer", ["/", "../elsewhere", "tools/../.."])
def test_new_folder_outside_the_dev_root_is_unresolved(answer):
    res = _resolver(FakeSelector([[NEW_FOLDER]]), lambda _p: answer).resolve("repo", "unknown-org")
    assert not res.resolved
    assert res.path is None
