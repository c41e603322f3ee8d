import pytest

from macsetup.config_store import ConfigStore, split_path
from macsetup.errors import ConfigError, ConfigNotLoadedError

TOML = """
[git]
user_name = "Ada"
push_auto_setup_remote = true

[repositories]
github_orgs = ["acme", "my-org"]

[repositories.destinations]
"my.org" = "org/dots"
my-org = "org/y"

[brew.packages]
core = ["git", "stow"]
"dev tools" = ["jq"]
"""

YAML = """
git:
  user_name: Ada
  push_auto_setup_remote: true
repositories:
  github_orgs: [acme, my-org]
  destinations:
    my.org: org/dots
"""


@pytest.fixture
def toml_store(tmp_path):
    p = tmp_path / "mac-setup.toml"
    p.write_text(TOML)
    return ConfigStore(p).load()


def test_queries_before_load_raise(tmp_path):
    store = ConfigStore(tmp_path / "mac-setup.toml")
    assert not store.loaded
    with pytest.raises(ConfigNotLoadedError):
        store.get_string("git.user_name")


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        ConfigStore(tmp_path / "nope.toml").load()


def test_parse_error(tmp_path):
    p = tmp_path / "bad.toml"
    p.write_text("[git\nuser_name = ")
    with pytest.raises(ConfigError):
        ConfigStore(p).load()


def test_toml_accessors(toml_store):
    assert toml_store.get_string("git.user_name") == ("Ada", True)
    assert toml_store.get_string("git.push_auto_setup_remote") == ("true", True)
    assert toml_store.get_string("git.missing") == ("", False)
    assert toml_store.get_bool("git.push_auto_setup_remote", False) is True
    assert toml_store.get_bool("git.missing", True) is True
    assert toml_store.get_array("repositories.github_orgs") == (["acme", "my-org"], True)
    assert toml_store.get_array("git.user_name") == ([], False)


def test_quoted_segments(toml_store):
    assert toml_store.get_string('repositories.destinations."my.org"') == ("org/dots", True)
    assert toml_store.get_string("repositories.destinations.my-org") == ("org/y", True)
    assert toml_store.get_array('brew.packages."dev tools"') == (["jq"], True)
    assert toml_store.section_keys("brew.packages") == ["core", "dev tools"]


def test_yaml_by_extension(tmp_path):
    p = tmp_path / "mac-setup.yaml"
    p.write_text(YAML)
    store = ConfigStore(p).load()
    assert store.get_string("git.user_name") == ("Ada", True)
    assert store.get_bool("git.push_auto_setup_remote", False) is True
    assert store.get_table("repositories.destinations") == {"my.org": "org/dots"}


def test_split_path():
    assert split_path('a.b."c.d".e') == ["a", "b", "c.d", "e"]
    with pytest.raises(ConfigError):
        split_path("a..b")
    with pytest.raises(ConfigError):
        split_path('a."b')
