from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import List
from urllib.parse import quote

from ..errors import ModuleError
from ..lib.command import ShellRunner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteRepo:
    name: str
    clone_url: str
    owner: str
    description: str = ""


@dataclass(frozen=True)
class Provider:
    """A hosting service reached through its CLI (gh / glab)."""

    key: str
    label: str
    cli: str
    config_path: str
    login_hint: str

    def available(self, runner: ShellRunner) -> bool:
        return runner.which(self.cli) is not None

    def authenticated(self, runner: ShellRunner) -> bool:
        return runner.query([self.cli, "auth", "status"]).ok

    def prefer_https(self, runner: ShellRunner) -> None:
        if self.key == "github":
            argv = ["gh", "config", "set", "git_protocol", "https"]
        else:
            argv = ["glab", "config", "set", "-h", "gitlab.com", "git_protocol", "https"]
        if not runner.run(argv).ok:
            logger.debug("Could not set %s git_protocol (already set or permission issue)", self.cli)

    def list_repos(self, runner: ShellRunner, owner: str) -> List[RemoteRepo]:
        if self.key == "github":
            return _list_github(runner, owner)
        return _list_gitlab(runner, owner)


GITHUB = Provider(
    key="github",
    label="GitHub",
    cli="gh",
    config_path="repositories.github_orgs",
    login_hint="gh auth login",
)
GITLAB = Provider(
    key="gitlab",
    label="GitLab",
    cli="glab",
    config_path="repositories.gitlab_groups",
    login_hint="glab auth login",
)
PROVIDERS = (GITHUB, GITLAB)


def _parse_json_list(raw: str, source: str) -> list:
    try:
        data = json.loads(raw or "[]")
    except json.JSONDecodeError as e:
        raise ModuleError(f"Unexpected response while listing {source}: {e}") from e
    if not isinstance(data, list):
        raise ModuleError(f"Unexpected response while listing {source}: expected a list")
    return data


def _list_github(runner: ShellRunner, org: str) -> List[RemoteRepo]:
    # 'url' honours gh's git_protocol setting (https after prefer_https()).
    r = runner.query(["gh", "repo", "list", org, "--limit", "1000", "--json", "name,url,description"])
    if not r.ok:
        raise ModuleError(f"Failed to list repositories for GitHub organization {org}: {r.stderr.strip()}")
    return [
        RemoteRepo(
            name=str(item["name"]),
            clone_url=str(item["url"]),
            owner=org,
            description=str(item.get("description") or ""),
        )
        for item in _parse_json_list(r.stdout, org)
        if isinstance(item, dict) and item.get("name") and item.get("url")
    ]


def _list_gitlab(runner: ShellRunner, group: str) -> List[RemoteRepo]:
    endpoint = f"groups/{quote(group, safe='')}/projects?include_subgroups=true&per_page=100"
    r = runner.query(["glab", "api", endpoint])
    if not r.ok:
        out = f"{r.stdout}\n{r.stderr}"
        if "404" in out:
            raise ModuleError(f"GitLab group not found: {group} (check the group path with 'glab api groups')")
        if "401" in out:
            raise ModuleError(f"Not authenticated to access group {group}; run: glab auth login")
        raise ModuleError(f"Failed to fetch repositories from {group}: {r.stderr.strip()}")
    return [
        RemoteRepo(
            name=str(item["name"]),
            clone_url=str(item["http_url_to_repo"]),
            owner=group,
            description=str(item.get("description") or ""),
        )
        for item in _parse_json_list(r.stdout, group)
        if isinstance(item, dict) and item.get("name") and item.get("http_url_to_repo")
    ]
