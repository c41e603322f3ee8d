"""Repository destination resolution.

Precedence, first match wins:

1. per-repository override (``[repositories.repo_overrides]``)
2. organization / group mapping (``[repositories.destinations]``)
3. interactive choice among the known destinations, or a new folder

Paths in rules are relative to the development root. Organization and
repository names are opaque keys here; quoting them for config lookups is the
config store's business.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from ..config_store import ConfigStore
from ..lib.selector import LabeledItem, Selector

logger = logging.getLogger(__name__)

NEW_FOLDER = "[New folder...]"
OVERRIDES_PATH = "repositories.repo_overrides"
DESTINATIONS_PATH = "repositories.destinations"


class RuleKind(enum.Enum):
    OVERRIDE = "override"
    ORGANIZATION = "organization"


@dataclass(frozen=True)
class RepoDestinationRule:
    kind: RuleKind
    key: str
    path: str


def _clean_relative(path: str) -> Optional[str]:
    """Normalize a path relative to the dev root; None if empty or escaping it."""

    parts = [p for p in path.strip().split("/") if p not in ("", ".")]
    if not parts or ".." in parts:
        return None
    return "/".join(parts)


class DestinationRules:
    """Read-only rule set, built once when the clone module starts."""

    def __init__(self, rules: Sequence[RepoDestinationRule]) -> None:
        self._rules = tuple(rules)
        self._overrides: Dict[str, str] = {}
        self._mappings: Dict[str, str] = {}
        for r in self._rules:
            table = self._overrides if r.kind is RuleKind.OVERRIDE else self._mappings
            # First definition wins, like a top-down scan of the file.
            table.setdefault(r.key, r.path)

    @classmethod
    def from_config(cls, store: ConfigStore) -> "DestinationRules":
        rules: List[RepoDestinationRule] = []
        for kind, section in ((RuleKind.OVERRIDE, OVERRIDES_PATH), (RuleKind.ORGANIZATION, DESTINATIONS_PATH)):
            for key, value in store.get_table(section).items():
                rel = _clean_relative(value) if isinstance(value, str) else None
                if rel is None:
                    logger.warning(
                        "Ignoring destination %s.%s: %r is not a folder under the development root",
                        section,
                        key,
                        value,
                    )
                    continue
                rules.append(RepoDestinationRule(kind, str(key), rel))
        return cls(rules)

    def __iter__(self):
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def override_for(self, repo_name: str) -> Optional[str]:
        return self._overrides.get(repo_name)

    def mapping_for(self, org_or_group: str) -> Optional[str]:
        return self._mappings.get(org_or_group)

    def known_paths(self) -> List[str]:
        return sorted({r.path for r in self._rules})


@dataclass(frozen=True)
class Resolution:
    repo_name: str
    relative_path: Optional[str] = None
    path: Optional[Path] = None
    source: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.source is not None


class DestinationResolver:
    def __init__(
        self,
        rules: DestinationRules,
        dev_root: Path,
        selector: Selector,
        ask_path: Callable[[str], str],
    ) -> None:
        self.rules = rules
        self.dev_root = Path(dev_root)
        self.selector = selector
        self.ask_path = ask_path

    def _resolved(self, repo_name: str, rel: str, source: str) -> Resolution:
        return Resolution(repo_name=repo_name, relative_path=rel, path=self.dev_root / rel, source=source)

    def lookup(self, repo_name: str, org_or_group: str) -> Resolution:
        """Configured rules only; never prompts."""

        rel = self.rules.override_for(repo_name)
        if rel is not None:
            return self._resolved(repo_name, rel, RuleKind.OVERRIDE.value)

        rel = self.rules.mapping_for(org_or_group)
        if rel is not None:
            return self._resolved(repo_name, rel, RuleKind.ORGANIZATION.value)

        return Resolution(repo_name=repo_name)

    def resolve(self, repo_name: str, org_or_group: str) -> Resolution:
        found = self.lookup(repo_name, org_or_group)
        if found.resolved:
            return found
        return self._ask(repo_name)

    def _ask(self, repo_name: str) -> Resolution:
        items = [LabeledItem(value=p, label=p) for p in self.rules.known_paths()]
        items.append(LabeledItem(value=NEW_FOLDER, label=NEW_FOLDER))

        logger.info("No mapping found for '%s'. Where should it be cloned?", repo_name)
        chosen = self.selector.choose(items, f"Select the destination for {repo_name}")
        if not chosen:
            return Resolution(repo_name=repo_name)

        rel = chosen[0]
        if rel == NEW_FOLDER:
            answer = self.ask_path(f"Enter the path (relative to {self.dev_root}/): ")
            rel = _clean_relative(answer)
            if rel is None:
                if answer.strip():
                    logger.warning("%r is not a folder under %s; skipping %s", answer.strip(), self.dev_root, repo_name)
                return Resolution(repo_name=repo_name)
            logger.info(
                "Add '%s = \"%s\"' under [%s] to skip this prompt next time",
                repo_name,
                rel,
                OVERRIDES_PATH,
            )
        return self._resolved(repo_name, rel, "interactive")
