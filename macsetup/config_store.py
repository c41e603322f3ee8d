from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

try:  # Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - older interpreters
    import tomli as tomllib  # type: ignore[import-untyped]

import yaml

from .errors import ConfigError, ConfigNotLoadedError

logger = logging.getLogger(__name__)


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"yaml", "yml"}:
        return "yaml"
    # Default to TOML for unknown extensions.
    return "toml"


def split_path(path: str) -> List[str]:
    """Split a dotted path, honouring double-quoted segments.

    ``repositories.destinations."my.org"`` -> ``["repositories", "destinations", "my.org"]``
    """

    segments: List[str] = []
    buf: List[str] = []
    quoted = False
    was_quoted = False
    for ch in path:
        if ch == '"':
            quoted = not quoted
            was_quoted = True
            continue
        if ch == "." and not quoted:
            if not buf and not was_quoted:
                raise ConfigError(f"Empty segment in config path: {path!r}")
            segments.append("".join(buf))
            buf = []
            was_quoted = False
            continue
        buf.append(ch)
    if quoted:
        raise ConfigError(f"Unterminated quote in config path: {path!r}")
    if not buf and not was_quoted:
        raise ConfigError(f"Empty segment in config path: {path!r}")
    segments.append("".join(buf))
    return segments


def _scalar_to_str(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ConfigStore:
    """Read-only view over the declarative setup file.

    The store is created at startup but only becomes queryable after
    ``load()``, which the orchestrator calls once the bootstrap module has
    succeeded.
    """

    def __init__(self, path: str | Path, data: Optional[Dict[str, Any]] = None) -> None:
        self.path = Path(path)
        self._data: Optional[Dict[str, Any]] = data

    @classmethod
    def from_mapping(cls, data: Dict[str, Any], path: str | Path = "<memory>") -> "ConfigStore":
        return cls(path, data=data)

    @property
    def loaded(self) -> bool:
        return self._data is not None

    def load(self) -> "ConfigStore":
        p = self.path
        if not p.exists():
            raise ConfigError(f"Configuration file not found: {p}")

        fmt = _detect_format(p)
        try:
            if fmt == "yaml":
                data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
            else:
                with p.open("rb") as fh:
                    data = tomllib.load(fh)
        except (tomllib.TOMLDecodeError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to parse {p}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"{p} must contain a mapping/table at the top level")

        self._data = data
        logger.debug("Loaded configuration from %s (%s)", p, fmt)
        return self

    def _lookup(self, path: str) -> Tuple[Any, bool]:
        if self._data is None:
            raise ConfigNotLoadedError(
                f"Config store queried before initialization (path={path!r})"
            )
        node: Any = self._data
        for seg in split_path(path):
            if not isinstance(node, dict) or seg not in node:
                return None, False
            node = node[seg]
        return node, True

    def get_string(self, path: str) -> Tuple[str, bool]:
        value, ok = self._lookup(path)
        if not ok or value is None or isinstance(value, (dict, list)):
            return "", False
        return _scalar_to_str(value), True

    def get_array(self, path: str) -> Tuple[List[str], bool]:
        value, ok = self._lookup(path)
        if not ok or not isinstance(value, list):
            return [], False
        return [_scalar_to_str(v).strip() for v in value if v is not None and _scalar_to_str(v).strip()], True

    def get_bool(self, path: str, default: bool) -> bool:
        raw, ok = self.get_string(path)
        if not ok or raw.strip() == "":
            return default
        return raw.strip().lower() in {"1", "true", "yes", "on"}

    def get_table(self, path: str) -> Dict[str, Any]:
        value, ok = self._lookup(path)
        if not ok or not isinstance(value, dict):
            return {}
        return dict(value)

    def section_keys(self, path: str) -> List[str]:
        return list(self.get_table(path).keys())
