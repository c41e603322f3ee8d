from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import pytest

from macsetup.config_store import ConfigStore
from macsetup.context import ModuleCtx
from macsetup.lib.command import CmdResult
from macsetup.pipeline import RunOptions
from macsetup.settings import Settings


def ok(argv: Sequence[str] = (), stdout: str = "") -> CmdResult:
    return CmdResult(argv=list(argv), returncode=0, stdout=stdout, stderr="")


def fail(argv: Sequence[str] = (), code: int = 1, stderr: str = "") -> CmdResult:
    return CmdResult(argv=list(argv), returncode=code, stdout="", stderr=stderr)


class FakeRunner:
    """Stands in for ShellRunner. Answers are matched on the argv prefix."""

    def __init__(self, *, dry_run: bool = False, tools: Optional[Dict[str, str]] = None) -> None:
        self.dry_run = dry_run
        self.tools = dict(tools or {})
        self.calls: List[List[str]] = []
        self.queries: List[List[str]] = []
        self.answers: List[Tuple[Tuple[str, ...], CmdResult]] = []

    def answer(self, prefix: Sequence[str], result: CmdResult) -> None:
        self.answers.insert(0, (tuple(prefix), result))

    def _lookup(self, argv: Sequence[str]) -> CmdResult:
        for prefix, result in self.answers:
            if tuple(argv[: len(prefix)]) == prefix:
                return result
        return ok(argv)

    def run(self, argv, *, timeout=None, check=False, cwd=None, env=None, input_text=None) -> CmdResult:
        self.calls.append(list(argv))
        if self.dry_run:
            return ok(argv)
        return self._lookup(argv)

    def run_dry(self, description: str) -> None:
        self.calls.append(["<dry>", description])

    def query(self, argv, *, timeout=60) -> CmdResult:
        self.queries.append(list(argv))
        return self._lookup(argv)

    def which(self, tool: str) -> Optional[str]:
        return self.tools.get(tool)


class FakeSelector:
    """Returns scripted answers in order; records every prompt it saw."""

    def __init__(self, answers: Optional[Sequence] = None) -> None:
        self.answers = list(answers or [])
        self.prompts: List[Tuple[str, List[str]]] = []
        self.labels: List[List[str]] = []

    def choose(self, items, prompt, *, multi=False) -> List[str]:
        self.prompts.append((prompt, [i.value for i in items]))
        self.labels.append([i.label for i in items])
        if not self.answers:
            return []
        answer = self.answers.pop(0)
        if callable(answer):
            return list(answer(items))
        return list(answer)


def select_all(items) -> List[str]:
    return [i.value for i in items]


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    home = tmp_path / "home"
    home.mkdir()
    config = home / "mac-setup.toml"
    config.write_text("")
    return Settings(
        home=home,
        config_path=config,
        log_path=home / ".mac-setup.log",
        dev_root=home / "Development",
    )


@pytest.fixture
def make_ctx(settings: Settings) -> Callable[..., ModuleCtx]:
    def _make(
        data: Optional[dict] = None,
        *,
        runner: Optional[FakeRunner] = None,
        selector: Optional[FakeSelector] = None,
        dry_run: bool = False,
        ask_text: Callable[[str], str] = lambda _prompt: "",
        **overrides,
    ) -> ModuleCtx:
        s = settings
        if overrides:
            s = dataclasses.replace(s, **overrides)
        return ModuleCtx(
            settings=s,
            options=RunOptions(dry_run=dry_run),
            store=ConfigStore.from_mapping(data or {}),
            runner=runner or FakeRunner(dry_run=dry_run),
            selector=selector or FakeSelector(),
            ask_text=ask_text,
            ask_yes_no=lambda _prompt, default=True: default,
        )

    return _make
