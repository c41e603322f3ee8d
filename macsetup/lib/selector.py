from __future__ import annotations

import logging
import subprocess
import sys
from dataclasses import dataclass
from typing import List, Protocol, Sequence

logger = logging.getLogger(__name__)

# fzf: 1 = no match, 130 = interrupted with ESC / Ctrl-C
_FZF_CANCEL_CODES = {1, 130}


@dataclass(frozen=True)
class LabeledItem:
    value: str
    label: str
    description: str = ""


class Selector(Protocol):
    """Interactive chooser. An empty result means the user cancelled."""

    def choose(self, items: Sequence[LabeledItem], prompt: str, *, multi: bool = False) -> List[str]:
        ...


class FzfSelector:
    """Selector backed by fzf.

    Lines are fed as ``<index>\\t<label>\\t<description>`` and only the label
    column is displayed, so labels never need to be unique or escaped.
    """

    def __init__(self, *, binary: str = "fzf", height: str = "40%") -> None:
        self.binary = binary
        self.height = height

    def choose(self, items: Sequence[LabeledItem], prompt: str, *, multi: bool = False) -> List[str]:
        if not items:
            return []

        lines = [
            f"{i}\t{it.label.replace(chr(9), ' ')}\t{it.description.replace(chr(9), ' ')}"
            for i, it in enumerate(items)
        ]
        argv = [
            self.binary,
            f"--height={self.height}",
            "--border",
            "--delimiter=\t",
            "--with-nth=2",
            f"--header={prompt}",
            "--prompt=> ",
        ]
        if multi:
            argv.append("--multi")
        if any(it.description for it in items):
            argv += ["--preview=echo {3}", "--preview-window=up:3:wrap"]

        try:
            # stderr stays attached to the terminal: fzf draws its UI there.
            p = subprocess.run(argv, input="\n".join(lines), text=True, stdout=subprocess.PIPE)
        except FileNotFoundError:
            logger.error("%s not found; install it with: brew install fzf", self.binary)
            return []

        if p.returncode in _FZF_CANCEL_CODES:
            return []
        if p.returncode != 0:
            logger.warning("%s exited with %s", self.binary, p.returncode)
            return []

        chosen: List[str] = []
        for line in p.stdout.splitlines():
            idx, _, _ = line.partition("\t")
            try:
                chosen.append(items[int(idx)].value)
            except (ValueError, IndexError):
                logger.debug("Ignoring unexpected selector line: %r", line)
        return chosen


def ask_text(prompt: str) -> str:
    """Read one free-form line from the terminal; EOF counts as empty."""

    try:
        sys.stderr.write(prompt)
        sys.stderr.flush()
        return input().strip()
    except EOFError:
        return ""


def ask_yes_no(prompt: str, default: bool = True) -> bool:
    suffix = " [Y/n] " if default else " [y/N] "
    answer = ask_text(prompt + suffix).lower()
    if not answer:
        return default
    return answer in {"y", "yes", "o", "oui"}
