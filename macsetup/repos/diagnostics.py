from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

EXIT_CODE_CLASSES = {
    0: "success",
    1: "generic error",
    124: "timeout",
    127: "command not found",
    128: "fatal error",
    255: "SSH/auth-layer failure",
}


def classify_exit_code(code: int) -> str:
    return EXIT_CODE_CLASSES.get(code, "unknown error")


@dataclass(frozen=True)
class DiagnosticRule:
    issue: str
    remediation: str
    patterns: Tuple[str, ...] = ()
    exit_codes: Tuple[int, ...] = ()

    def matches(self, exit_code: int, stderr: str) -> bool:
        if exit_code in self.exit_codes:
            return True
        return any(re.search(p, stderr, re.IGNORECASE) for p in self.patterns)


# Evaluated top to bottom, first match wins. A missing git binary and branch
# errors also say "not found", so they sit above the generic repository rule.
DIAGNOSTIC_RULES: Sequence[DiagnosticRule] = (
    DiagnosticRule(
        issue="Git clone timeout",
        remediation="Check network connection or increase GIT_CLONE_TIMEOUT (current: {timeout}s)",
        exit_codes=(124,),
    ),
    DiagnosticRule(
        issue="Git not installed",
        remediation="Install the Xcode Command Line Tools (xcode-select --install) or put git on PATH",
        patterns=(r"git: command not found",),
        exit_codes=(127,),
    ),
    DiagnosticRule(
        issue="Authentication failure",
        remediation="{auth_hint}",
        patterns=(
            r"Permission denied",
            r"Could not read from remote",
            r"publickey",
            r"Authentication failed",
        ),
    ),
    DiagnosticRule(
        issue="Branch not found",
        remediation="Check the branch name in mac-setup.toml or DOTFILES_BRANCH",
        patterns=(r"Remote branch .* not found", r"branch .* not found"),
    ),
    DiagnosticRule(
        issue="Repository not found",
        remediation="Verify the repository URL and that the repository exists and is accessible",
        patterns=(r"Repository not found", r"not found"),
    ),
    DiagnosticRule(
        issue="Network connectivity issue",
        remediation="Check internet connection and DNS resolution",
        patterns=(r"Failed to connect", r"Connection timed out", r"Could not resolve host"),
    ),
)


@dataclass(frozen=True)
class CloneDiagnostic:
    command: str
    exit_code: int
    exit_class: str
    stderr: str
    issue: Optional[str] = None
    remediation: Optional[str] = None

    @property
    def summary(self) -> str:
        if self.issue:
            return f"{self.issue} (exit {self.exit_code})"
        return f"{self.exit_class} (exit {self.exit_code})"


def _auth_hint(clone_url: str) -> str:
    if clone_url.startswith("git@") or clone_url.startswith("ssh://"):
        return "Run 'ssh-add -l' to check SSH keys, or 'gh auth login' for GitHub CLI auth"
    return "Run 'gh auth login' (GitHub) or 'glab auth login' (GitLab) for authentication"


def diagnose(
    command: str,
    exit_code: int,
    stderr: str,
    *,
    clone_url: str = "",
    timeout_s: float | None = None,
    rules: Sequence[DiagnosticRule] = DIAGNOSTIC_RULES,
) -> CloneDiagnostic:
    """Classify a failed clone. Advisory only: raw exit code and stderr are always kept."""

    issue: Optional[str] = None
    remediation: Optional[str] = None
    for rule in rules:
        if rule.matches(exit_code, stderr):
            issue = rule.issue
            remediation = rule.remediation.format(
                timeout=int(timeout_s) if timeout_s else "?",
                auth_hint=_auth_hint(clone_url),
            )
            break

    return CloneDiagnostic(
        command=command,
        exit_code=exit_code,
        exit_class=classify_exit_code(exit_code),
        stderr=stderr.strip(),
        issue=issue,
        remediation=remediation,
    )


def log_diagnostic(repo_name: str, diag: CloneDiagnostic) -> None:
    logger.error("Failed to clone %s", repo_name)
    logger.error("  Command: %s", diag.command)
    logger.error("  Git exit code: %s (%s)", diag.exit_code, diag.exit_class)
    if diag.stderr:
        logger.error("  Git stderr:")
        for line in diag.stderr.splitlines():
            logger.error("    %s", line)
    if diag.issue:
        logger.error("  Detected issue: %s", diag.issue)
        logger.error("  Suggestion: %s", diag.remediation)
