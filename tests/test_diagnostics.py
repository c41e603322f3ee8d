import pytest

from macsetup.repos.diagnostics import classify_exit_code, diagnose


@pytest.mark.parametrize(
    "code,label",
    [(0, "success"), (1, "generic error"), (124, "timeout"), (127, "command not found"), (128, "fatal error"), (255, "SSH/auth-layer failure"), (7, "unknown error")],
)
def test_classify_exit_code(code, label):
    assert classify_exit_code(code) == label


@pytest.mark.parametrize(
    "code,stderr,issue",
    [
        (124, "", "Git clone timeout"),
        (128, "git@github.com: Permission denied (publickey).", "Authentication failure"),
        (128, "fatal: Authentication failed for 'https://github.com/o/r.git/'", "Authentication failure"),
        (128, "warning: Remote branch v9 not found in upstream origin", "Branch not found"),
        (128, "remote: Repository not found.", "Repository not found"),
        (128, "fatal: unable to access: Could not resolve host: github.com", "Network connectivity issue"),
        (127, "git: command not found", "Git not installed"),
    ],
)
def test_first_matching_rule_wins(code, stderr, issue):
    assert diagnose("git clone x", code, stderr).issue == issue


def test_timeout_exit_code_beats_stderr_patterns():
    diag = diagnose("git clone x", 124, "Could not resolve host", timeout_s=600)
    assert diag.issue == "Git clone timeout"
    assert "600s" in diag.remediation


def test_ssh_url_gets_ssh_hint():
    diag = diagnose("git clone", 128, "Permission denied", clone_url="git@github.com:o/r.git")
    assert "ssh-add" in diag.remediation


def test_unknown_error_keeps_raw_output():
    diag = diagnose("git clone x", 3, "  something odd  \n")
    assert diag.issue is None
    assert diag.remediation is None
    assert diag.stderr == "something odd"
    assert diag.summary == "unknown error (exit 3)"


def test_missing_git_is_not_reported_as_missing_repository():
    diag = diagnose("git clone https://github.com/o/r.git r", 127, "git: command not found")
    assert diag.issue == "Git not installed"
    assert diag.exit_class == "command not found"
    assert "xcode-select --install" in diag.remediation
