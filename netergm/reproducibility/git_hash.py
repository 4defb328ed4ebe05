"""Code version stamp for result.json.

A fitted model is only reproducible from a clean checkout, so uncommitted
changes (staged or not) are flagged with a "-dirty" suffix.
"""

import subprocess


def _git(*args: str) -> str:
    return subprocess.run(
        ["git", *args],
        capture_output=True,
        text=True,
        check=True,
    ).stdout.strip()


def get_git_hash() -> str:
    """"a3f9c1d", "a3f9c1d-dirty", or "unknown" outside a git checkout."""
    try:
        sha = _git("rev-parse", "--short", "HEAD")
        modified = _git("status", "--porcelain", "--untracked-files=no")
    except (subprocess.CalledProcessError, FileNotFoundError):
        return "unknown"
    return f"{sha}-dirty" if modified else sha
