"""Detect changed files with git."""

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

GIT_TIMEOUT = 30


def _run_git(repo_path: Path, *args: str) -> str | None:
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=repo_path,
            capture_output=True,
            text=True,
            check=True,
            timeout=GIT_TIMEOUT,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.warning(f"git {' '.join(args)} failed in {repo_path}: {e}")
        return None
    return result.stdout.strip()


def head_commit(repo_path: Path) -> str | None:
    """Return the commit hash of HEAD, or None if it cannot be determined."""
    output = _run_git(repo_path, "rev-parse", "HEAD")
    return output or None


def changed_files_since(repo_path: Path, since_ref: str) -> list[str] | None:
    """Return paths changed between ``since_ref`` and HEAD.

    Deleted files are included, so callers can drop their passages. Paths are
    relative to the repository root, as git reports them.

    Returns:
        Changed paths, or None when git cannot diff against ``since_ref``
        (for example after a rebase removed that commit). An empty list
        means nothing changed.
    """
    output = _run_git(repo_path, "diff", "--name-only", f"{since_ref}..HEAD")
    if output is None:
        return None
    if not output:
        return []
    return [line for line in output.splitlines() if line]
