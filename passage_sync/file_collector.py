"""Collect indexable files from a repository."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from passage_sync.config import RepoConfig

logger = logging.getLogger(__name__)


@dataclass
class FileInfo:
    """A file's metadata and content, ready for chunking."""

    path: str  # Relative to the repo root, POSIX separators
    content: str
    size_kb: float


def is_indexable(rel_path: str, repo: RepoConfig) -> bool:
    """Check extension, hidden-path and ignored-directory rules for a path."""
    parts = PurePosixPath(rel_path).parts
    if not parts:
        return False
    if any(part.startswith(".") for part in parts):
        return False
    if any(part in repo.ignore_dirs for part in parts[:-1]):
        return False
    return any(rel_path.endswith(ext) for ext in repo.extensions)


def to_repo_relative(git_path: str, repo: RepoConfig) -> str | None:
    """Map a path reported by git to a path relative to ``repo.root``.

    Returns None for paths outside the configured base path.
    """
    if not repo.base_path:
        return git_path
    prefix = PurePosixPath(repo.base_path)
    try:
        return PurePosixPath(git_path).relative_to(prefix).as_posix()
    except ValueError:
        return None


def collect_file(repo: RepoConfig, rel_path: str) -> FileInfo | None:
    """Read one file for indexing.

    Returns:
        FileInfo, or None when the file is gone, excluded by the repo rules,
        too large, or not valid UTF-8. The sync runner treats None as a
        deletion.
    """
    if not is_indexable(rel_path, repo):
        return None

    abs_path = repo.root / rel_path
    try:
        size_kb = abs_path.stat().st_size / 1024
        if size_kb > repo.max_file_size_kb:
            logger.debug(f"Skipping {rel_path}: {size_kb:.1f} KB exceeds limit")
            return None
        content = abs_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except UnicodeDecodeError:
        logger.warning(f"Skipping {rel_path}: not valid UTF-8")
        return None
    except OSError as e:
        logger.warning(f"Skipping {rel_path}: {e}")
        return None

    return FileInfo(path=rel_path, content=content, size_kb=size_kb)


def collect_files(repo: RepoConfig) -> list[FileInfo]:
    """Collect every indexable file under the repo root, sorted by path."""
    root = repo.root
    if not root.is_dir():
        logger.warning(f"Repo root does not exist: {root}")
        return []

    files: list[FileInfo] = []
    for dirpath, dirnames, filenames in os.walk(root):
        # Prune hidden and ignored directories in place so os.walk skips them
        dirnames[:] = sorted(
            d for d in dirnames if not d.startswith(".") and d not in repo.ignore_dirs
        )
        for filename in sorted(filenames):
            rel_path = (Path(dirpath) / filename).relative_to(root).as_posix()
            info = collect_file(repo, rel_path)
            if info is not None:
                files.append(info)

    files.sort(key=lambda f: f.path)
    logger.debug(f"Collected {len(files)} files from {root}")
    return files
