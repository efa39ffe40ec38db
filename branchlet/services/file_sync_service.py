"""Copies untracked project files (``.env``, editor settings, ...) into new worktrees."""
import errno
import os
import shutil
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterable, Iterator, List

from branchlet.config import Config
from branchlet.exceptions import FileSyncError
from branchlet.utils.logging import get_logger

logger = get_logger(__name__)


def matches_any(relative_path: str, patterns: Iterable[str]) -> bool:
    """Check a POSIX-style relative path against glob patterns.

    ``*`` matches across ``/``, and a leading ``**/`` also matches at the top
    level, so ``**/node_modules/**`` excludes both ``node_modules/x`` and
    ``pkg/node_modules/x``.
    """
    for pattern in patterns:
        if fnmatchcase(relative_path, pattern):
            return True
        if pattern.startswith("**/") and fnmatchcase(relative_path, pattern[3:]):
            return True
    return False


class FileSyncService:
    """Copies files matching the configured include globs into a worktree."""

    def _expand(self, source_root: Path, patterns: Iterable[str]) -> List[Path]:
        """Expand include globs against ``source_root``, ancestors before descendants.

        Absolute patterns and matches that climb out of ``source_root`` are
        skipped with a warning.
        """
        matches = set()
        for pattern in patterns:
            if not pattern.strip():
                continue
            try:
                found = list(source_root.glob(pattern))
            except (ValueError, NotImplementedError) as e:
                logger.warning(f"Skipping invalid copy pattern '{pattern}': {e}")
                continue
            if not found:
                logger.debug(f"Copy pattern '{pattern}' matched nothing")
            for path in found:
                if not self._is_inside(source_root, path):
                    logger.warning(f"Skipping {path}: outside {source_root}")
                    continue
                matches.add(path)
        return sorted(matches, key=lambda p: (len(p.relative_to(source_root).parts), str(p)))

    @staticmethod
    def _is_inside(root: Path, path: Path) -> bool:
        try:
            relative = path.relative_to(root)
        except ValueError:
            return False
        return ".." not in relative.parts

    @staticmethod
    def _raise_walk_error(error: OSError) -> None:
        if isinstance(error, FileNotFoundError):
            logger.debug(f"Skipping {error.filename}: no longer exists")
            return
        raise FileSyncError(error.filename or "", error.strerror or str(error)) from error

    def _walk(self, entry: Path) -> Iterator[Path]:
        """Yield ``entry`` if it is a file, or every file below it if it is a directory.

        Raises:
            FileSyncError: If a directory below ``entry`` cannot be read
        """
        if entry.is_dir() and not entry.is_symlink():
            for dirpath, _dirnames, filenames in os.walk(entry, onerror=self._raise_walk_error):
                for filename in filenames:
                    yield Path(dirpath) / filename
        else:
            yield entry

    def _copy_file(self, source: Path, destination: Path) -> bool:
        """Copy one file, returning False if it vanished before it could be copied."""
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, destination, follow_symlinks=False)
            return True
        except FileNotFoundError:
            logger.debug(f"Skipping {source}: no longer exists")
            return False
        except OSError as e:
            if e.errno == errno.ENOSPC:
                raise FileSyncError(str(source), "no space left on device") from e
            raise FileSyncError(str(source), e.strerror or str(e)) from e

    def copy_files(self, source_root: str, dest_root: str, config: Config) -> List[str]:
        """
        Copy files matched by ``config.worktree_copy_patterns`` into a worktree.

        Entries also matched by ``config.worktree_copy_ignores`` are skipped,
        including individual files inside a matched directory. A pattern that
        matches nothing is not an error.

        Args:
            source_root: Root of the repository to copy from
            dest_root: Root of the new worktree
            config: Resolved configuration

        Returns:
            Relative POSIX paths of the files copied

        Raises:
            FileSyncError: On an unrecoverable I/O error (permissions, disk full)
        """
        source = Path(source_root)
        destination = Path(dest_root)
        ignores = config.worktree_copy_ignores
        copied: List[str] = []
        seen = set()

        for entry in self._expand(source, config.worktree_copy_patterns):
            for file_path in self._walk(entry):
                relative = file_path.relative_to(source).as_posix()
                if relative in seen:
                    continue
                seen.add(relative)

                if matches_any(relative, ignores):
                    logger.debug(f"Excluded {relative}")
                    continue

                if self._copy_file(file_path, destination / relative):
                    copied.append(relative)

        logger.info(f"Copied {len(copied)} file(s) into {dest_root}")
        return copied
