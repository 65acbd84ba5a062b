"""Synchronisation of the working directory with a file map."""

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path

from .plumbing import ObjectStore

logger = logging.getLogger(__name__)


class WorkingDirectory:
    """The checked-out files of a repository, everything under the root except the repository directory."""

    def __init__(self, root: Path, repo_path: Path, store: ObjectStore) -> None:
        self.root = Path(root)
        self.repo_path = Path(repo_path)
        self.store = store

    def _is_repo_path(self, path: Path) -> bool:
        return path.is_relative_to(self.repo_path)

    def list_files(self) -> list[str]:
        """List the regular files of the working directory as sorted relative POSIX paths."""
        return sorted(path.relative_to(self.root).as_posix() for path in self.root.rglob('*')
                      if path.is_file() and not self._is_repo_path(path))

    def clean(self, keep: Iterable[str]) -> None:
        """Delete every file whose path is not in `keep`, then prune directories left empty.

        Removal is best-effort: a file or directory that cannot be removed is logged and left in place."""
        keep = set(keep)

        for relative_path in self.list_files():
            if relative_path in keep:
                continue
            try:
                (self.root / relative_path).unlink()
            except OSError as e:
                logger.warning('Could not remove file %s: %s', relative_path, e)

        directories = [path for path in self.root.rglob('*') if path.is_dir() and not self._is_repo_path(path)]
        # Deepest directories first so that parents can become empty
        for directory in sorted(directories, key=lambda d: len(str(d)), reverse=True):
            try:
                if not any(directory.iterdir()):
                    directory.rmdir()
            except OSError as e:
                logger.warning('Could not remove directory %s: %s', directory, e)

    def restore(self, files: Mapping[str, str]) -> None:
        """Write the blob of every entry to its path, creating parent directories as needed.

        :raises ObjectNotFoundError: If a blob does not exist."""
        for relative_path, blob_hash in files.items():
            target = self.root / relative_path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(self.store.get(blob_hash))

    def sync(self, files: Mapping[str, str]) -> None:
        """Make the working directory hold exactly the given files."""
        self.clean(files.keys())
        self.restore(files)
