"""The staging index: the file map the next commit will record."""

from collections.abc import Mapping
from pathlib import Path

from .ref import HashRef


class IndexFileError(Exception):
    """Exception raised when the index file cannot be read or written."""


def parse_index(content: str) -> dict[str, HashRef]:
    """Parse `<path> <hash>` lines. The hash is the last field, so paths may contain spaces."""
    entries: dict[str, HashRef] = {}

    for line in content.splitlines():
        path, sep, blob_hash = line.rpartition(' ')
        if not sep or not path:
            continue
        entries[path] = HashRef(blob_hash)

    return entries


def serialize_index(entries: Mapping[str, str]) -> str:
    return ''.join(f'{path} {entries[path]}\n' for path in sorted(entries))


class Index:
    """The index file of a repository. Every update rewrites the whole file."""

    def __init__(self, index_file: Path) -> None:
        self.index_file = Path(index_file)

    def read(self) -> dict[str, HashRef]:
        """Read the staged entries. A missing index file is an empty index."""
        try:
            return parse_index(self.index_file.read_text())
        except FileNotFoundError:
            return {}
        except OSError as e:
            msg = f'Cannot read index file {self.index_file}'
            raise IndexFileError(msg) from e

    def write(self, entries: Mapping[str, str]) -> None:
        try:
            self.index_file.write_text(serialize_index(entries))
        except OSError as e:
            msg = f'Cannot write index file {self.index_file}'
            raise IndexFileError(msg) from e
