"""Immutable object model of a libminigit repository."""

from dataclasses import dataclass, field
from enum import Enum

from .constants import DIR_MODE, FILE_MODE


class TreeRecordType(Enum):
    """The kind of object a tree record points to."""

    BLOB = 'blob'
    TREE = 'tree'


@dataclass(frozen=True)
class Blob:
    """Raw file content stored under its own hash."""

    hash: str


@dataclass(frozen=True)
class TreeRecord:
    """A single entry of a tree object."""

    type: TreeRecordType
    hash: str
    name: str
    mode: str = ''

    def __post_init__(self) -> None:
        if not self.mode:
            object.__setattr__(self, 'mode', FILE_MODE if self.type == TreeRecordType.BLOB else DIR_MODE)


@dataclass
class Tree:
    """A directory listing, keyed by entry name."""

    records: dict[str, TreeRecord] = field(default_factory=dict)


@dataclass
class Commit:
    """A snapshot of a tree together with its history metadata.

    `hash` is filled in once the commit is saved or loaded; it is never part of the serialized form."""

    tree_hash: str
    author: str
    committer: str
    message: str
    timestamp: int
    parents: list[str] = field(default_factory=list)
    hash: str | None = None

    @property
    def parent(self) -> str | None:
        """The first parent, which is the one history follows."""
        return self.parents[0] if self.parents else None
