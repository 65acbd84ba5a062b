"""Serialization of commit objects."""

import time

from .constants import HASH_LENGTH
from .objects import Commit
from .plumbing import ObjectStore, hash_string
from .ref import HashRef

TREE_PREFIX = 'tree '
PARENT_PREFIX = 'parent '
AUTHOR_PREFIX = 'author '
COMMITTER_PREFIX = 'committer '


def now() -> int:
    return int(time.time())


def serialize_commit(commit: Commit, timestamp: int) -> str:
    """Build the canonical text of a commit.

    The `hash` and `timestamp` fields of the commit are not used; the given timestamp is written instead."""
    lines = [f'{TREE_PREFIX}{commit.tree_hash}']
    lines.extend(f'{PARENT_PREFIX}{parent}' for parent in commit.parents)
    lines.append(f'{AUTHOR_PREFIX}{commit.author} {timestamp}')
    lines.append(f'{COMMITTER_PREFIX}{commit.committer} {timestamp}')
    lines.append('')
    lines.append(commit.message)

    return '\n'.join(lines) + '\n'


def save_commit(store: ObjectStore, commit: Commit) -> HashRef:
    """Store a commit object and return its hash.

    The commit is stamped with the time it is saved at, not with its own `timestamp` field.
    The saved timestamp and hash are written back to the commit."""
    timestamp = now()
    content = serialize_commit(commit, timestamp)
    commit_hash = HashRef(hash_string(content))

    store.put(commit_hash, content)

    commit.timestamp = timestamp
    commit.hash = commit_hash
    return commit_hash


def _split_identity(value: str) -> tuple[str | None, int | None]:
    # The identity ends with the last '>', whatever follows it is the timestamp
    end = value.rfind('>')
    if end == -1:
        return None, None

    timestamp = value[end + 1:].lstrip(' ')
    return value[:end + 1], int(timestamp) if timestamp.isdigit() else None


def parse_commit(content: str, commit_hash: str | None = None) -> Commit:
    """Parse the canonical text of a commit.

    Unknown header lines are ignored. If neither the author nor the committer line carries a
    timestamp, the current time is used."""
    lines = content.split('\n')
    tree_hash = ''
    author = ''
    committer = ''
    timestamp: int | None = None
    parents: list[str] = []

    position = 0
    while position < len(lines) and lines[position]:
        line = lines[position]
        position += 1

        if line.startswith(TREE_PREFIX):
            tree_hash = line[len(TREE_PREFIX):len(TREE_PREFIX) + HASH_LENGTH]
        elif line.startswith(PARENT_PREFIX):
            parents.append(HashRef(line[len(PARENT_PREFIX):len(PARENT_PREFIX) + HASH_LENGTH]))
        elif line.startswith(AUTHOR_PREFIX):
            identity, stamp = _split_identity(line[len(AUTHOR_PREFIX):])
            if identity is not None:
                author = identity
                timestamp = stamp if stamp is not None else timestamp
        elif line.startswith(COMMITTER_PREFIX):
            identity, stamp = _split_identity(line[len(COMMITTER_PREFIX):])
            if identity is not None:
                committer = identity
                timestamp = stamp if stamp is not None else timestamp

    message = '\n'.join(lines[position + 1:]).removesuffix('\n')

    return Commit(HashRef(tree_hash), author, committer, message,
                  timestamp if timestamp is not None else now(),
                  parents, HashRef(commit_hash) if commit_hash else None)


def load_commit(store: ObjectStore, commit_hash: str) -> Commit:
    """Load a commit object from the store.

    :raises ObjectNotFoundError: If the commit does not exist."""
    return parse_commit(store.get_text(commit_hash), commit_hash)
