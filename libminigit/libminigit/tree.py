"""Conversion between flat path maps and persisted tree objects."""

import logging
import posixpath
from collections.abc import Mapping

from .constants import HASH_LENGTH, ROOT_DIR
from .objects import Tree, TreeRecord, TreeRecordType
from .plumbing import ObjectStore, hash_string
from .ref import HashRef

logger = logging.getLogger(__name__)

EMPTY_TREE_HASH = HashRef(hash_string(''))


def serialize_tree(tree: Tree) -> str:
    """Serialize a tree as one `<mode> <kind> <hash> <name>` line per record.

    Blob records come first, then tree records, each sorted by name, so that equal trees always hash equally."""
    blobs = sorted((r for r in tree.records.values() if r.type == TreeRecordType.BLOB), key=lambda r: r.name)
    trees = sorted((r for r in tree.records.values() if r.type == TreeRecordType.TREE), key=lambda r: r.name)

    return ''.join(f'{record.mode} {record.type.value} {record.hash} {record.name}\n' for record in blobs + trees)


def parse_record(line: str) -> TreeRecord | None:
    """Parse a single tree line, returning None when it is malformed."""
    first_space = line.find(' ')
    second_space = line.find(' ', first_space + 1) if first_space != -1 else -1
    if second_space == -1:
        return None

    mode = line[:first_space]
    kind = line[first_space + 1:second_space]
    record_hash = line[second_space + 1:second_space + 1 + HASH_LENGTH]
    name = line[second_space + 2 + HASH_LENGTH:]

    if len(record_hash) != HASH_LENGTH or not name:
        return None

    try:
        record_type = TreeRecordType(kind)
    except ValueError:
        return None

    return TreeRecord(record_type, HashRef(record_hash), name, mode)


def parse_tree(content: str) -> Tree:
    """Parse the serialized form of a tree. Malformed lines are skipped rather than rejected."""
    records: dict[str, TreeRecord] = {}

    for line in content.splitlines():
        record = parse_record(line)
        if record is None:
            logger.debug('Skipping malformed tree record %r', line)
            continue

        records[record.name] = record

    return Tree(records)


def save_tree(store: ObjectStore, tree: Tree) -> HashRef:
    """Store a tree object and return its hash."""
    content = serialize_tree(tree)
    tree_hash = HashRef(hash_string(content))
    store.put(tree_hash, content)
    return tree_hash


def load_tree(store: ObjectStore, tree_hash: str) -> Tree:
    """Load a tree object from the store.

    :raises ObjectNotFoundError: If the tree object does not exist."""
    return parse_tree(store.get_text(tree_hash))


def flatten_tree(store: ObjectStore, tree_hash: str, base_path: str = '') -> dict[str, HashRef]:
    """Resolve a tree and all of its subtrees into a flat `path -> blob hash` map.

    :param store: The object store holding the trees.
    :param tree_hash: The hash of the tree to flatten.
    :param base_path: The path the tree is located at, prefixed to every returned path.
    :return: A map of file paths to blob hashes.
    :raises ObjectNotFoundError: If the tree or one of its subtrees does not exist."""
    files: dict[str, HashRef] = {}

    for record in load_tree(store, tree_hash).records.values():
        path = posixpath.join(base_path, record.name) if base_path else record.name

        if record.type == TreeRecordType.BLOB:
            files[path] = HashRef(record.hash)
        else:
            files.update(flatten_tree(store, record.hash, path))

    return files


def parent_dir(path: str) -> str:
    """Get the directory a path lives in, using the root sentinel for top-level entries."""
    return posixpath.dirname(path) or ROOT_DIR


def validate_path(path: str) -> None:
    """Reject a file path that cannot be stored as a chain of tree records.

    :raises ValueError: If the path is absolute, or has an empty, `.` or `..` segment."""
    if path.startswith('/'):
        msg = f'File path must be relative: {path!r}'
        raise ValueError(msg)
    if any(segment in ('', '.', '..') for segment in path.split('/')):
        msg = f'Invalid file path: {path!r}'
        raise ValueError(msg)


def build_tree(store: ObjectStore, files: Mapping[str, str]) -> HashRef | None:
    """Store the tree objects for a flat `path -> blob hash` map and return the root tree hash.

    Directories are finalized deepest first (by path length) so that every subtree is already
    hashed when its parent is serialized.

    :param store: The object store to write the trees to.
    :param files: The map of file paths to blob hashes.
    :return: The hash of the root tree, or None if the map is empty. Nothing is stored in that case.
    :raises ValueError: If a file path is invalid. Nothing is stored in that case."""
    for path in files:
        validate_path(path)

    dir_entries: dict[str, dict[str, str]] = {}

    for path, blob_hash in files.items():
        directory = parent_dir(path)
        dir_entries.setdefault(directory, {})[posixpath.basename(path)] = blob_hash

        # Directories that only hold other directories still need a tree of their own
        while directory != ROOT_DIR:
            directory = parent_dir(directory)
            dir_entries.setdefault(directory, {})

    if not dir_entries:
        return None

    tree_hashes: dict[str, HashRef] = {}

    for directory in sorted(dir_entries, key=lambda d: -1 if d == ROOT_DIR else len(d), reverse=True):
        records = {name: TreeRecord(TreeRecordType.BLOB, blob_hash, name)
                   for name, blob_hash in dir_entries[directory].items()}

        for subdir, subtree_hash in tree_hashes.items():
            if parent_dir(subdir) == directory:
                name = posixpath.basename(subdir)
                records[name] = TreeRecord(TreeRecordType.TREE, subtree_hash, name)

        tree_hashes[directory] = save_tree(store, Tree(records))

    return tree_hashes[ROOT_DIR]
