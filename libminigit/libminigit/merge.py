"""Common ancestor search and three-way merging of file maps."""

import logging
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from .commit import load_commit, save_commit
from .constants import DEFAULT_IDENTITY
from .index import Index
from .objects import Commit, Tree
from .plumbing import ObjectStore, ObjectStoreError
from .ref import HashRef, RefStore
from .tree import build_tree, flatten_tree, save_tree
from .workdir import WorkingDirectory

logger = logging.getLogger(__name__)


class MergeError(Exception):
    """Exception raised for merge-related errors."""


class BranchNotFoundError(MergeError):
    """Exception raised when the branch to merge does not exist."""


class EmptyHistoryError(MergeError):
    """Exception raised when the current branch has no commits to merge into."""


class NoCommonAncestorError(MergeError):
    """Exception raised when the two histories share no commit."""


class MergeStatus(Enum):
    MERGED = 'merged'
    ALREADY_UP_TO_DATE = 'already up to date'
    CONFLICT = 'conflict'


@dataclass
class MergeResult:
    """Represents the output of a merge.

    `files` is the resulting staging map, which is also what the working directory now holds."""

    status: MergeStatus
    ancestor: HashRef | None = None
    files: dict[str, HashRef] = field(default_factory=dict)
    conflicts: list[str] = field(default_factory=list)
    commit_hash: HashRef | None = None


def find_common_ancestor(store: ObjectStore, hash1: str, hash2: str) -> HashRef | None:
    """Search backwards from two commits for a commit reachable from both.

    Each side runs its own breadth-first search, and the two searches take turns expanding a single
    commit. A commit dequeued by one side is returned as soon as the other side has reached it.
    Because the sides are not advanced level by level, the result is a common ancestor but not
    necessarily the lowest one.

    :return: The hash of the common ancestor, or None if the histories are unrelated.
    :raises MergeError: If a commit cannot be loaded."""
    queues = (deque([HashRef(hash1)]), deque([HashRef(hash2)]))
    reached: tuple[set[str], set[str]] = ({hash1}, {hash2})

    while queues[0] or queues[1]:
        for side, other in ((0, 1), (1, 0)):
            if not queues[side]:
                continue

            current = queues[side].popleft()
            if current in reached[other]:
                return current

            try:
                commit = load_commit(store, current)
            except (ObjectStoreError, ValueError) as e:
                msg = f'Error loading commit {current} during ancestor search'
                raise MergeError(msg) from e

            for parent in commit.parents:
                if parent not in reached[side]:
                    reached[side].add(parent)
                    queues[side].append(HashRef(parent))

    return None


def merge_file_maps(
    ancestor: Mapping[str, str],
    current: Mapping[str, str],
    incoming: Mapping[str, str],
) -> tuple[dict[str, HashRef], list[str]]:
    """Reconcile two file maps against their common ancestor.

    A side that left a path as it was in the ancestor takes the other side's version, deletions
    included. When both sides changed a path differently it is a conflict, and the current version
    is kept.

    :return: The merged map and the sorted list of conflicting paths."""
    merged: dict[str, HashRef] = {}
    conflicts: list[str] = []

    for path in sorted(set(ancestor) | set(current) | set(incoming)):
        base_hash = ancestor.get(path)
        ours_hash = current.get(path)
        theirs_hash = incoming.get(path)

        if base_hash == ours_hash:
            chosen = theirs_hash
        elif base_hash == theirs_hash or ours_hash == theirs_hash:
            chosen = ours_hash
        else:
            conflicts.append(path)
            chosen = ours_hash

        if chosen is not None:
            merged[path] = HashRef(chosen)

    return merged, conflicts


class MergeEngine:
    """Merges a branch into the current branch of a repository."""

    def __init__(
        self,
        store: ObjectStore,
        refs: RefStore,
        workdir: WorkingDirectory,
        index: Index,
        author: str = DEFAULT_IDENTITY,
    ) -> None:
        self.store = store
        self.refs = refs
        self.workdir = workdir
        self.index = index
        self.author = author

    def _commit_files(self, commit_hash: str) -> dict[str, HashRef]:
        try:
            commit = load_commit(self.store, commit_hash)
            return flatten_tree(self.store, commit.tree_hash)
        except (ObjectStoreError, ValueError) as e:
            msg = f'Error loading the tree of commit {commit_hash}'
            raise MergeError(msg) from e

    def merge(self, branch: str) -> MergeResult:
        """Merge `branch` into the current branch.

        With no conflicts a merge commit with parents `[current, incoming]` is created and the current
        branch is advanced to it. With conflicts no commit is made; the merged files are still written
        to the working directory and the index so that they can be resolved by hand.

        :param branch: The name of the branch to merge.
        :return: The outcome of the merge.
        :raises BranchNotFoundError: If the branch does not exist.
        :raises EmptyHistoryError: If the current branch has no commits.
        :raises NoCommonAncestorError: If the two histories share no commit.
        :raises MergeError: If a commit or tree cannot be loaded."""
        if not self.refs.branch_exists(branch):
            msg = f'Branch "{branch}" does not exist'
            raise BranchNotFoundError(msg)

        current_tip = self.refs.head_commit()
        if current_tip is None:
            msg = 'The current branch has no commits'
            raise EmptyHistoryError(msg)

        incoming_tip = self.refs.branch_commit(branch)
        if incoming_tip is None:
            msg = f'Branch "{branch}" has no commits'
            raise EmptyHistoryError(msg)

        if current_tip == incoming_tip:
            logger.info('Already up to date with %s', branch)
            return MergeResult(MergeStatus.ALREADY_UP_TO_DATE, current_tip, self.index.read())

        ancestor = find_common_ancestor(self.store, current_tip, incoming_tip)
        if ancestor is None:
            msg = f'No common ancestor found between HEAD and "{branch}"'
            raise NoCommonAncestorError(msg)

        logger.debug('Merging %s into %s with ancestor %s', incoming_tip, current_tip, ancestor)

        merged, conflicts = merge_file_maps(
            self._commit_files(ancestor),
            self._commit_files(current_tip),
            self._commit_files(incoming_tip),
        )

        if conflicts:
            self.workdir.sync(merged)
            self.index.write(merged)
            logger.info('Merge of %s stopped with %d conflict(s)', branch, len(conflicts))
            return MergeResult(MergeStatus.CONFLICT, ancestor, merged, conflicts)

        tree_hash = build_tree(self.store, merged) or save_tree(self.store, Tree())
        target = self.refs.current_branch() or 'HEAD'
        commit = Commit(tree_hash, self.author, self.author, f"Merge branch '{branch}' into {target}", 0,
                        [current_tip, incoming_tip])
        commit_hash = save_commit(self.store, commit)

        self.refs.advance(commit_hash)
        self.workdir.sync(merged)
        self.index.write(merged)

        logger.info('Merged %s into %s as %s', branch, target, commit_hash)
        return MergeResult(MergeStatus.MERGED, ancestor, merged, [], commit_hash)
