"""libminigit repository management."""

import logging
import shutil
from collections.abc import Callable, Generator, Mapping
from dataclasses import dataclass
from functools import wraps
from pathlib import Path
from typing import Concatenate, ParamSpec, TypeVar

from .commit import load_commit, save_commit
from .constants import DEFAULT_BRANCH, DEFAULT_IDENTITY, DEFAULT_REPO_DIR, INDEX_FILE, OBJECTS_SUBDIR
from .index import Index
from .merge import MergeEngine, MergeResult
from .objects import Commit
from .plumbing import ObjectStore, ObjectStoreError
from .ref import HashRef, RefError, RefStore, branch_ref, is_hash
from .tree import build_tree, flatten_tree
from .workdir import WorkingDirectory

P = ParamSpec('P')
R = TypeVar('R')

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Exception raised for repository-related errors."""


class RepositoryNotFoundError(RepositoryError):
    """Exception raised when a repository is not found."""


@dataclass
class LogEntry:
    """A class representing a log entry for a branch or commit history."""

    commit_ref: HashRef
    commit: Commit


class Repository:
    """Represents a libminigit repository.

    This class wires the object store, references, index and working directory of a repository
    together and provides the operations built on top of them."""

    def __init__(self, working_dir: Path | str, repo_dir: Path | str | None = None) -> None:
        """Initialize a Repository instance. The repository is not created on disk until `init()` is called.

        :param working_dir: The working directory where the repository will be located.
        :param repo_dir: The name of the repository directory within the working directory. Defaults to '.minigit'."""
        self.working_dir = Path(working_dir)
        self.repo_dir = Path(DEFAULT_REPO_DIR if repo_dir is None else repo_dir)

        self.store = ObjectStore(self.objects_dir())
        self.refs = RefStore(self.repo_path())
        self.index = Index(self.repo_path() / INDEX_FILE)
        self.workdir = WorkingDirectory(self.working_dir, self.repo_path(), self.store)

    def init(self, default_branch: str = DEFAULT_BRANCH) -> None:
        """Initialize a new repository in the working directory.

        :param default_branch: The name of the default branch to create. Defaults to 'main'.
        :raises RepositoryError: If the repository already exists."""
        if self.exists():
            msg = f'Repository already exists at {self.repo_path()}'
            raise RepositoryError(msg)

        self.repo_path().mkdir(parents=True)
        self.objects_dir().mkdir()
        self.refs.init(default_branch)

    def exists(self) -> bool:
        """Check if the repository exists in the working directory."""
        return self.repo_path().exists()

    def repo_path(self) -> Path:
        """Get the path to the repository directory."""
        return self.working_dir / self.repo_dir

    def objects_dir(self) -> Path:
        """Get the path to the objects directory within the repository."""
        return self.repo_path() / OBJECTS_SUBDIR

    @staticmethod
    def requires_repo(func: Callable[Concatenate['Repository', P], R]) -> \
            Callable[Concatenate['Repository', P], R]:
        """Decorate a Repository method to ensure that the repository exists before executing the method.

        :param func: The method to decorate.
        :return: A wrapper function that checks for the repository's existence."""

        @wraps(func)
        def _verify_repo(self: 'Repository', *args: P.args, **kwargs: P.kwargs) -> R:
            if not self.exists():
                msg = f'Repository not initialized at {self.repo_path()}'
                raise RepositoryNotFoundError(msg)

            return func(self, *args, **kwargs)

        return _verify_repo

    @requires_repo
    def head_commit(self) -> HashRef | None:
        """Return the commit HEAD resolves to, or None if the current branch has no commits.

        :raises RepositoryError: If HEAD cannot be read."""
        try:
            return self.refs.head_commit()
        except RefError as e:
            msg = 'Cannot resolve HEAD'
            raise RepositoryError(msg) from e

    @requires_repo
    def current_branch(self) -> str | None:
        return self.refs.current_branch()

    @requires_repo
    def delete_repo(self) -> None:
        """Delete the entire repository, including all objects and refs."""
        shutil.rmtree(self.repo_path())

    @requires_repo
    def staged(self) -> dict[str, HashRef]:
        """Get the staged file map."""
        return self.index.read()

    @requires_repo
    def add(self, *paths: Path | str) -> dict[str, HashRef]:
        """Stage files. Directories are staged recursively.

        A path that no longer exists in the working directory is removed from the index.

        :param paths: The paths to stage, absolute or relative to the working directory.
        :return: The new staging map.
        :raises RepositoryError: If a path does not exist and is not staged either.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        staged = self.index.read()

        for path in paths:
            full_path = Path(path) if Path(path).is_absolute() else self.working_dir / path
            try:
                relative = full_path.relative_to(self.working_dir).as_posix()
            except ValueError as e:
                msg = f'{path} is outside of the working directory'
                raise RepositoryError(msg) from e
            if full_path.is_relative_to(self.repo_path()):
                msg = f'{path} is inside the repository directory'
                raise RepositoryError(msg)

            previously_staged = [p for p in staged if _covers(p, relative)]

            if full_path.is_file():
                files = [relative]
            elif full_path.is_dir():
                files = [f for f in self.workdir.list_files() if _covers(f, relative)]
            elif previously_staged:
                files = []
            else:
                msg = f'Path {path} does not exist'
                raise RepositoryError(msg)

            # Staged files that are gone from the working directory are unstaged
            for staged_path in previously_staged:
                if staged_path not in files:
                    del staged[staged_path]

            for file in files:
                staged[file] = HashRef(self.store.save_file_content(self.working_dir / file).hash)

        self.index.write(staged)
        return staged

    @requires_repo
    def commit(self, author: str, message: str, staged: Mapping[str, str] | None = None) -> HashRef:
        """Commit the staged files to the current branch.

        :param author: The commit author, as `Name <email>`.
        :param message: The commit message.
        :param staged: The file map to commit. Defaults to the content of the index.
        :return: The hash of the new commit.
        :raises ValueError: If the author or message is empty.
        :raises RepositoryError: If there is nothing to commit.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        if not author:
            msg = 'Author is required'
            raise ValueError(msg)
        if not message:
            msg = 'Commit message is required'
            raise ValueError(msg)
        if '>' not in author:
            msg = 'Author must be given as "Name <email>"'
            raise ValueError(msg)

        if staged is None:
            staged = self.index.read()

        tree_hash = build_tree(self.store, staged)
        if tree_hash is None:
            msg = 'Nothing to commit'
            raise RepositoryError(msg)

        parent = self.head_commit()
        commit = Commit(tree_hash, author, author, message, 0, [parent] if parent else [])
        commit_ref = save_commit(self.store, commit)

        self.refs.advance(commit_ref)
        self.index.write(staged)

        logger.debug('Committed %s on %s', commit_ref, self.refs.current_branch() or 'detached HEAD')
        return commit_ref

    @requires_repo
    def log(self, tip: str | None = None) -> Generator[LogEntry, None, None]:
        """Generate a log of commits, following first parents from the tip.

        :param tip: The branch name or commit hash to start from. If None, defaults to HEAD.
        :return: A generator yielding LogEntry objects representing the commits in the log.
        :raises RepositoryError: If a commit cannot be loaded.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        current_hash = self.resolve(tip)

        try:
            while current_hash:
                commit = load_commit(self.store, current_hash)
                yield LogEntry(HashRef(current_hash), commit)

                current_hash = HashRef(commit.parent) if commit.parent else None
        except (ObjectStoreError, ValueError) as e:
            msg = f'Error loading commit {current_hash}'
            raise RepositoryError(msg) from e

    @requires_repo
    def resolve(self, ref: str | None) -> HashRef | None:
        """Resolve HEAD (None), a branch name or a commit hash to a commit hash.

        :raises RepositoryError: If the reference cannot be resolved."""
        try:
            if ref is None or ref.upper() == 'HEAD':
                return self.refs.head_commit()
            if self.refs.branch_exists(ref):
                return self.refs.branch_commit(ref)
        except RefError as e:
            msg = f'Cannot resolve reference {ref}'
            raise RepositoryError(msg) from e

        if is_hash(ref) and self.store.exists(ref):
            return HashRef(ref)

        msg = f'Invalid reference: {ref}'
        raise RepositoryError(msg)

    @requires_repo
    def branches(self) -> list[str]:
        """Get a sorted list of all branch names in the repository."""
        return self.refs.branches()

    @requires_repo
    def branch_exists(self, branch: str) -> bool:
        return self.refs.branch_exists(branch)

    @requires_repo
    def add_branch(self, branch: str) -> None:
        """Add a new branch pointing at the current HEAD commit.

        :param branch: The name of the branch to add.
        :raises ValueError: If the branch name is empty.
        :raises RepositoryError: If the branch already exists.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        try:
            self.refs.add_branch(branch, self.head_commit())
        except RefError as e:
            raise RepositoryError(str(e)) from e

    @requires_repo
    def delete_branch(self, branch: str) -> None:
        """Delete a branch from the repository.

        :raises ValueError: If the branch name is empty.
        :raises RepositoryError: If the branch does not exist or is the current branch.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        if not branch:
            msg = 'Branch name is required'
            raise ValueError(msg)
        if branch == self.refs.current_branch():
            msg = f'Cannot delete the current branch "{branch}"'
            raise RepositoryError(msg)

        try:
            self.refs.delete_branch(branch)
        except RefError as e:
            raise RepositoryError(str(e)) from e

    @requires_repo
    def checkout(self, branch: str) -> dict[str, HashRef]:
        """Switch HEAD to a branch and make the working directory and index match its tip.

        :param branch: The name of the branch to check out.
        :return: The new staging map.
        :raises RepositoryError: If the branch does not exist or its snapshot cannot be loaded.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        try:
            tip = self.refs.branch_commit(branch)
        except RefError as e:
            raise RepositoryError(str(e)) from e

        files: dict[str, HashRef] = {}
        if tip is not None:
            try:
                files = flatten_tree(self.store, load_commit(self.store, tip).tree_hash)
            except ObjectStoreError as e:
                msg = f'Error loading the snapshot of branch "{branch}"'
                raise RepositoryError(msg) from e

        self.workdir.sync(files)
        self.index.write(files)
        self.refs.set_head(branch_ref(branch))

        return files

    @requires_repo
    def merge(self, branch: str, author: str = DEFAULT_IDENTITY) -> MergeResult:
        """Merge a branch into the current branch.

        :raises MergeError: If the merge cannot be performed.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        engine = MergeEngine(self.store, self.refs, self.workdir, self.index, author)
        return engine.merge(branch)


def _covers(path: str, prefix: str) -> bool:
    """Check whether a path is the given path or lies below it."""
    return prefix == '.' or path == prefix or path.startswith(f'{prefix}/')
