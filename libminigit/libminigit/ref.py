"""References: branch pointers and HEAD."""

from pathlib import Path
from typing import TypeAlias

from .constants import HASH_CHARSET, HASH_LENGTH, HEAD_FILE, HEADS_DIR, REFS_DIR, SYMREF_PREFIX


class RefError(Exception):
    """Exception raised for invalid or unreadable references."""


class HashRef(str):
    """A reference that is a commit hash."""


class SymRef(str):
    """A symbolic reference to another reference, relative to the refs directory (e.g. `heads/main`)."""


Ref: TypeAlias = HashRef | SymRef


def is_hash(value: str) -> bool:
    return len(value) == HASH_LENGTH and all(c in HASH_CHARSET for c in value)


def read_ref(ref_file: Path) -> Ref | None:
    """Read a reference from a file.

    :param ref_file: The file holding the reference.
    :return: The reference, or None if the file is empty.
    :raises RefError: If the file cannot be read or its content is not a valid reference."""
    try:
        content = ref_file.read_text().strip()
    except OSError as e:
        msg = f'Cannot read reference file {ref_file}'
        raise RefError(msg) from e

    if not content:
        return None
    if content.startswith(SYMREF_PREFIX):
        return SymRef(content.removeprefix(SYMREF_PREFIX).strip())
    if is_hash(content):
        return HashRef(content)

    msg = f'Invalid reference in {ref_file}: {content!r}'
    raise RefError(msg)


def write_ref(ref_file: Path, ref: Ref | None) -> None:
    """Write a reference to a file, replacing its content. None leaves the file empty."""
    match ref:
        case None:
            content = ''
        case SymRef():
            content = f'{SYMREF_PREFIX}{ref}'
        case HashRef():
            content = str(ref)
        case _:
            msg = f'Invalid reference type: {type(ref)}'
            raise RefError(msg)

    ref_file.write_text(f'{content}\n' if content else '')


def branch_ref(branch: str) -> SymRef:
    """Create a symbolic reference for a branch name."""
    return SymRef(f'{HEADS_DIR}/{branch}')


class RefStore:
    """Branch and HEAD bookkeeping of a repository directory."""

    def __init__(self, repo_path: Path) -> None:
        self.repo_path = Path(repo_path)

    def refs_dir(self) -> Path:
        return self.repo_path / REFS_DIR

    def heads_dir(self) -> Path:
        return self.refs_dir() / HEADS_DIR

    def head_file(self) -> Path:
        return self.repo_path / HEAD_FILE

    def init(self, default_branch: str) -> None:
        self.heads_dir().mkdir(parents=True)
        self.add_branch(default_branch)
        self.set_head(branch_ref(default_branch))

    def branch_file(self, branch: str) -> Path:
        if not branch:
            msg = 'Branch name is required'
            raise ValueError(msg)

        return self.heads_dir() / branch

    def branch_exists(self, branch: str) -> bool:
        return self.branch_file(branch).is_file()

    def branches(self) -> list[str]:
        return sorted(f.relative_to(self.heads_dir()).as_posix()
                      for f in self.heads_dir().rglob('*') if f.is_file())

    def branch_commit(self, branch: str) -> HashRef | None:
        """Get the commit a branch points to.

        :return: The commit hash, or None if the branch has no commits yet.
        :raises RefError: If the branch does not exist or points to something other than a commit."""
        branch_file = self.branch_file(branch)
        if not branch_file.is_file():
            msg = f'Branch "{branch}" does not exist'
            raise RefError(msg)

        ref = read_ref(branch_file)
        if isinstance(ref, SymRef):
            msg = f'Branch "{branch}" is a symbolic reference'
            raise RefError(msg)

        return ref

    def add_branch(self, branch: str, target: HashRef | None = None) -> None:
        branch_file = self.branch_file(branch)
        if branch_file.exists():
            msg = f'Branch "{branch}" already exists'
            raise RefError(msg)

        branch_file.parent.mkdir(parents=True, exist_ok=True)
        write_ref(branch_file, target)

    def update_branch(self, branch: str, target: HashRef) -> None:
        branch_file = self.branch_file(branch)
        if not branch_file.is_file():
            msg = f'Branch "{branch}" does not exist'
            raise RefError(msg)

        write_ref(branch_file, target)

    def delete_branch(self, branch: str) -> None:
        branch_file = self.branch_file(branch)
        if not branch_file.is_file():
            msg = f'Branch "{branch}" does not exist'
            raise RefError(msg)

        branch_file.unlink()

    def head_ref(self) -> Ref | None:
        """Read HEAD, which is either a branch reference or a detached commit hash.

        :raises RefError: If the HEAD file is missing or invalid."""
        head_file = self.head_file()
        if not head_file.exists():
            msg = 'HEAD ref file does not exist'
            raise RefError(msg)

        return read_ref(head_file)

    def set_head(self, ref: Ref) -> None:
        write_ref(self.head_file(), ref)

    def current_branch(self) -> str | None:
        """Get the name of the branch HEAD points to, or None when HEAD is detached."""
        head = self.head_ref()
        if isinstance(head, SymRef) and head.startswith(f'{HEADS_DIR}/'):
            return head.removeprefix(f'{HEADS_DIR}/')
        return None

    def head_commit(self) -> HashRef | None:
        """Resolve HEAD to a commit hash, or None if the current branch has no commits."""
        head = self.head_ref()
        match head:
            case SymRef():
                ref_file = self.refs_dir() / head
                if not ref_file.is_file():
                    return None
                ref = read_ref(ref_file)
                if isinstance(ref, SymRef):
                    msg = f'Reference {head} points to another symbolic reference'
                    raise RefError(msg)
                return ref
            case _:
                return head

    def advance(self, commit_hash: HashRef) -> None:
        """Move the current branch to a new commit, or HEAD itself when it is detached."""
        branch = self.current_branch()
        if branch is None:
            self.set_head(commit_hash)
        else:
            self.update_branch(branch, commit_hash)
