"""Command line interface of libminigit."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer

from .constants import AUTHOR_ENV_VAR, DEFAULT_BRANCH, DEFAULT_IDENTITY
from .index import IndexFileError
from .merge import MergeError, MergeStatus
from .plumbing import ObjectStoreError
from .ref import RefError
from .repository import Repository, RepositoryError

app = typer.Typer(name='minigit', help='A minimal content-addressed version control system.', no_args_is_help=True)

Author = Annotated[str, typer.Option('--author', '-a', envvar=AUTHOR_ENV_VAR, help='Identity as "Name <email>".')]

_repo_root: Path = Path()


@app.callback()
def main(
    repo: Annotated[Path, typer.Option('--repo', '-C', help='Working directory of the repository.')] = Path(),
    verbose: Annotated[bool, typer.Option('--verbose', '-v', help='Enable debug logging.')] = False,
) -> None:
    global _repo_root  # noqa: PLW0603
    _repo_root = repo.resolve()
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')


def _repository() -> Repository:
    return Repository(_repo_root)


def _fail(message: str) -> typer.Exit:
    typer.secho(message, fg=typer.colors.RED, err=True)
    return typer.Exit(code=1)


_ERRORS = (RepositoryError, MergeError, RefError, ObjectStoreError, IndexFileError, ValueError)


@app.command()
def init(branch: Annotated[str, typer.Option(help='Name of the default branch.')] = DEFAULT_BRANCH) -> None:
    """Create an empty repository."""
    repo = _repository()
    try:
        repo.init(branch)
    except _ERRORS as e:
        raise _fail(str(e)) from e

    typer.echo(f'Initialized empty repository in {repo.repo_path()}')


@app.command()
def add(paths: Annotated[list[Path], typer.Argument(help='Files or directories to stage.')]) -> None:
    """Stage files for the next commit."""
    repo = _repository()
    try:
        staged = repo.add(*(path if path.is_absolute() else Path.cwd() / path for path in paths))
    except _ERRORS as e:
        raise _fail(str(e)) from e

    typer.echo(f'{len(staged)} file(s) staged')


@app.command()
def commit(
    message: Annotated[str, typer.Option('--message', '-m', help='Commit message.')],
    author: Author = DEFAULT_IDENTITY,
) -> None:
    """Record the staged files as a new commit."""
    try:
        commit_ref = _repository().commit(author, message)
    except _ERRORS as e:
        raise _fail(str(e)) from e

    typer.echo(f'[{commit_ref[:7]}] {message}')


@app.command()
def log(tip: Annotated[str | None, typer.Argument(help='Branch or commit to start from.')] = None) -> None:
    """Show the first-parent history."""
    try:
        for entry in _repository().log(tip):
            typer.secho(f'commit {entry.commit_ref}', fg=typer.colors.YELLOW)
            if len(entry.commit.parents) > 1:
                typer.echo(f'Merge: {" ".join(parent[:7] for parent in entry.commit.parents)}')
            typer.echo(f'Author: {entry.commit.author}')
            typer.echo(f'Date:   {datetime.fromtimestamp(entry.commit.timestamp)}')
            typer.echo(f'\n    {entry.commit.message}\n')
    except _ERRORS as e:
        raise _fail(str(e)) from e


@app.command()
def branch(name: Annotated[str | None, typer.Argument(help='Name of the branch to create.')] = None) -> None:
    """List branches, or create a new one at HEAD."""
    repo = _repository()
    try:
        if name is not None:
            repo.add_branch(name)
            return

        current = repo.current_branch()
        for branch_name in repo.branches():
            typer.echo(f'{"*" if branch_name == current else " "} {branch_name}')
    except _ERRORS as e:
        raise _fail(str(e)) from e


@app.command()
def checkout(name: Annotated[str, typer.Argument(help='Branch to switch to.')]) -> None:
    """Switch to a branch and restore its files."""
    try:
        _repository().checkout(name)
    except _ERRORS as e:
        raise _fail(str(e)) from e

    typer.echo(f"Switched to branch '{name}'")


@app.command()
def merge(name: Annotated[str, typer.Argument(help='Branch to merge into the current branch.')],
          author: Author = DEFAULT_IDENTITY) -> None:
    """Merge a branch into the current branch."""
    try:
        result = _repository().merge(name, author)
    except _ERRORS as e:
        raise _fail(f'fatal: {e}') from e

    match result.status:
        case MergeStatus.ALREADY_UP_TO_DATE:
            typer.echo('Already up to date.')
        case MergeStatus.MERGED:
            typer.echo(f'Merge made by the three-way strategy: {result.commit_hash}')
        case MergeStatus.CONFLICT:
            for path in result.conflicts:
                typer.secho(f'CONFLICT (content): Merge conflict in {path}', fg=typer.colors.RED, err=True)
            raise _fail('Automatic merge failed; the current version of each conflicting file was kept. '
                        'Fix the files and commit the result.')
