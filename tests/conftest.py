from pathlib import Path

from libminigit.plumbing import ObjectStore
from libminigit.repository import Repository
from pytest import fixture


@fixture
def temp_repo_dir(tmp_path: Path) -> Path:
    repo_dir = tmp_path / 'work'
    repo_dir.mkdir()
    return repo_dir


@fixture
def temp_repo(temp_repo_dir: Path) -> Repository:
    repo = Repository(temp_repo_dir)
    repo.init()
    return repo


@fixture
def store(tmp_path: Path) -> ObjectStore:
    return ObjectStore(tmp_path / 'objects')
