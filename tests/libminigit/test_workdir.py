import logging
from pathlib import Path

from libminigit.plumbing import ObjectStore
from libminigit.workdir import WorkingDirectory
from pytest import LogCaptureFixture, MonkeyPatch, fixture


@fixture
def workdir(tmp_path: Path) -> WorkingDirectory:
    root = tmp_path / 'root'
    repo_path = root / '.minigit'
    (repo_path / 'objects').mkdir(parents=True)
    return WorkingDirectory(root, repo_path, ObjectStore(repo_path / 'objects'))


def _write(root: Path, relative: str, content: str) -> None:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


def test_list_files_excludes_repository_directory(workdir: WorkingDirectory) -> None:
    _write(workdir.root, 'a.txt', 'a')
    _write(workdir.root, 'dir/b.txt', 'b')
    _write(workdir.root, '.minigit/index', '')

    assert workdir.list_files() == ['a.txt', 'dir/b.txt']


def test_clean_removes_unkept_files_and_empty_directories(workdir: WorkingDirectory) -> None:
    _write(workdir.root, 'keep.txt', 'keep')
    _write(workdir.root, 'drop.txt', 'drop')
    _write(workdir.root, 'nested/deeper/drop.txt', 'drop')
    _write(workdir.root, 'mixed/keep.txt', 'keep')
    _write(workdir.root, 'mixed/drop.txt', 'drop')

    workdir.clean({'keep.txt', 'mixed/keep.txt'})

    assert workdir.list_files() == ['keep.txt', 'mixed/keep.txt']
    assert not (workdir.root / 'nested').exists()
    assert (workdir.repo_path / 'objects').is_dir()


def test_restore_writes_blobs(workdir: WorkingDirectory) -> None:
    blob = workdir.store.save_blob(b'restored content')

    workdir.restore({'new/dir/file.txt': blob.hash})

    assert (workdir.root / 'new' / 'dir' / 'file.txt').read_bytes() == b'restored content'


def test_sync_replaces_working_directory_content(workdir: WorkingDirectory) -> None:
    _write(workdir.root, 'stale.txt', 'stale')
    _write(workdir.root, 'shared.txt', 'old')
    blob = workdir.store.save_blob(b'new')

    workdir.sync({'shared.txt': blob.hash})

    assert workdir.list_files() == ['shared.txt']
    assert (workdir.root / 'shared.txt').read_text() == 'new'


def test_clean_logs_warning_when_directory_cannot_be_removed(
    workdir: WorkingDirectory,
    monkeypatch: MonkeyPatch,
    caplog: LogCaptureFixture,
) -> None:
    _write(workdir.root, 'nested/drop.txt', 'drop')

    def _fail_rmdir(self: Path) -> None:
        msg = 'busy'
        raise OSError(msg)

    monkeypatch.setattr(Path, 'rmdir', _fail_rmdir)

    with caplog.at_level(logging.WARNING, logger='libminigit.workdir'):
        workdir.clean(set())

    assert (workdir.root / 'nested').is_dir()
    assert any(record.levelno == logging.WARNING and 'nested' in record.getMessage() for record in caplog.records)
