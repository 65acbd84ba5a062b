from pathlib import Path

from libminigit.plumbing import hash_string
from libminigit.ref import HashRef, RefError, RefStore, SymRef, branch_ref, read_ref, write_ref
from pytest import raises


def test_write_and_read_hash_ref(tmp_path: Path) -> None:
    ref_file = tmp_path / 'ref'
    commit_hash = HashRef(hash_string('commit'))

    write_ref(ref_file, commit_hash)
    ref = read_ref(ref_file)

    assert ref == commit_hash
    assert isinstance(ref, HashRef)


def test_write_and_read_sym_ref(tmp_path: Path) -> None:
    ref_file = tmp_path / 'HEAD'

    write_ref(ref_file, branch_ref('main'))

    assert ref_file.read_text() == 'ref: heads/main\n'
    ref = read_ref(ref_file)
    assert ref == SymRef('heads/main')
    assert isinstance(ref, SymRef)


def test_read_empty_ref_is_none(tmp_path: Path) -> None:
    ref_file = tmp_path / 'empty'
    write_ref(ref_file, None)

    assert read_ref(ref_file) is None


def test_read_invalid_ref_raises_error(tmp_path: Path) -> None:
    ref_file = tmp_path / 'invalid'
    ref_file.write_text('not a reference')

    with raises(RefError):
        read_ref(ref_file)


def test_read_missing_ref_raises_error(tmp_path: Path) -> None:
    with raises(RefError):
        read_ref(tmp_path / 'missing')


def _ref_store(tmp_path: Path) -> RefStore:
    refs = RefStore(tmp_path / 'repo')
    refs.init('main')
    return refs


def test_ref_store_init(tmp_path: Path) -> None:
    refs = _ref_store(tmp_path)

    assert refs.branches() == ['main']
    assert refs.current_branch() == 'main'
    assert refs.head_commit() is None
    assert refs.branch_commit('main') is None


def test_ref_store_advance_moves_current_branch(tmp_path: Path) -> None:
    refs = _ref_store(tmp_path)
    commit_hash = HashRef(hash_string('commit'))

    refs.advance(commit_hash)

    assert refs.branch_commit('main') == commit_hash
    assert refs.head_commit() == commit_hash
    assert refs.head_ref() == branch_ref('main')


def test_ref_store_advance_detached_head(tmp_path: Path) -> None:
    refs = _ref_store(tmp_path)
    first, second = HashRef(hash_string('first')), HashRef(hash_string('second'))
    refs.set_head(first)

    refs.advance(second)

    assert refs.current_branch() is None
    assert refs.head_commit() == second
    assert refs.branch_commit('main') is None


def test_ref_store_branch_errors(tmp_path: Path) -> None:
    refs = _ref_store(tmp_path)

    with raises(RefError):
        refs.add_branch('main')
    with raises(RefError):
        refs.branch_commit('missing')
    with raises(RefError):
        refs.update_branch('missing', HashRef(hash_string('commit')))
    with raises(ValueError, match='Branch name is required'):
        refs.branch_exists('')


def test_ref_store_missing_head_raises_error(tmp_path: Path) -> None:
    refs = _ref_store(tmp_path)
    refs.head_file().unlink()

    with raises(RefError):
        refs.head_ref()
