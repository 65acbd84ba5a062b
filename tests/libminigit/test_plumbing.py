from pathlib import Path

from libminigit.constants import HASH_LENGTH
from libminigit.plumbing import ObjectNotFoundError, ObjectStore, get_content_path, hash_string
from pytest import raises


def test_hash_string_is_deterministic() -> None:
    assert hash_string('some content') == hash_string('some content')
    assert hash_string('some content') == hash_string(b'some content')
    assert len(hash_string('')) == HASH_LENGTH


def test_hash_string_differs_for_different_content() -> None:
    assert hash_string('content a') != hash_string('content b')
    assert hash_string('') != hash_string('\n')


def test_hash_string_is_sha1_hex() -> None:
    assert hash_string('') == 'da39a3ee5e6b4b0d3255bfef95601890afd80709'


def test_get_content_path_shards_by_prefix(tmp_path: Path) -> None:
    object_hash = hash_string('sharded')

    path = get_content_path(tmp_path, object_hash)

    assert path == tmp_path / object_hash[:2] / object_hash[2:]


def test_get_content_path_rejects_invalid_hash(tmp_path: Path) -> None:
    with raises(ValueError):
        get_content_path(tmp_path, 'abc123')

    with raises(ValueError):
        get_content_path(tmp_path, 'g' * HASH_LENGTH)


def test_put_and_get(store: ObjectStore) -> None:
    content = b'hello world\n'
    object_hash = hash_string(content)

    store.put(object_hash, content)

    assert store.exists(object_hash)
    assert store.get(object_hash) == content
    assert (store.objects_dir / object_hash[:2] / object_hash[2:]).read_bytes() == content


def test_put_overwrites_existing_object(store: ObjectStore) -> None:
    object_hash = hash_string('original')
    store.put(object_hash, 'original')
    store.put(object_hash, 'truncated')

    assert store.get_text(object_hash) == 'truncated'


def test_get_missing_object_raises_not_found(store: ObjectStore) -> None:
    missing = hash_string('never stored')

    assert not store.exists(missing)
    with raises(ObjectNotFoundError, match=missing):
        store.get(missing)


def test_save_blob_returns_content_hash(store: ObjectStore) -> None:
    blob = store.save_blob(b'blob content')

    assert blob.hash == hash_string(b'blob content')
    assert store.get(blob.hash) == b'blob content'


def test_save_file_content(store: ObjectStore, tmp_path: Path) -> None:
    file = tmp_path / 'file.bin'
    file.write_bytes(b'\x00\x01binary\xff')

    blob = store.save_file_content(file)

    assert store.get(blob.hash) == b'\x00\x01binary\xff'


def test_save_file_content_missing_file_raises_error(store: ObjectStore, tmp_path: Path) -> None:
    with raises(ValueError):
        store.save_file_content(tmp_path / 'missing.txt')
