from pathlib import Path

from libminigit.index import Index, parse_index, serialize_index
from libminigit.plumbing import hash_string

H1, H2 = hash_string('1'), hash_string('2')


def test_serialize_index_sorts_by_path() -> None:
    assert serialize_index({'b.txt': H2, 'a/c.txt': H1}) == f'a/c.txt {H1}\nb.txt {H2}\n'


def test_parse_index_keeps_spaces_in_paths() -> None:
    assert parse_index(f'my file.txt {H1}\nplain {H2}\n') == {'my file.txt': H1, 'plain': H2}


def test_parse_index_skips_lines_without_separator() -> None:
    assert parse_index(f'garbage\n\nplain {H1}\n') == {'plain': H1}


def test_index_write_and_read(tmp_path: Path) -> None:
    index = Index(tmp_path / 'index')
    entries = {'dir/file.txt': H1, 'top.txt': H2}

    index.write(entries)

    assert index.read() == entries
    assert (tmp_path / 'index').read_text() == f'dir/file.txt {H1}\ntop.txt {H2}\n'


def test_index_write_replaces_content(tmp_path: Path) -> None:
    index = Index(tmp_path / 'index')
    index.write({'old.txt': H1})

    index.write({'new.txt': H2})

    assert index.read() == {'new.txt': H2}


def test_missing_index_is_empty(tmp_path: Path) -> None:
    assert Index(tmp_path / 'index').read() == {}
