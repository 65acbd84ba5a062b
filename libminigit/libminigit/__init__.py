"""libminigit: a content-addressed object store with three-way merging."""

from .objects import Blob, Commit, Tree, TreeRecord, TreeRecordType

__all__ = [
    'Blob',
    'Commit',
    'Tree',
    'TreeRecord',
    'TreeRecordType',
]
