"""Constants shared across libminigit."""

DEFAULT_REPO_DIR = '.minigit'
OBJECTS_SUBDIR = 'objects'
REFS_DIR = 'refs'
HEADS_DIR = 'heads'
HEAD_FILE = 'HEAD'
INDEX_FILE = 'index'
DEFAULT_BRANCH = 'main'

HASH_LENGTH = 40
HASH_CHARSET = '0123456789abcdef'
SHARD_PREFIX_LENGTH = 2

FILE_MODE = '100644'
DIR_MODE = '40000'
ROOT_DIR = '.'

SYMREF_PREFIX = 'ref: '
DEFAULT_IDENTITY = 'MiniGit <minigit@localhost>'
AUTHOR_ENV_VAR = 'MINIGIT_AUTHOR'
