"""Constants used throughout Gitlet."""

# Version
VERSION = "0.1.0"

# Directory names
GITLET_DIR = ".gitlet"
BLOBS_DIR = "blobs"
COMMITS_DIR = "commits"
REFS_DIR = "refs"
HEADS_DIR = "heads"

# File names
HEAD_FILE = "HEAD"
INDEX_FILE = "index"
INDEX_VERSION = 1

# HEAD contents
SYMBOLIC_REF_PREFIX = "ref: "
BRANCH_REF_PREFIX = "refs/heads/"
DEFAULT_BRANCH = "master"
BRANCH_NAME_PATTERN = r"[A-Za-z0-9][A-Za-z0-9._-]*"

# Hash algorithm
HASH_ALGORITHM = "sha1"
HASH_LENGTH = 40  # SHA-1 produces 40 hex characters
SHARD_LENGTH = 2
MIN_PREFIX_LENGTH = 4

# Root commit
INITIAL_COMMIT_MESSAGE = "initial commit"
INITIAL_COMMIT_TIMESTAMP = 0

# Staging actions
STAGE_ADD = "add"
STAGE_REMOVE = "remove"

# Merge conflict markers
CONFLICT_HEADER = b"<<<<<<< HEAD\n"
CONFLICT_SEPARATOR = b"=======\n"
CONFLICT_TRAILER = b">>>>>>>\n"

# Log output
LOG_SEPARATOR = "==="
LOG_DATE_FORMAT = "%a %b %d %H:%M:%S %Y %z"

# Environment
LOG_LEVEL_ENV = "GITLET_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"

# Failures exit exactly like success
EXIT_STATUS = 0
