"""Fingerprinting and cache index package."""

from .fingerprint import FileStamp, block_stamp, digest_stamps, directory_stamp, list_file_stamps
from .manager import INDEX_FILENAME, BuildIndex, FreshnessPolicy
from .models import BLOCK, KIND_DIRECTORIES, PAGE, CompilationRecord, IndexEntry, entry_key

__all__ = [
    "BLOCK",
    "BuildIndex",
    "CompilationRecord",
    "FileStamp",
    "FreshnessPolicy",
    "INDEX_FILENAME",
    "IndexEntry",
    "KIND_DIRECTORIES",
    "PAGE",
    "block_stamp",
    "digest_stamps",
    "directory_stamp",
    "entry_key",
    "list_file_stamps",
]
