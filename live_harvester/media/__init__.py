"""
Media Processing Layer.

This package is responsible for all segment file operations: fetching,
joining segments with their init payload, and decryption.
"""

from .decryptor import Decryptor, SubprocessDecryptor
from .downloader import SegmentFetcher, close_connection_pool
from .merger import concat_files

__all__ = [
    "Decryptor",
    "SegmentFetcher",
    "SubprocessDecryptor",
    "close_connection_pool",
    "concat_files",
]
