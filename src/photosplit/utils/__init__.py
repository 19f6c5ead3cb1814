"""
Shared Utilities

File I/O and logging helpers used by the batch runner and CLI.
"""

from photosplit.utils.io import list_image_files, read_image, write_image
from photosplit.utils.logging_config import setup_logging

__all__ = [
    "list_image_files",
    "read_image",
    "write_image",
    "setup_logging",
]
