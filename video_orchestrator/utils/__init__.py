"""
Utilities
=========

Helper functions for output storage and generation manifests.
"""

from .storage import (
    ensure_dir,
    generate_filename,
    video_path,
    save_manifest,
    format_file_size,
    get_file_size,
)

__all__ = [
    "ensure_dir",
    "generate_filename",
    "video_path",
    "save_manifest",
    "format_file_size",
    "get_file_size",
]
