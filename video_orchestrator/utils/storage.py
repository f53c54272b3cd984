"""
Storage Utilities
=================

Output layout, generation manifests and small file helpers.

Layout under the configured base path::

    output/
      videos/      downloaded final artifacts
      manifests/   one JSON manifest per generation
"""

import json
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any, Union

import aiofiles
import yaml

from ..core.security import sanitize_filename

logger = logging.getLogger(__name__)


def ensure_dir(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path

    Returns:
        Path object
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def generate_filename(
    prefix: str = "video",
    suffix: str = ".mp4",
    include_timestamp: bool = True,
) -> str:
    """
    Generate a unique, filesystem-safe filename.

    Args:
        prefix: Filename prefix (sanitized)
        suffix: File extension
        include_timestamp: Timestamp instead of a random id

    Returns:
        Generated filename
    """
    prefix = sanitize_filename(prefix)
    if include_timestamp:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return f"{prefix}_{timestamp}_{uuid.uuid4().hex[:6]}{suffix}"
    return f"{prefix}_{uuid.uuid4().hex[:8]}{suffix}"


def video_path(base_path: Union[str, Path], prefix: str = "video") -> Path:
    """Path for a new downloaded video under ``<base>/videos``."""
    return ensure_dir(Path(base_path) / "videos") / generate_filename(prefix)


async def save_manifest(
    manifest: Dict[str, Any],
    base_path: Union[str, Path],
    name: str = "generation",
    format: str = "json",
) -> str:
    """
    Save a generation manifest under ``<base>/manifests``.

    Args:
        manifest: Serializable manifest (e.g. ``ChainResult.to_dict()``)
        base_path: Output base path
        name: Filename prefix
        format: Output format (json or yaml)

    Returns:
        Path to saved manifest
    """
    suffix = ".yaml" if format == "yaml" else ".json"
    output_path = ensure_dir(Path(base_path) / "manifests") / generate_filename(name, suffix)

    manifest = {**manifest, "saved_at": datetime.now().isoformat()}

    if format == "yaml":
        text = yaml.safe_dump(json.loads(json.dumps(manifest, default=str)), default_flow_style=False)
    else:
        text = json.dumps(manifest, indent=2, default=str)

    async with aiofiles.open(output_path, "w") as f:
        await f.write(text)

    logger.debug(f"Manifest saved to {output_path}")
    return str(output_path)


def get_file_size(path: Union[str, Path]) -> Optional[int]:
    """File size in bytes, or None if the file doesn't exist."""
    path = Path(path)
    if path.exists():
        return path.stat().st_size
    return None


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted string (e.g., "1.5 MB")
    """
    for unit in ["B", "KB", "MB", "GB"]:
        if size_bytes < 1024:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024
    return f"{size_bytes:.1f} TB"
