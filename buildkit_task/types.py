"""Shared type definitions for buildkit_task.

Constants and enums used by both the request glue and the build driver,
kept here to avoid circular imports.
"""

from enum import Enum

DEFAULT_OUTPUT_TYPE = "docker"

# Exporter type that disables the --output flag entirely
NO_OUTPUT = "none"

IMAGE_DIR = "image"
CACHE_DIR = "cache"
IMAGE_FILE = "image.tar"

# Written by a local cache export; its presence enables cache import
CACHE_INDEX = "index.json"


class OutputKind(str, Enum):
    """Outputs reported back to the caller."""

    IMAGE = "image"
    CACHE = "cache"


__all__ = [
    "CACHE_DIR",
    "CACHE_INDEX",
    "DEFAULT_OUTPUT_TYPE",
    "IMAGE_DIR",
    "IMAGE_FILE",
    "NO_OUTPUT",
    "OutputKind",
]
