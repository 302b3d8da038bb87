"""Build request parsing and response writing.

The task receives a single JSON document on stdin::

    {"response_path": "...", "config": {"repository": "...", ...}}

and on success writes ``{"outputs": ["image", "cache"]}`` to response_path.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TextIO

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from buildkit_task.errors import ConfigurationError, TaskIOError
from buildkit_task.types import DEFAULT_OUTPUT_TYPE, OutputKind

logger = logging.getLogger(__name__)


class BuildConfig(BaseModel):
    """Build configuration as supplied by the caller.

    Attributes:
        repository: Image repository name, used as the image name.
        tag: Image tag.
        tag_file: File whose trimmed content replaces tag.
        context: Build context directory.
        dockerfile: Directory containing the Dockerfile.
        target: Build stage to target.
        target_file: File whose trimmed content replaces target.
        output_type: buildctl exporter type, or "none" to skip the export.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    repository: str | None = Field(default=None, description="Image repository")
    tag: str | None = Field(default=None)
    tag_file: str | None = Field(default=None)
    context: str | None = Field(default=None, description="Build context path")
    dockerfile: str | None = Field(
        default=None, description="Dockerfile directory (defaults to context)"
    )
    target: str | None = Field(default=None)
    target_file: str | None = Field(default=None)
    output_type: str | None = Field(default=None)


class TaskRequest(BaseModel):
    """Request document read from stdin."""

    model_config = ConfigDict(extra="ignore")

    response_path: str = Field(description="Where to write the response")
    config: BuildConfig = Field(default_factory=BuildConfig)


class TaskResponse(BaseModel):
    """Output manifest written once the build succeeded."""

    outputs: list[str] = Field(
        default_factory=lambda: [OutputKind.IMAGE.value, OutputKind.CACHE.value]
    )


def _read_trimmed(path: str, what: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8").strip()
    except OSError as e:
        raise TaskIOError(f"Failed to read {what} {path}: {e}", path=path) from e


def sanitize(config: BuildConfig) -> BuildConfig:
    """Validate a build config and fill in defaults.

    Args:
        config: Config as decoded from the request.

    Returns:
        A new config with context, dockerfile and output_type filled in and
        tag/target resolved from their side-input files.

    Raises:
        ConfigurationError: If repository is missing.
        TaskIOError: If tag_file or target_file cannot be read.
    """
    if not config.repository:
        raise ConfigurationError("repository must be specified")

    context = config.context or "."
    updates: dict[str, str] = {
        "context": context,
        "dockerfile": config.dockerfile or context,
        "output_type": config.output_type or DEFAULT_OUTPUT_TYPE,
    }

    if config.tag_file:
        updates["tag"] = _read_trimmed(config.tag_file, "tag file")

    if config.target_file:
        updates["target"] = _read_trimmed(config.target_file, "target file")

    return config.model_copy(update=updates)


def load_request(stream: TextIO) -> TaskRequest:
    """Decode the task request from a stream.

    Args:
        stream: Text stream holding the JSON request (normally stdin).

    Returns:
        Parsed TaskRequest.

    Raises:
        ConfigurationError: If the document is not valid JSON or does not
            match the request schema.
    """
    try:
        data = json.load(stream)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Failed to read request: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Expected a JSON object, got {type(data).__name__}"
        )

    try:
        return TaskRequest.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid request: {e}") from e


def write_response(path: str | Path, response: TaskResponse) -> None:
    """Write the response manifest.

    Raises:
        TaskIOError: If the file cannot be written.
    """
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(response.model_dump_json())
            f.write("\n")
    except OSError as e:
        raise TaskIOError(
            f"Failed to write response {path}: {e}", path=str(path)
        ) from e

    logger.debug("Wrote response to %s", path)


__all__ = [
    "BuildConfig",
    "TaskRequest",
    "TaskResponse",
    "load_request",
    "sanitize",
    "write_response",
]
