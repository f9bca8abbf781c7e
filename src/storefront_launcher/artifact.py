"""Launch descriptor (.ica) validation and storage."""

from pathlib import Path

from .exceptions import InvalidArtifactError

ARTIFACT_MARKER = "[WFClient]"
DEFAULT_ARTIFACT_NAME = "AutoLaunch.ica"


def is_launch_descriptor(content: bytes) -> bool:
    """True if content decodes as UTF-8 and contains the [WFClient] section."""
    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError:
        return False
    return ARTIFACT_MARKER in text


def save_launch_descriptor(content: bytes, path: Path = Path(DEFAULT_ARTIFACT_NAME)) -> Path:
    """Write a validated launch descriptor byte-for-byte.

    Args:
        content: Raw downloaded body.
        path: Destination file; left untouched when validation fails.

    Returns:
        The path written.

    Raises:
        InvalidArtifactError: If content is not a launch descriptor.
        OSError: If the file cannot be written.
    """
    if not is_launch_descriptor(content):
        raise InvalidArtifactError("Invalid ICA file")
    path.write_bytes(content)
    return path
