"""
Client-side checks on a recording and a character image before anything is
uploaded. Best-effort only: the server stays the authority.
"""
import io
import json
import os
import subprocess
from pathlib import Path
from typing import Optional, Tuple, Union

from PIL import Image, UnidentifiedImageError

from ..logger import logger

MAX_VIDEO_SIZE = 50 * 1024 * 1024
MIN_VIDEO_DURATION = 4
MAX_VIDEO_DURATION = 30
MIN_IMAGE_DIMENSION = 340


class MediaValidationError(Exception):
    def __init__(self, message: str, code: str = "MEDIA_INVALID"):
        self.message = message
        self.code = code
        super().__init__(message)


def probe_duration(path: Union[str, Path]) -> Optional[float]:
    """Duration in seconds from ffprobe, None when it cannot be read."""
    cmd = [
        "ffprobe",
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        str(path),
    ]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=30)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning(f"ffprobe unavailable for {path}: {e}")
        return None
    if result.returncode != 0:
        return None

    try:
        duration = float(json.loads(result.stdout).get("format", {}).get("duration"))
    except (TypeError, ValueError):
        return None
    # webm recordings from MediaRecorder often report no duration
    if duration != duration or duration <= 0 or duration == float("inf"):
        return None
    return duration


def validate_video(path: Union[str, Path]) -> Optional[float]:
    """
    Size first, then duration when it is readable. Returns the duration
    (or None when the check was skipped).
    """
    size = os.path.getsize(path)
    if size > MAX_VIDEO_SIZE:
        raise MediaValidationError(
            f"Video is too large ({size / (1024 * 1024):.1f}MB). "
            f"Maximum size is {MAX_VIDEO_SIZE // (1024 * 1024)}MB.",
            code="VIDEO_TOO_LARGE",
        )

    duration = probe_duration(path)
    if duration is None:
        logger.info(f"Skipping duration check, metadata unreadable: {path}")
        return None
    if duration < MIN_VIDEO_DURATION:
        raise MediaValidationError(
            f"Video is too short ({duration:.1f}s). Minimum is {MIN_VIDEO_DURATION} seconds.",
            code="VIDEO_TOO_SHORT",
        )
    if duration > MAX_VIDEO_DURATION:
        raise MediaValidationError(
            f"Video is too long ({duration:.1f}s). Maximum is {MAX_VIDEO_DURATION} seconds.",
            code="VIDEO_TOO_LONG",
        )
    return duration


def validate_image(data: bytes) -> Tuple[int, int]:
    """Both sides of the character image must be at least MIN_IMAGE_DIMENSION."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
    except (UnidentifiedImageError, OSError) as e:
        raise MediaValidationError(f"Could not read image: {e}", code="IMAGE_UNREADABLE")

    if width < MIN_IMAGE_DIMENSION or height < MIN_IMAGE_DIMENSION:
        raise MediaValidationError(
            f"Image is too small ({width}x{height}). "
            f"Minimum size is {MIN_IMAGE_DIMENSION}x{MIN_IMAGE_DIMENSION} pixels.",
            code="IMAGE_TOO_SMALL",
        )
    return width, height
