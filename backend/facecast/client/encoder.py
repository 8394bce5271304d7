"""
ffmpeg wrapper used to turn browser recordings (webm/quicktime) into mp4
before upload. Constructed and closed by its owner; callers fall back to the
original file whenever the encoder is missing or fails.
"""
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional, Union

from ..logger import logger


class EncoderError(Exception):
    pass


class VideoEncoder:
    def __init__(self, ffmpeg_bin: str = "ffmpeg", timeout: float = 120.0):
        self.ffmpeg_bin = ffmpeg_bin
        self.timeout = timeout
        self._binary: Optional[str] = None
        self._workdir: Optional[tempfile.TemporaryDirectory] = None

    @property
    def available(self) -> bool:
        return self._binary is not None

    def start(self) -> bool:
        """Locate ffmpeg and open a scratch directory. Returns availability."""
        self._binary = shutil.which(self.ffmpeg_bin)
        if self._binary is None:
            logger.warning(f"{self.ffmpeg_bin} not found, recordings will be uploaded as-is")
            return False
        self._workdir = tempfile.TemporaryDirectory(prefix="facecast-encode-")
        logger.info("Video encoder ready", extra={"ffmpeg": self._binary})
        return True

    def close(self) -> None:
        if self._workdir is not None:
            self._workdir.cleanup()
            self._workdir = None
        self._binary = None

    def __enter__(self) -> "VideoEncoder":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _run(self, args: List[str]) -> None:
        cmd = [self._binary, "-y", "-hide_banner"] + args
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise EncoderError(f"ffmpeg did not finish: {e}")
        if result.returncode != 0:
            raise EncoderError(f"ffmpeg failed: {result.stderr[-500:]}")

    def transcode_to_mp4(self, source: Union[str, Path]) -> Path:
        """Re-encode to H.264/AAC mp4 in the scratch directory."""
        if not self.available or self._workdir is None:
            raise EncoderError("Encoder not started")
        source = Path(source)
        target = Path(self._workdir.name) / f"{source.stem}.mp4"
        self._run([
            "-i", str(source),
            "-c:v", "libx264",
            "-preset", "veryfast",
            "-pix_fmt", "yuv420p",
            "-c:a", "aac",
            "-movflags", "+faststart",
            str(target),
        ])
        return target

    def prepare(self, source: Union[str, Path]) -> Path:
        """mp4 version of `source` when possible, else `source` itself."""
        source = Path(source)
        if source.suffix.lower() == ".mp4" or not self.available:
            return source
        try:
            return self.transcode_to_mp4(source)
        except EncoderError as e:
            logger.warning(f"Transcode failed, uploading original: {e}")
            return source
