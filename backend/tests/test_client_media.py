import io
import json
import subprocess

import pytest
from PIL import Image

from facecast.client import media
from facecast.client.encoder import EncoderError, VideoEncoder
from facecast.client.media import MediaValidationError, validate_image, validate_video


def _png(width, height):
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color=(200, 120, 80)).save(buf, format="PNG")
    return buf.getvalue()


def _fake_ffprobe(monkeypatch, returncode=0, duration=None):
    def run(cmd, capture_output, text, timeout):
        stdout = json.dumps({"format": {"duration": duration}} if duration is not None else {"format": {}})
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr="")

    monkeypatch.setattr(media.subprocess, "run", run)


def test_image_dimensions():
    assert validate_image(_png(400, 512)) == (400, 512)
    with pytest.raises(MediaValidationError) as exc:
        validate_image(_png(339, 800))
    assert exc.value.code == "IMAGE_TOO_SMALL"


def test_unreadable_image():
    with pytest.raises(MediaValidationError) as exc:
        validate_image(b"definitely not an image")
    assert exc.value.code == "IMAGE_UNREADABLE"


def test_video_too_large(tmp_path, monkeypatch):
    clip = tmp_path / "clip.webm"
    clip.write_bytes(b"x")
    monkeypatch.setattr(media.os.path, "getsize", lambda path: media.MAX_VIDEO_SIZE + 1)
    with pytest.raises(MediaValidationError) as exc:
        validate_video(clip)
    assert exc.value.code == "VIDEO_TOO_LARGE"


def test_video_duration_window(tmp_path, monkeypatch):
    clip = tmp_path / "clip.mp4"
    clip.write_bytes(b"x" * 10)

    _fake_ffprobe(monkeypatch, duration="12.5")
    assert validate_video(clip) == 12.5

    _fake_ffprobe(monkeypatch, duration="2.0")
    with pytest.raises(MediaValidationError, match="too short"):
        validate_video(clip)

    _fake_ffprobe(monkeypatch, duration="31")
    with pytest.raises(MediaValidationError, match="too long"):
        validate_video(clip)


def test_unreadable_duration_skips_check(tmp_path, monkeypatch):
    clip = tmp_path / "clip.webm"
    clip.write_bytes(b"x" * 10)

    _fake_ffprobe(monkeypatch, returncode=1)
    assert validate_video(clip) is None

    _fake_ffprobe(monkeypatch, duration="N/A")
    assert validate_video(clip) is None

    _fake_ffprobe(monkeypatch)
    assert validate_video(clip) is None


def test_missing_ffprobe_skips_check(tmp_path, monkeypatch):
    clip = tmp_path / "clip.webm"
    clip.write_bytes(b"x")

    def run(*args, **kwargs):
        raise FileNotFoundError("ffprobe")

    monkeypatch.setattr(media.subprocess, "run", run)
    assert media.probe_duration(clip) is None


def test_encoder_without_ffmpeg_passes_through(tmp_path):
    clip = tmp_path / "clip.webm"
    clip.write_bytes(b"x")
    with VideoEncoder(ffmpeg_bin="facecast-missing-ffmpeg") as encoder:
        assert encoder.available is False
        assert encoder.prepare(clip) == clip
        with pytest.raises(EncoderError):
            encoder.transcode_to_mp4(clip)


def test_encoder_failure_falls_back(tmp_path, monkeypatch):
    clip = tmp_path / "clip.webm"
    clip.write_bytes(b"x")
    monkeypatch.setattr("facecast.client.encoder.shutil.which", lambda name: "/usr/bin/ffmpeg")

    encoder = VideoEncoder()
    assert encoder.start() is True

    def failing_run(args):
        raise EncoderError("ffmpeg failed: invalid data")

    monkeypatch.setattr(encoder, "_run", failing_run)
    try:
        assert encoder.prepare(clip) == clip
        mp4 = tmp_path / "already.mp4"
        assert encoder.prepare(mp4) == mp4
    finally:
        encoder.close()
    assert encoder.available is False


def test_encoder_transcodes_into_workdir(tmp_path, monkeypatch):
    clip = tmp_path / "clip.webm"
    clip.write_bytes(b"x")
    monkeypatch.setattr("facecast.client.encoder.shutil.which", lambda name: "/usr/bin/ffmpeg")
    calls = []

    with VideoEncoder() as encoder:
        monkeypatch.setattr(encoder, "_run", lambda args: calls.append(args))
        target = encoder.prepare(clip)
        assert target.name == "clip.mp4"
        assert target.parent != tmp_path
    assert calls[0][:2] == ["-i", str(clip)]
    assert calls[0][-1] == str(target)
