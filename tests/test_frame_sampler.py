import io
import subprocess
from unittest import mock

import ffmpeg
import pytest
from PIL import Image

from shelfscan import frame_sampler
from shelfscan.errors import FrameRenderError, ScanCancelled
from shelfscan.frame_sampler import (
    encode_jpeg,
    probe_duration,
    render_frame,
    sample_frames,
    sampling_timestamps,
)

from conftest import fake_render, make_failing_render


def _png_bytes(width=640, height=360):
    buf = io.BytesIO()
    Image.new('RGB', (width, height), color='white').save(buf, format='PNG')
    return buf.getvalue()


def _mock_ffmpeg_process(monkeypatch, stdout=b"", stderr=b"", returncode=0):
    process = mock.Mock()
    process.communicate.return_value = (stdout, stderr)
    process.returncode = returncode
    ffmpeg_input = mock.MagicMock()
    ffmpeg_input.return_value.output.return_value.global_args.return_value.run_async.return_value = process
    monkeypatch.setattr(frame_sampler.ffmpeg, "input", ffmpeg_input)
    return process


def test_sampling_timestamps_even_spacing():
    assert sampling_timestamps(4, 10.0) == [0.0, 2.5, 5.0, 7.5]


def test_sampling_timestamps_default_estimate():
    timestamps = sampling_timestamps(20, 30.0)
    assert len(timestamps) == 20
    assert timestamps[1] == pytest.approx(1.5)
    assert timestamps[-1] == pytest.approx(28.5)


def test_sampling_timestamps_zero_frames():
    assert sampling_timestamps(0, 30.0) == []
    assert sampling_timestamps(-3, 30.0) == []


def test_sample_frames_uses_estimate_without_known_duration(video_file):
    seen = []

    def render(path, index, timestamp, quality, timeout):
        seen.append(timestamp)
        return b"jpeg"

    frames = sample_frames(video_file, frame_count=3, estimated_duration=30.0, render=render)
    assert seen == [0.0, 10.0, 20.0]
    assert [f.timestamp_hint for f in frames] == [0.0, 10.0, 20.0]


def test_sample_frames_prefers_known_duration(video_file):
    seen = []

    def render(path, index, timestamp, quality, timeout):
        seen.append(timestamp)
        return b"jpeg"

    sample_frames(video_file, frame_count=4, known_duration=8.0, render=render)
    assert seen == [0.0, 2.0, 4.0, 6.0]


def test_sample_frames_ignores_non_positive_known_duration(video_file):
    seen = []

    def render(path, index, timestamp, quality, timeout):
        seen.append(timestamp)
        return b"jpeg"

    sample_frames(video_file, frame_count=2, known_duration=0, estimated_duration=30.0, render=render)
    assert seen == [0.0, 15.0]


@pytest.mark.parametrize("frame_count", [0, 1, 5, 20])
def test_sample_frames_ordered_and_bounded(video_file, frame_count):
    frames = sample_frames(video_file, frame_count=frame_count, render=fake_render)
    indices = [f.index for f in frames]
    assert len(frames) <= frame_count
    assert indices == sorted(set(indices))


def test_sample_frames_skips_failed_renders(video_file, caplog):
    frames = sample_frames(video_file, frame_count=5, render=make_failing_render({1, 3}))
    assert [f.index for f in frames] == [0, 2, 4]
    assert frames[1].image_bytes == b"frame-2"
    assert "Failed to render frame 1" in caplog.text


def test_sample_frames_all_failures_returns_empty(video_file):
    frames = sample_frames(video_file, frame_count=4, render=make_failing_render(set(range(4))))
    assert frames == []


def test_sample_frames_accepts_raw_bytes():
    frames = sample_frames(b"raw video bytes", frame_count=2, render=fake_render)
    assert len(frames) == 2


def test_sample_frames_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        sample_frames(tmp_path / "missing.mp4", frame_count=2, render=fake_render)


def test_sample_frames_cancelled(video_file):
    cancel = mock.Mock()
    cancel.is_set.return_value = True
    with pytest.raises(ScanCancelled):
        sample_frames(video_file, frame_count=3, render=fake_render, cancel_event=cancel)


def test_encode_jpeg_keeps_native_size():
    encoded = encode_jpeg(_png_bytes(1920, 1080), quality=90)
    image = Image.open(io.BytesIO(encoded))
    assert image.format == 'JPEG'
    assert image.size == (1920, 1080)


def test_render_frame_returns_jpeg(monkeypatch, video_file):
    _mock_ffmpeg_process(monkeypatch, stdout=_png_bytes(320, 240))
    image = Image.open(io.BytesIO(render_frame(video_file, 0, 0.0)))
    assert image.format == 'JPEG'
    assert image.size == (320, 240)


def test_render_frame_past_end_of_video(monkeypatch, video_file):
    # ffmpeg exits cleanly but writes nothing when seeking beyond the last frame
    _mock_ffmpeg_process(monkeypatch, stdout=b"")
    with pytest.raises(FrameRenderError, match="no image"):
        render_frame(video_file, 7, 95.0)


def test_render_frame_ffmpeg_failure(monkeypatch, video_file):
    _mock_ffmpeg_process(monkeypatch, stderr=b"Invalid data found", returncode=1)
    with pytest.raises(FrameRenderError, match="Invalid data found"):
        render_frame(video_file, 0, 0.0)


def test_render_frame_undecodable_output(monkeypatch, video_file):
    _mock_ffmpeg_process(monkeypatch, stdout=b"garbage")
    with pytest.raises(FrameRenderError, match="decode error"):
        render_frame(video_file, 0, 0.0)


def test_render_frame_timeout_kills_ffmpeg(monkeypatch, video_file):
    process = _mock_ffmpeg_process(monkeypatch)
    process.communicate.side_effect = [subprocess.TimeoutExpired("ffmpeg", 1.0), (b"", b"")]
    with pytest.raises(FrameRenderError, match="timed out"):
        render_frame(video_file, 2, 3.0, timeout=1.0)
    process.kill.assert_called_once()


def test_probe_duration_reads_format(monkeypatch, video_file):
    monkeypatch.setattr(frame_sampler.ffmpeg, "probe", lambda path: {"format": {"duration": "42.5"}})
    assert probe_duration(video_file) == 42.5


def test_probe_duration_falls_back_to_stream(monkeypatch, video_file):
    info = {"format": {}, "streams": [{"codec_type": "audio"}, {"codec_type": "video", "duration": "12"}]}
    monkeypatch.setattr(frame_sampler.ffmpeg, "probe", lambda path: info)
    assert probe_duration(video_file) == 12.0


def test_probe_duration_missing(monkeypatch, video_file):
    # WebM recordings from a browser often report no duration
    monkeypatch.setattr(frame_sampler.ffmpeg, "probe", lambda path: {"format": {"duration": "N/A"}})
    assert probe_duration(video_file) is None


def test_probe_duration_error(monkeypatch, video_file):
    def probe(path):
        raise ffmpeg.Error("ffprobe", b"", b"moov atom not found")
    monkeypatch.setattr(frame_sampler.ffmpeg, "probe", probe)
    assert probe_duration(video_file) is None
