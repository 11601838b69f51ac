"""Evenly spaced frame sampling from a recorded video using ffmpeg."""

import io
import logging
import subprocess
import tempfile
from contextlib import contextmanager
from pathlib import Path
from threading import Event
from typing import Callable, Iterator, List, Optional, Union

import ffmpeg
from PIL import Image, UnidentifiedImageError

from shelfscan.cancellation import check_cancelled
from shelfscan.errors import FrameRenderError
from shelfscan.models import Frame
from shelfscan.profiler import profiler

logger = logging.getLogger(__name__)

VideoSource = Union[str, Path, bytes]

# Renders one frame: (video_path, index, timestamp, jpeg_quality, timeout) -> JPEG bytes
FrameRenderer = Callable[[Path, int, float, int, float], bytes]


def sampling_timestamps(frame_count: int, duration: float) -> List[float]:
    """Return ``i * duration / frame_count`` for every i in [0, frame_count)."""
    if frame_count <= 0:
        return []
    interval = duration / frame_count
    return [i * interval for i in range(frame_count)]


def probe_duration(video: Union[str, Path]) -> Optional[float]:
    """
    Read the container duration in seconds.

    Returns None when ffprobe fails or the container carries no duration
    (common for recordings straight off a phone camera).
    """
    try:
        info = ffmpeg.probe(str(video))
    except ffmpeg.Error as e:
        stderr = e.stderr.decode('utf8', errors='ignore') if e.stderr else ''
        logger.warning(f"Could not probe {video}: {stderr[-200:]}")
        return None
    except FileNotFoundError:
        logger.warning("ffprobe executable not found, falling back to estimated duration")
        return None

    raw = info.get('format', {}).get('duration')
    if raw is None:
        for stream in info.get('streams', []):
            if stream.get('codec_type') == 'video' and stream.get('duration'):
                raw = stream['duration']
                break
    try:
        duration = float(raw)
    except (TypeError, ValueError):
        return None
    return duration if duration > 0 else None


def encode_jpeg(image_bytes: bytes, quality: int = 90) -> bytes:
    """Re-encode any decodable image as JPEG, keeping its native size."""
    image = Image.open(io.BytesIO(image_bytes))
    image.load()
    if image.mode != 'RGB':
        image = image.convert('RGB')
    buf = io.BytesIO()
    image.save(buf, format='JPEG', quality=quality)
    return buf.getvalue()


def render_frame(
    video_path: Path,
    index: int,
    timestamp: float,
    jpeg_quality: int = 90,
    timeout: float = 15.0
) -> bytes:
    """
    Render the frame at ``timestamp`` as JPEG bytes.

    Raises:
        FrameRenderError: ffmpeg failed, timed out, or produced no decodable image
        RuntimeError: the ffmpeg executable is not installed
    """
    try:
        process = (
            ffmpeg
            .input(str(video_path), ss=timestamp)
            .output('pipe:', vframes=1, format='image2pipe', vcodec='png')
            .global_args('-loglevel', 'error')
            .run_async(pipe_stdout=True, pipe_stderr=True)
        )
    except FileNotFoundError as e:
        raise RuntimeError("ffmpeg executable not found. Please install ffmpeg.") from e

    try:
        stdout, stderr = process.communicate(timeout=timeout)
    except subprocess.TimeoutExpired as e:
        process.kill()
        process.communicate()
        raise FrameRenderError(index, timestamp, f"timed out after {timeout}s") from e

    if process.returncode != 0:
        message = stderr.decode('utf8', errors='ignore').strip()[-200:]
        raise FrameRenderError(index, timestamp, f"ffmpeg exited with code {process.returncode}: {message}")
    if not stdout:
        # Seeking past the end of the stream yields no output at all
        raise FrameRenderError(index, timestamp, "no image at this position")

    try:
        return encode_jpeg(stdout, quality=jpeg_quality)
    except (UnidentifiedImageError, OSError) as e:
        raise FrameRenderError(index, timestamp, f"decode error: {e}") from e


@contextmanager
def _video_path(video: VideoSource) -> Iterator[Path]:
    """Yield a filesystem path for the video, spooling raw bytes to a temp file."""
    if isinstance(video, (bytes, bytearray)):
        with tempfile.NamedTemporaryFile(suffix='.video') as tmp:
            tmp.write(video)
            tmp.flush()
            yield Path(tmp.name)
        return

    path = Path(video)
    if not path.exists():
        raise FileNotFoundError(f"Video file not found: {path}")
    yield path


def sample_frames(
    video: VideoSource,
    frame_count: int = 20,
    known_duration: Optional[float] = None,
    estimated_duration: float = 30.0,
    jpeg_quality: int = 90,
    render_timeout: float = 15.0,
    cancel_event: Optional[Event] = None,
    render: FrameRenderer = render_frame
) -> List[Frame]:
    """
    Sample ``frame_count`` evenly spaced frames from a video.

    The spacing uses ``known_duration`` when the caller has it (upload path)
    and ``estimated_duration`` otherwise (camera capture path, where the
    recording carries no reliable duration metadata).

    Frames that fail to render are logged and skipped, so the result may be
    shorter than ``frame_count`` or empty. Frames come back in ascending
    index order.

    Args:
        video: Path to the video file, or its raw bytes
        frame_count: Number of frames to sample (default: 20)
        known_duration: True video duration in seconds, if known
        estimated_duration: Duration assumed when none is known (default: 30.0)
        jpeg_quality: JPEG quality for rendered frames, 80-100 (default: 90)
        render_timeout: Seconds to wait for each frame render (default: 15.0)
        cancel_event: Set to abort the scan between frames
        render: Frame renderer, replaceable for tests

    Returns:
        List of Frame in sampling order
    """
    if known_duration is not None and known_duration > 0:
        duration = known_duration
    else:
        if known_duration is not None:
            logger.warning(f"Ignoring non-positive known duration {known_duration}, using estimate")
        duration = estimated_duration

    timestamps = sampling_timestamps(frame_count, duration)
    frames: List[Frame] = []

    with _video_path(video) as video_path:
        for index, timestamp in enumerate(timestamps):
            check_cancelled(cancel_event, "frame sampling")
            profiler.start_timer("render_frame")
            try:
                image_bytes = render(video_path, index, timestamp, jpeg_quality, render_timeout)
            except FrameRenderError as e:
                logger.warning(str(e))
                continue
            finally:
                profiler.stop_timer("render_frame")

            frames.append(Frame(index=index, image_bytes=image_bytes, timestamp_hint=timestamp))

    logger.info(f"Sampled {len(frames)}/{frame_count} frames over {duration:.1f}s")
    return frames
