"""
Wrappers around the external media tools (ffmpeg, ffprobe) and a generic
blocking command runner used by the processing tasks.

All tools run as subprocesses; a non-zero exit, a timeout or a missing
executable raises MediaToolError carrying the tool's stderr.
"""
import json
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .logger import setup_worker_logger

logger = setup_worker_logger('media_utils')


class MediaToolError(Exception):
    """Raised when an external media or NLP tool fails."""
    pass


@dataclass
class MediaInfo:
    """Properties of an encoded video file"""
    duration_ms: int
    width: int
    height: int
    fps: float


def split_command(command: Union[str, Sequence[str]]) -> List[str]:
    """Turn a configured command (string or list) into an argv list."""
    if isinstance(command, str):
        return shlex.split(command)
    return [str(part) for part in command]


def run_tool(cmd: Sequence[str], timeout: Optional[int] = None, stdout_path: Optional[Path] = None) -> str:
    """Run an external tool to completion.

    Args:
        cmd: argv list
        timeout: Seconds before the tool is killed (None waits forever)
        stdout_path: If given, standard output is written to this file instead of returned

    Returns:
        Captured standard output ('' when redirected to a file)

    Raises:
        MediaToolError: If the tool cannot be started, times out or exits non-zero
    """
    cmd = [str(part) for part in cmd]
    logger.debug(f"Running: {' '.join(shlex.quote(part) for part in cmd)}")
    try:
        if stdout_path is not None:
            with open(stdout_path, 'w', encoding='utf-8') as out:
                result = subprocess.run(cmd, stdout=out, stderr=subprocess.PIPE,
                                        text=True, timeout=timeout, check=False)
        else:
            result = subprocess.run(cmd, capture_output=True, text=True,
                                    timeout=timeout, check=False)
    except FileNotFoundError as e:
        raise MediaToolError(f"Executable not found: {cmd[0]}") from e
    except subprocess.TimeoutExpired as e:
        raise MediaToolError(f"{Path(cmd[0]).name} timed out after {timeout}s") from e

    if result.returncode != 0:
        stderr = (result.stderr or '').strip()
        tail = stderr.splitlines()[-1] if stderr else 'no error output'
        raise MediaToolError(f"{Path(cmd[0]).name} exited with code {result.returncode}: {tail}")

    return result.stdout if stdout_path is None else ''


def _parse_frame_rate(rate: str) -> float:
    """Parse an ffprobe rational frame rate such as '30000/1001'."""
    try:
        if '/' in rate:
            num, den = rate.split('/', 1)
            return round(float(num) / float(den), 3) if float(den) else 0.0
        return float(rate)
    except (TypeError, ValueError):
        return 0.0


def probe_media(file_path: Union[str, Path], ffprobe: str = 'ffprobe') -> MediaInfo:
    """Read duration, frame size and frame rate of a video file with ffprobe."""
    cmd = [
        ffprobe,
        '-v', 'error',
        '-select_streams', 'v:0',
        '-show_entries', 'stream=width,height,avg_frame_rate:format=duration',
        '-of', 'json',
        str(file_path)
    ]
    output = run_tool(cmd, timeout=120)

    try:
        data = json.loads(output)
        stream = data['streams'][0]
        duration = float(data['format']['duration'])
    except (json.JSONDecodeError, KeyError, IndexError, TypeError, ValueError) as e:
        raise MediaToolError(f"Could not parse ffprobe output for {file_path}") from e

    return MediaInfo(
        duration_ms=int(round(duration * 1000)),
        width=int(stream.get('width', 0)),
        height=int(stream.get('height', 0)),
        fps=_parse_frame_rate(stream.get('avg_frame_rate', '0')),
    )


def _format_timestamp(ms: int) -> str:
    seconds = ms / 1000.0
    return f"{seconds:.3f}"


def encode_segment(
    source: Union[str, Path],
    destination: Union[str, Path],
    start_ms: int,
    end_ms: int,
    width: int,
    height: int,
    ffmpeg: str = 'ffmpeg',
    video_bitrate: str = '1000k',
    audio_bitrate: str = '128k',
    timeout: Optional[int] = None
) -> None:
    """Cut [start_ms, end_ms] from a movie and encode it as web-ready H.264 MP4."""
    Path(destination).parent.mkdir(parents=True, exist_ok=True)
    cmd = [
        ffmpeg, '-y',
        '-ss', _format_timestamp(start_ms),
        '-i', str(source),
        '-t', _format_timestamp(end_ms - start_ms),
        '-vf', f"scale={width}:{height}",
        '-c:v', 'libx264', '-b:v', video_bitrate, '-pix_fmt', 'yuv420p',
        '-c:a', 'aac', '-b:a', audio_bitrate,
        '-movflags', '+faststart',
        str(destination)
    ]
    run_tool(cmd, timeout=timeout)


def extract_frame(
    source: Union[str, Path],
    position_ms: int,
    ffmpeg: str = 'ffmpeg',
    timeout: Optional[int] = 300
) -> bytes:
    """Grab a single JPEG frame at position_ms and return its bytes."""
    cmd = [
        ffmpeg,
        '-ss', _format_timestamp(position_ms),
        '-i', str(source),
        '-frames:v', '1',
        '-f', 'image2pipe',
        '-vcodec', 'mjpeg',
        'pipe:1'
    ]
    try:
        result = subprocess.run(cmd, capture_output=True, timeout=timeout, check=False)
    except FileNotFoundError as e:
        raise MediaToolError(f"Executable not found: {ffmpeg}") from e
    except subprocess.TimeoutExpired as e:
        raise MediaToolError(f"ffmpeg timed out after {timeout}s") from e

    if result.returncode != 0 or not result.stdout:
        raise MediaToolError(f"ffmpeg could not extract a frame at {position_ms}ms from {source}")
    return result.stdout
