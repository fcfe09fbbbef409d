"""Cut a segment out of its parent movie and encode it as web video."""

from pathlib import Path
from typing import Dict, List, Optional, Tuple

from archive_core.processing.outcome import TaskOutcome
from archive_core.utils.logger import setup_worker_logger
from archive_core.utils.media_utils import MediaToolError, encode_segment, probe_media

from .base import AbstractTask, RunCondition

logger = setup_worker_logger('tasks')


def _parse_resolution(value: str) -> Tuple[int, int]:
    width, height = str(value).lower().split('x', 1)
    return int(width), int(height)


def find_resolution_mapping(mappings: List[Dict], width: int, height: int) -> Optional[Tuple[int, int]]:
    """Target (width, height) configured for a source frame size, or None."""
    for mapping in mappings or []:
        try:
            source = _parse_resolution(mapping['source'])
            target = _parse_resolution(mapping['target'])
        except (KeyError, ValueError):
            logger.warning(f"Ignoring malformed resolution mapping: {mapping}")
            continue
        if source == (width, height):
            return target
    return None


class TranscodingTask(AbstractTask):
    name = "TranscodingTask"
    option = "video"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._movie = None
        self._target: Optional[Tuple[int, int]] = None

    @property
    def settings(self) -> Dict:
        return self.config.get('transcoding', {})

    @property
    def tools(self) -> Dict:
        return self.config.get('tools', {})

    def check_requirements(self) -> TaskOutcome:
        self._movie = self.db.get_movie(self.segment.movie_id)
        if self._movie is None:
            return TaskOutcome.deferred(f"Could not retrieve parent movie with id={self.segment.movie_id}.")

        if not Path(self._movie.media_path).exists():
            return TaskOutcome.deferred(f"Could not find required input file {self._movie.media_path}.")

        try:
            info = probe_media(self._movie.media_path, self.tools.get('ffprobe', 'ffprobe'))
        except MediaToolError as e:
            return TaskOutcome.failed(f"Could not analyze {self._movie.media_path}: {e}")

        self._target = find_resolution_mapping(self.settings.get('resolution_mappings'), info.width, info.height)
        if self._target is None:
            return TaskOutcome.deferred(f"No mapping exists for input file resolution {info.width}x{info.height}.")

        return TaskOutcome.success()

    def purge(self) -> None:
        # Existing media is only discarded on a forced run; otherwise it may
        # still be valid and just need its metadata recorded.
        if self.segment.media_path and self.run_condition == RunCondition.ALWAYS:
            media = Path(self.segment.media_path)
            if media.exists():
                logger.info(f"Deleting existing segment video {media}.")
                media.unlink()

        logger.info("Setting media related fields to null.")
        self.segment.media_path = None
        self.segment.duration = None
        self.segment.fps = None
        self.segment.width = None
        self.segment.height = None
        self.db.update_segment(self.segment)
        self.reload_segment()

    def run(self) -> TaskOutcome:
        output_dir = self.build_path / "WebVideo" / self._movie.movie_name
        output_dir.mkdir(parents=True, exist_ok=True)
        segment_file = output_dir / f"{self.segment.segment_name}.mp4"

        if segment_file.exists() and self.run_condition != RunCondition.ALWAYS:
            logger.info(f"Keeping existing segment video {segment_file}.")
        else:
            if segment_file.exists():
                logger.info(f"Deleting existing segment video {segment_file}.")
                segment_file.unlink()

            logger.info(f"Transcoding segment video {segment_file}")
            width, height = self._target
            try:
                encode_segment(
                    self._movie.media_path, segment_file,
                    self.segment.start_time, self.segment.end_time,
                    width, height,
                    ffmpeg=self.tools.get('ffmpeg', 'ffmpeg'),
                    video_bitrate=self.settings.get('video_bitrate', '1000k'),
                    audio_bitrate=self.settings.get('audio_bitrate', '128k'),
                    timeout=self.tool_timeout
                )
            except MediaToolError as e:
                return TaskOutcome.failed(f"Transcoding failed: {e}")

            if not segment_file.exists():
                return TaskOutcome.failed(f"Failed to produce expected output file {segment_file}.")

        logger.info(f"Analyzing the segment video {segment_file}")
        try:
            info = probe_media(segment_file, self.tools.get('ffprobe', 'ffprobe'))
        except MediaToolError as e:
            return TaskOutcome.failed(f"Could not analyze {segment_file}: {e}")

        expected = self.segment.expected_duration
        difference = info.duration_ms - expected
        allowed = int(self.settings.get('maximum_allowable_delta_ms', 500))
        logger.info(f"Duration={info.duration_ms}ms; FPS={info.fps}; Width={info.width}; Height={info.height}")
        logger.info(f"Expected Duration={expected}ms; Allowable Difference={allowed}ms; Actual Difference={difference}ms")

        if abs(difference) > allowed:
            return TaskOutcome.failed(f"Transcoded video file is too {'short' if difference < 0 else 'long'}.")

        self.segment.media_path = str(segment_file)
        self.segment.duration = info.duration_ms
        self.segment.fps = info.fps
        self.segment.width = info.width
        self.segment.height = info.height
        if not self.db.update_segment(self.segment):
            return TaskOutcome.failed("Failed to write segment media info to database.")

        return TaskOutcome.success()
