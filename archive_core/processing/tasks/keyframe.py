"""Extract a representative thumbnail from the middle of the segment video."""

from pathlib import Path

from archive_core.processing.outcome import TaskOutcome
from archive_core.utils.logger import setup_worker_logger
from archive_core.utils.media_utils import MediaToolError, extract_frame

from .base import AbstractTask

logger = setup_worker_logger('tasks')


class KeyFrameTask(AbstractTask):
    name = "KeyFrameTask"
    option = "keyframe"

    def check_requirements(self) -> TaskOutcome:
        if not self.segment.media_path:
            return TaskOutcome.deferred("Segment has no transcoded video.")
        if not Path(self.segment.media_path).exists():
            return TaskOutcome.deferred(f"Could not find required input file {self.segment.media_path}.")
        return TaskOutcome.success()

    def purge(self) -> None:
        logger.info("Setting segment keyframe to null.")
        self.segment.keyframe = None
        self.db.update_segment(self.segment)
        self.reload_segment()

    def run(self) -> TaskOutcome:
        logger.info(f"Extracting key frame for segment {self.segment_id} '{self.segment.segment_name}'.")
        midpoint = (self.segment.duration or 0) // 2
        try:
            keyframe = extract_frame(
                self.segment.media_path, midpoint,
                ffmpeg=self.config.get('tools', {}).get('ffmpeg', 'ffmpeg'),
                timeout=self.tool_timeout
            )
        except MediaToolError as e:
            return TaskOutcome.failed(f"Failed to extract key frame: {e}")

        self.segment.keyframe = keyframe
        if not self.db.update_segment(self.segment):
            return TaskOutcome.failed("Failed to write keyframe to database.")
        return TaskOutcome.success()
