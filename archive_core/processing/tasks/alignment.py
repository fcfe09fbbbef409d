"""Align the segment transcript to its audio to obtain word timings."""

import json
from pathlib import Path

from archive_core.nlp.alignment import GentleAligner, to_transcript_sync
from archive_core.processing.outcome import TaskOutcome
from archive_core.utils.logger import setup_worker_logger
from archive_core.utils.media_utils import MediaToolError

from .base import AbstractTask

logger = setup_worker_logger('tasks')


class AlignmentTask(AbstractTask):
    name = "AlignmentTask"
    option = "alignment"

    @property
    def alignment_file(self) -> Path:
        return self.data_path / f"{self.segment_id}.alignment.json"

    @property
    def transcript_file(self) -> Path:
        return self.data_path / f"{self.segment_id}.txt"

    def check_requirements(self) -> TaskOutcome:
        if not self.config.get('tools', {}).get('gentle_command'):
            return TaskOutcome.failed("No forced aligner command configured (tools.gentle_command).")
        if not self.segment.media_path or not Path(self.segment.media_path).exists():
            return TaskOutcome.deferred("Segment video is not available.")
        transcript = self.check_transcript()
        if transcript is not None:
            return transcript
        return TaskOutcome.success()

    def purge(self) -> None:
        if self.alignment_file.exists():
            logger.info(f"Deleting {self.alignment_file}.")
            self.alignment_file.unlink()

        logger.info("Setting transcript sync data to null.")
        self.segment.transcript_sync = None
        self.db.update_segment(self.segment)
        self.reload_segment()

    def run(self) -> TaskOutcome:
        self.data_path.mkdir(parents=True, exist_ok=True)
        self.transcript_file.write_text(self.segment.transcript_text, encoding='utf-8')

        aligner = GentleAligner(self.config['tools']['gentle_command'], timeout=self.tool_timeout)
        try:
            result = aligner.align(Path(self.segment.media_path), self.transcript_file)
        except MediaToolError as e:
            return TaskOutcome.failed(f"Forced alignment failed: {e}")

        with open(self.alignment_file, 'w', encoding='utf-8') as f:
            json.dump(result, f, indent=2)

        sync = to_transcript_sync(result)
        if not sync:
            return TaskOutcome.failed("No words could be aligned.")
        logger.info(f"{len(sync)} words aligned.")
        self.segment.transcript_sync = sync
        if not self.db.update_segment(self.segment):
            return TaskOutcome.failed("Failed to write transcript sync data to database.")
        return TaskOutcome.success()
