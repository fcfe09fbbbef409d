"""
Named-entity recognition tasks.

Both recognizers run as external commands over the staged transcript and
leave their output in the segment data folder, where entity resolution
picks it up:

- SpacyTask:    <data>/<segment_id>.spacy.csv     (text,start,end,label)
- StanfordTask: <data>/<segment_id>.stanford.tsv  (entity<TAB>label[<TAB>...])
"""

import tempfile
from abc import abstractmethod
from pathlib import Path
from typing import List

from archive_core.processing.outcome import TaskOutcome
from archive_core.utils.logger import setup_worker_logger
from archive_core.utils.media_utils import MediaToolError, run_tool, split_command

from .base import AbstractTask, RunCondition

logger = setup_worker_logger('tasks')


class ExternalRecognizerTask(AbstractTask):
    """Shared requirements, purge and staging for command-line recognizers."""

    tool_key: str = None
    tool_label: str = None
    output_suffix: str = None

    @property
    def output_file(self) -> Path:
        return self.data_path / f"{self.segment_id}.{self.output_suffix}"

    @property
    def command(self) -> List[str]:
        return split_command(self.config.get('tools', {}).get(self.tool_key) or [])

    def check_requirements(self) -> TaskOutcome:
        if not self.command:
            return TaskOutcome.failed(f"No {self.tool_label} command configured (tools.{self.tool_key}).")
        transcript = self.check_transcript()
        if transcript is not None:
            return transcript
        return TaskOutcome.success()

    def purge(self) -> None:
        if self.output_file.exists() and self.run_condition == RunCondition.ALWAYS:
            logger.info(f"Deleting existing {self.tool_label} data {self.output_file}")
            self.output_file.unlink()

    def run(self) -> TaskOutcome:
        self.data_path.mkdir(parents=True, exist_ok=True)

        if self.output_file.exists() and self.run_condition != RunCondition.ALWAYS:
            logger.info(f"Keeping existing {self.tool_label} data: {self.output_file}")
            return TaskOutcome.success()

        with tempfile.TemporaryDirectory(prefix="archive-ner-") as tmp:
            txt_file = Path(tmp) / f"{self.segment.segment_name}.txt"
            logger.info(f"Staging transcript to: {txt_file}")
            txt_file.write_text(self.segment.transcript_text, encoding='utf-8')

            try:
                self.recognize(txt_file)
            except MediaToolError as e:
                if self.output_file.exists():
                    self.output_file.unlink()
                return TaskOutcome.failed(f"{self.tool_label} failed: {e}")

        if not self.output_file.exists():
            return TaskOutcome.failed(f"Failed to produce expected output file {self.output_file}.")
        return TaskOutcome.success()

    @abstractmethod
    def recognize(self, txt_file: Path) -> None:
        """Run the recognizer on the staged transcript, writing output_file."""
        pass


class SpacyTask(ExternalRecognizerTask):
    name = "SpacyTask"
    option = "spacy"
    tool_key = "spacy_command"
    tool_label = "spaCy NLP"
    output_suffix = "spacy.csv"

    def recognize(self, txt_file: Path) -> None:
        run_tool(self.command + [str(txt_file), str(self.output_file)], timeout=self.tool_timeout)


class StanfordTask(ExternalRecognizerTask):
    name = "StanfordTask"
    option = "stanford"
    tool_key = "stanford_command"
    tool_label = "Stanford NER"
    output_suffix = "stanford.tsv"

    def recognize(self, txt_file: Path) -> None:
        run_tool(self.command + [str(txt_file)], timeout=self.tool_timeout, stdout_path=self.output_file)
