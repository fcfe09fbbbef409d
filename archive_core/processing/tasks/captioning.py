"""Build WebVTT captions from aligned word timings."""

from pathlib import Path
from typing import Dict, List

from archive_core.processing.outcome import TaskOutcome
from archive_core.utils.logger import setup_worker_logger

from .base import AbstractTask

logger = setup_worker_logger('tasks')


def format_vtt_time(ms: int) -> str:
    hours, remainder = divmod(int(ms), 3_600_000)
    minutes, remainder = divmod(remainder, 60_000)
    seconds, millis = divmod(remainder, 1000)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{millis:03d}"


def build_cues(words: List[Dict], max_length: int = 64, max_duration_ms: int = 6000) -> List[Dict]:
    """Group aligned words into cues bounded by text length and duration."""
    cues = []
    current: List[Dict] = []

    def flush():
        if current:
            cues.append({
                'start': current[0]['start'],
                'end': current[-1]['end'],
                'text': ' '.join(w['word'] for w in current),
            })
            current.clear()

    for word in words:
        if current:
            text_length = len(' '.join(w['word'] for w in current)) + 1 + len(word['word'])
            if text_length > max_length or word['end'] - current[0]['start'] > max_duration_ms:
                flush()
        current.append(word)
    flush()
    return cues


def render_vtt(cues: List[Dict]) -> str:
    lines = ["WEBVTT", ""]
    for index, cue in enumerate(cues, start=1):
        lines.append(str(index))
        lines.append(f"{format_vtt_time(cue['start'])} --> {format_vtt_time(cue['end'])}")
        lines.append(cue['text'])
        lines.append("")
    return "\n".join(lines)


class CaptioningTask(AbstractTask):
    name = "CaptioningTask"
    option = "captions"

    @property
    def caption_file(self) -> Path:
        return self.build_path / "Captions" / f"{self.segment.segment_name}.vtt"

    def check_requirements(self) -> TaskOutcome:
        if not self.segment.transcript_sync:
            return TaskOutcome.deferred("Transcript has not been aligned.")
        return TaskOutcome.success()

    def purge(self) -> None:
        if self.caption_file.exists():
            logger.info(f"Deleting {self.caption_file}.")
            self.caption_file.unlink()

    def run(self) -> TaskOutcome:
        settings = self.config.get('captioning', {})
        cues = build_cues(
            self.segment.transcript_sync,
            max_length=int(settings.get('max_cue_length', 64)),
            max_duration_ms=int(settings.get('max_cue_duration_ms', 6000))
        )
        if not cues:
            return TaskOutcome.failed("No caption cues could be built from the alignment.")

        self.caption_file.parent.mkdir(parents=True, exist_ok=True)
        self.caption_file.write_text(render_vtt(cues), encoding='utf-8')
        logger.info(f"Wrote {len(cues)} caption cues to {self.caption_file}.")
        return TaskOutcome.success()
