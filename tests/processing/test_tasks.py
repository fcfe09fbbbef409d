"""
Tests for the concrete processing tasks, with external tools mocked.
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from archive_core.database.models import Movie, TaskStateValue
from archive_core.nlp.lookups import EntityLookups
from archive_core.processing.outcome import TaskStatus
from archive_core.processing.task_manager import TaskManager
from archive_core.processing.tasks import (
    AlignmentTask,
    CaptioningTask,
    EntityResolutionTask,
    KeyFrameTask,
    SpacyTask,
    StanfordTask,
    TranscodingTask,
)
from archive_core.processing.tasks.base import RunCondition, TaskContext
from archive_core.processing.tasks.captioning import build_cues, format_vtt_time, render_vtt
from archive_core.processing.tasks.transcoding import find_resolution_mapping
from archive_core.utils.media_utils import MediaInfo, MediaToolError

MAPPINGS = [
    {'source': '720x480', 'target': '640x480'},
    {'source': '1920x1080', 'target': '1280x720'},
]


@pytest.fixture
def task_config(tmp_path):
    return {
        'paths': {'build_path': str(tmp_path / 'build')},
        'tools': {
            'ffmpeg': 'ffmpeg',
            'ffprobe': 'ffprobe',
            'gentle_command': 'gentle-align',
            'spacy_command': 'spacy-runner',
            'stanford_command': 'stanford-ner -textFile',
            'timeout_seconds': 60,
        },
        'transcoding': {'maximum_allowable_delta_ms': 500, 'resolution_mappings': MAPPINGS},
        'captioning': {'max_cue_length': 20, 'max_cue_duration_ms': 6000},
    }


class TestFindResolutionMapping:

    def test_known_resolution(self):
        assert find_resolution_mapping(MAPPINGS, 1920, 1080) == (1280, 720)

    def test_unknown_resolution(self):
        assert find_resolution_mapping(MAPPINGS, 1024, 768) is None

    def test_malformed_mapping_ignored(self):
        mappings = [{'source': 'widescreen', 'target': '640x480'}] + MAPPINGS
        assert find_resolution_mapping(mappings, 720, 480) == (640, 480)


class TestTranscodingTask:
    """Tests for cutting the segment web video."""

    @pytest.fixture(autouse=True)
    def setup(self, db, add_segment, task_config, tmp_path):
        self.db = db
        self.segment = add_segment()
        self.context = TaskContext(db=db, config=task_config)
        self.master = tmp_path / "smith_jane_01.mov"

    def _use_master_file(self):
        self.master.write_bytes(b"mov")
        movie = self.db.session.query(Movie).first()
        movie.media_path = str(self.master)
        self.db.session.commit()

    def test_missing_master_file_defers(self):
        outcome = TranscodingTask(self.segment, self.context).check_requirements()
        assert outcome.status == TaskStatus.DEFERRED

    @patch('archive_core.processing.tasks.transcoding.probe_media')
    def test_unmapped_resolution_defers(self, mock_probe):
        self._use_master_file()
        mock_probe.return_value = MediaInfo(duration_ms=3600000, width=1024, height=768, fps=25.0)

        outcome = TranscodingTask(self.segment, self.context).check_requirements()

        assert outcome.status == TaskStatus.DEFERRED
        assert "1024x768" in outcome.reason

    @patch('archive_core.processing.tasks.transcoding.probe_media')
    def test_unreadable_master_fails(self, mock_probe):
        self._use_master_file()
        mock_probe.side_effect = MediaToolError("ffprobe exited with code 1")

        outcome = TranscodingTask(self.segment, self.context).check_requirements()

        assert outcome.status == TaskStatus.FAILED

    @patch('archive_core.processing.tasks.transcoding.encode_segment')
    @patch('archive_core.processing.tasks.transcoding.probe_media')
    def test_run_stores_media_fields(self, mock_probe, mock_encode):
        self._use_master_file()
        mock_probe.side_effect = [
            MediaInfo(duration_ms=3600000, width=720, height=480, fps=29.97),
            MediaInfo(duration_ms=60120, width=640, height=480, fps=29.97),
        ]
        mock_encode.side_effect = lambda source, dest, *args, **kwargs: Path(dest).write_bytes(b"mp4")
        task = TranscodingTask(self.segment, self.context)

        assert task.check_requirements().ok
        task.purge()
        outcome = task.run()

        assert outcome.ok
        segment = self.db.get_segment(self.segment.segment_id)
        assert segment.media_path.endswith("WebVideo/smith_jane_01/smith_jane_01_001.mp4")
        assert (segment.duration, segment.width, segment.height) == (60120, 640, 480)
        args = mock_encode.call_args[0]
        assert args[2:6] == (0, 60000, 640, 480)

    @patch('archive_core.processing.tasks.transcoding.encode_segment')
    @patch('archive_core.processing.tasks.transcoding.probe_media')
    def test_run_fails_on_duration_mismatch(self, mock_probe, mock_encode):
        self._use_master_file()
        mock_probe.side_effect = [
            MediaInfo(duration_ms=3600000, width=720, height=480, fps=29.97),
            MediaInfo(duration_ms=52000, width=640, height=480, fps=29.97),
        ]
        mock_encode.side_effect = lambda source, dest, *args, **kwargs: Path(dest).write_bytes(b"mp4")
        task = TranscodingTask(self.segment, self.context)

        assert task.check_requirements().ok
        outcome = task.run()

        assert outcome.status == TaskStatus.FAILED
        assert "too short" in outcome.reason
        assert self.db.get_segment(self.segment.segment_id).media_path is None


class TestKeyFrameTask:

    @pytest.fixture(autouse=True)
    def setup(self, db, add_segment, task_config, tmp_path):
        self.db = db
        self.video = tmp_path / "segment.mp4"
        self.segment = add_segment(media_path=str(self.video), duration=60000)
        self.context = TaskContext(db=db, config=task_config)

    def test_missing_video_defers(self):
        outcome = KeyFrameTask(self.segment, self.context).check_requirements()
        assert outcome.status == TaskStatus.DEFERRED

    @patch('archive_core.processing.tasks.keyframe.extract_frame')
    def test_run_stores_frame_from_midpoint(self, mock_extract):
        self.video.write_bytes(b"mp4")
        mock_extract.return_value = b"\xff\xd8jpeg"
        task = KeyFrameTask(self.segment, self.context)

        assert task.check_requirements().ok
        assert task.run().ok

        assert mock_extract.call_args[0][1] == 30000
        assert self.db.get_segment(self.segment.segment_id).keyframe == b"\xff\xd8jpeg"


class TestAlignmentTask:

    @pytest.fixture(autouse=True)
    def setup(self, db, add_segment, task_config, tmp_path):
        self.db = db
        self.config = task_config
        self.video = tmp_path / "segment.mp4"
        self.video.write_bytes(b"mp4")
        self.add_segment = add_segment

    def test_no_aligner_configured_fails(self):
        self.config['tools']['gentle_command'] = None
        segment = self.add_segment(media_path=str(self.video))

        outcome = AlignmentTask(segment, TaskContext(db=self.db, config=self.config)).check_requirements()

        assert outcome.status == TaskStatus.FAILED

    def test_empty_transcript_defers(self):
        segment = self.add_segment(media_path=str(self.video), transcript="   ")

        outcome = AlignmentTask(segment, TaskContext(db=self.db, config=self.config)).check_requirements()

        assert outcome.status == TaskStatus.DEFERRED

    @patch('archive_core.processing.tasks.alignment.GentleAligner.align')
    def test_run_stores_word_timings(self, mock_align):
        segment = self.add_segment(media_path=str(self.video), transcript="We moved")
        mock_align.return_value = {'words': [
            {'word': 'We', 'case': 'success', 'start': 0.5, 'end': 0.7},
            {'word': 'moved', 'case': 'not-found-in-audio'},
        ]}
        task = AlignmentTask(segment, TaskContext(db=self.db, config=self.config))

        task.purge()
        assert task.run().ok

        assert self.db.get_segment(segment.segment_id).transcript_sync == [{'word': 'We', 'start': 500, 'end': 700}]
        assert task.alignment_file.exists()
        assert task.transcript_file.read_text() == "We moved"

    @patch('archive_core.processing.tasks.alignment.GentleAligner.align')
    def test_nothing_aligned_fails(self, mock_align):
        segment = self.add_segment(media_path=str(self.video), transcript="We moved")
        mock_align.return_value = {'words': [
            {'word': 'We', 'case': 'not-found-in-audio'},
            {'word': 'moved', 'case': 'not-found-in-audio'},
        ]}
        task = AlignmentTask(segment, TaskContext(db=self.db, config=self.config))

        outcome = TaskManager().run(task)

        assert outcome.status == TaskStatus.FAILED
        assert self.db.get_task_state(segment.segment_id, "AlignmentTask") == TaskStateValue.FAILED
        assert self.db.get_segment(segment.segment_id).transcript_sync is None

    @patch('archive_core.processing.tasks.alignment.GentleAligner.align')
    def test_aligner_error_fails(self, mock_align):
        segment = self.add_segment(media_path=str(self.video))
        mock_align.side_effect = MediaToolError("gentle-align exited with code 1")

        outcome = AlignmentTask(segment, TaskContext(db=self.db, config=self.config)).run()

        assert outcome.status == TaskStatus.FAILED


class TestCaptions:
    """Tests for caption cue building and the captioning task."""

    WORDS = [
        {'word': 'We', 'start': 0, 'end': 200},
        {'word': 'moved', 'start': 250, 'end': 600},
        {'word': 'to', 'start': 650, 'end': 700},
        {'word': 'Chicago', 'start': 750, 'end': 1300},
        {'word': 'in', 'start': 1350, 'end': 1400},
        {'word': '1965.', 'start': 1450, 'end': 2400},
    ]

    def test_format_vtt_time(self):
        assert format_vtt_time(3723004) == "01:02:03.004"

    def test_cues_respect_length(self):
        cues = build_cues(self.WORDS, max_length=20)

        assert [cue['text'] for cue in cues] == ["We moved to Chicago", "in 1965."]
        assert (cues[1]['start'], cues[1]['end']) == (1350, 2400)

    def test_cues_respect_duration(self):
        cues = build_cues(self.WORDS, max_length=200, max_duration_ms=1000)

        assert all(cue['end'] - cue['start'] <= 1000 for cue in cues)
        assert " ".join(cue['text'] for cue in cues) == "We moved to Chicago in 1965."

    def test_render_vtt(self):
        text = render_vtt([{'start': 0, 'end': 1500, 'text': "Hello"}])
        assert text.startswith("WEBVTT\n\n1\n00:00:00.000 --> 00:00:01.500\nHello\n")

    def test_task_defers_without_alignment(self, db, add_segment, task_config):
        segment = add_segment()
        outcome = CaptioningTask(segment, TaskContext(db=db, config=task_config)).check_requirements()
        assert outcome.status == TaskStatus.DEFERRED

    def test_task_writes_caption_file(self, db, add_segment, task_config, tmp_path):
        segment = add_segment(transcript_sync=self.WORDS)
        task = CaptioningTask(segment, TaskContext(db=db, config=task_config))

        assert task.check_requirements().ok
        task.purge()
        assert task.run().ok

        caption_file = tmp_path / "build" / "Captions" / "smith_jane_01_001.vtt"
        assert caption_file.read_text().startswith("WEBVTT")


class TestRecognizerTasks:
    """Tests for the spaCy and Stanford recognizer tasks."""

    @pytest.fixture(autouse=True)
    def setup(self, db, add_segment, task_config):
        self.db = db
        self.config = task_config
        self.add_segment = add_segment

    def _context(self):
        return TaskContext(db=self.db, config=self.config)

    def test_missing_command_fails(self):
        self.config['tools']['spacy_command'] = ''
        outcome = SpacyTask(self.add_segment(), self._context()).check_requirements()
        assert outcome.status == TaskStatus.FAILED

    def test_null_transcript_defers(self):
        outcome = StanfordTask(self.add_segment(transcript=None), self._context()).check_requirements()
        assert outcome.status == TaskStatus.DEFERRED

    def test_blank_transcript_defers(self):
        outcome = SpacyTask(self.add_segment(transcript="  \n "), self._context()).check_requirements()
        assert outcome.status == TaskStatus.DEFERRED
        assert outcome.reason == "Transcript is empty."

    @patch('archive_core.processing.tasks.ner.run_tool')
    def test_spacy_writes_output(self, mock_run_tool):
        def fake_runner(cmd, timeout=None, stdout_path=None):
            assert cmd[0] == 'spacy-runner'
            assert Path(cmd[1]).read_text() == "We moved to Chicago in 1965."
            Path(cmd[2]).write_text("text,start,end,label\nChicago,12,19,GPE\n")
            return ''
        mock_run_tool.side_effect = fake_runner
        task = SpacyTask(self.add_segment(), self._context())

        assert task.run().ok
        assert task.output_file.name == f"{task.segment_id}.spacy.csv"
        assert task.output_file.exists()

    @patch('archive_core.processing.tasks.ner.run_tool')
    def test_stanford_redirects_stdout(self, mock_run_tool):
        def fake_ner(cmd, timeout=None, stdout_path=None):
            assert cmd[:2] == ['stanford-ner', '-textFile']
            Path(stdout_path).write_text("Chicago\tLOCATION\t\n")
            return ''
        mock_run_tool.side_effect = fake_ner
        task = StanfordTask(self.add_segment(), self._context())

        assert task.run().ok
        assert task.output_file.read_text() == "Chicago\tLOCATION\t\n"

    @patch('archive_core.processing.tasks.ner.run_tool')
    def test_existing_output_kept_unless_forced(self, mock_run_tool):
        segment = self.add_segment()
        task = SpacyTask(segment, self._context())
        task.data_path.mkdir(parents=True)
        task.output_file.write_text("text,start,end,label\n")

        task.purge()
        assert task.run().ok
        mock_run_tool.assert_not_called()

        forced = SpacyTask(segment, self._context(), RunCondition.ALWAYS)
        forced.purge()
        assert not forced.output_file.exists()

    @patch('archive_core.processing.tasks.ner.run_tool')
    def test_tool_error_fails(self, mock_run_tool):
        mock_run_tool.side_effect = MediaToolError("spacy-runner exited with code 1")

        outcome = SpacyTask(self.add_segment(), self._context()).run()

        assert outcome.status == TaskStatus.FAILED


class TestEntityResolutionTask:

    @pytest.fixture(autouse=True)
    def setup(self, db, add_segment, task_config, tmp_path):
        self.db = db
        data_path = tmp_path / "entities"
        data_path.mkdir()
        (data_path / "us_states.tsv").write_text("alpha\tname\taliases\nIL\tIllinois\tIll.\n")
        (data_path / "countries.tsv").write_text("code\tname\taliases\nGH\tGhana\t\n")
        (data_path / "organizations.tsv").write_text("org_id\tname\taliases\norg-0001\tNational Urban League\tUrban League\n")
        self.context = TaskContext(db=db, config=task_config, entity_lookups=EntityLookups(data_path))
        self.segment = add_segment(transcript="In 1965 we left Chicago, Illinois for Ghana and joined the Urban League.")

    def test_defers_until_recognizers_ran(self):
        outcome = EntityResolutionTask(self.segment, self.context).check_requirements()
        assert outcome.status == TaskStatus.DEFERRED

    def test_blank_transcript_defers(self, add_segment):
        segment = add_segment(transcript="   ")
        outcome = EntityResolutionTask(segment, self.context).check_requirements()
        assert outcome.reason == "Transcript is empty."

    def test_resolves_and_stores_entities(self):
        task = EntityResolutionTask(self.segment, self.context)
        task.data_path.mkdir(parents=True)
        task.spacy_file.write_text(
            "text,start,end,label\n"
            "1965,3,7,DATE\n"
            "\"Chicago, Illinois\",16,33,GPE\n"
            "Ghana,38,43,GPE\n"
        )
        task.stanford_file.write_text("Urban League\tORGANIZATION\t\n")

        assert task.check_requirements().ok
        task.purge()
        assert task.run().ok

        stored = {(e.type, e.value) for e in self.db.get_named_entities(self.segment.segment_id)}
        assert stored == {
            ("Year", "1965"),
            ("Decade", "1960"),
            ("Organization", "org-0001"),
            ("USState", "IL"),
            ("Country", "GH"),
        }

    def test_purge_removes_previous_entities(self):
        self.db.insert_named_entity(self.segment.segment_id, "Year", "1944")

        EntityResolutionTask(self.segment, self.context).purge()

        assert self.db.get_named_entities(self.segment.segment_id) == []
