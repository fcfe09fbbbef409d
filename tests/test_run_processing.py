"""
Tests for the run-processing command line.
"""

from unittest.mock import MagicMock, patch

import pytest

from archive_core.database.models import ReadyStateValue
from archive_core.run_processing import main, options_from_args, parse_args


class TestParseArgs:

    def test_single_segment_by_id(self):
        args = parse_args(['--id', '1234'])
        assert args.id == 1234
        assert args.all is False

    def test_all_with_force_rerun_refused(self):
        with pytest.raises(SystemExit):
            parse_args(['--all', '--force-rerun'])
        with pytest.raises(SystemExit):
            parse_args(['--all', '--frun'])

    def test_id_and_name_are_exclusive(self):
        with pytest.raises(SystemExit):
            parse_args(['--id', '1', '--name', 'smith_jane_01_001'])

    def test_a_target_is_required(self):
        with pytest.raises(SystemExit):
            parse_args([])

    def test_maintenance_without_target(self):
        args = parse_args(['--release-lock', '77'])
        assert args.release_lock == 77

    def test_reset_running_needs_an_id_not_a_name(self):
        with pytest.raises(SystemExit):
            parse_args(['--reset-running', '--name', 'smith_jane_01_001'])

    def test_stage_flags(self):
        options = options_from_args(parse_args(['--name', 'x', '--frun', '--no-video', '--no-stanford']))

        assert options.force_rerun is True
        assert (options.video, options.stanford) == (False, False)
        assert all([options.keyframe, options.alignment, options.captions, options.spacy, options.entities])


@patch('archive_core.run_processing.dispose_engine')
@patch('archive_core.run_processing.install_signal_handlers')
@patch('archive_core.run_processing.build_processor')
@patch('archive_core.run_processing.get_session')
@patch('archive_core.run_processing.load_config')
class TestMain:
    """Tests for main with the database and processor mocked."""

    def test_processes_segment_by_id(self, mock_load_config, mock_get_session, mock_build, mock_signals, mock_dispose):
        mock_load_config.return_value = {}
        processor = MagicMock()
        processor.process_segment.return_value = ReadyStateValue.READY
        mock_build.return_value = processor

        assert main(['--id', '1234', '--no-keyframe']) == 0

        processor.process_segment.assert_called_once_with(1234)
        options = mock_build.call_args[0][2]
        assert options.keyframe is False
        mock_signals.assert_called_once_with(processor)

    def test_unprocessed_segment_exits_nonzero(self, mock_load_config, mock_get_session, mock_build, mock_signals, mock_dispose):
        mock_load_config.return_value = {}
        mock_build.return_value.process_segment.return_value = None

        assert main(['--name', 'missing']) == 1

    def test_sweep(self, mock_load_config, mock_get_session, mock_build, mock_signals, mock_dispose):
        mock_load_config.return_value = {}
        mock_build.return_value.process_segments.return_value = 3

        assert main(['--all']) == 0
        mock_build.return_value.process_segments.assert_called_once()

    @patch('archive_core.run_processing.DatabaseManager')
    def test_release_lock_only(self, mock_db_cls, mock_load_config, mock_get_session, mock_build, mock_signals, mock_dispose):
        mock_load_config.return_value = {}

        assert main(['--release-lock', '77']) == 0

        mock_db_cls.return_value.force_delete_semaphore.assert_called_once_with(77)
        mock_build.assert_not_called()

    @patch('archive_core.run_processing.DatabaseManager')
    def test_reset_running_for_segment(self, mock_db_cls, mock_load_config, mock_get_session, mock_build, mock_signals, mock_dispose):
        mock_load_config.return_value = {}
        mock_db_cls.return_value.reset_task_states.return_value = 2

        assert main(['--reset-running', '--id', '5']) == 0

        mock_db_cls.return_value.reset_task_states.assert_called_once_with(segment_id=5)
        mock_build.assert_not_called()
