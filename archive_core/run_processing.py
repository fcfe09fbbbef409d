"""
run-processing: process archive segments.

Examples:
    run-processing --id 1234
    run-processing --name "smith_jane_01_002"
    run-processing --all --no-stanford
    run-processing --id 1234 --force-rerun --no-video
    run-processing --reset-running --id 1234
    run-processing --release-lock 1234
"""

import argparse
import os
import signal
import sys
from typing import List, Optional

from archive_core.database.manager import DatabaseManager
from archive_core.database.session import dispose_engine, get_session
from archive_core.nlp.lookups import EntityLookups
from archive_core.processing.auto_publisher import AutoPublisher
from archive_core.processing.segment_processor import ProcessingOptions, SegmentProcessor
from archive_core.processing.semaphore_manager import SemaphoreManager
from archive_core.reporting.notifications import Notifier
from archive_core.storage.publisher import ContentPublisher
from archive_core.utils.config import ConfigError, load_config
from archive_core.utils.logger import log_banner_end, log_banner_start, setup_worker_logger

logger = setup_worker_logger('run_processing')

TITLE = "Segment Processing"

STAGE_FLAGS = (
    ('video', 'transcoding of the web video'),
    ('keyframe', 'keyframe extraction'),
    ('alignment', 'forced alignment of the transcript'),
    ('captions', 'caption generation'),
    ('spacy', 'spaCy entity recognition'),
    ('stanford', 'Stanford entity recognition'),
    ('entities', 'named entity resolution'),
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='run-processing',
        description='Process archive segments: transcode, align, caption and extract entities'
    )
    target = parser.add_mutually_exclusive_group()
    target.add_argument('--id', type=int, help='Process the segment with this id')
    target.add_argument('--name', help='Process the segment with this name')
    target.add_argument('--all', action='store_true', help='Process every segment that is not ready')

    parser.add_argument('--force-rerun', '--frun', dest='force_rerun', action='store_true',
                        help='Re-run completed and failed steps (not allowed with --all)')
    for option, description in STAGE_FLAGS:
        parser.add_argument(f'--no-{option}', dest=option, action='store_false', help=f'Skip {description}')

    parser.add_argument('--config', help='Path to config.yaml')
    parser.add_argument('--reset-running', action='store_true',
                        help='Return Running task states to Pending (for --id, or every segment)')
    parser.add_argument('--release-lock', type=int, metavar='SEGMENT_ID',
                        help='Delete the processing lock on a segment whoever holds it')
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse and validate command line arguments (exits on invalid combinations)."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.all and args.force_rerun:
        parser.error("--force-rerun cannot be used with --all")
    if args.reset_running and args.name:
        parser.error("--reset-running takes --id, not --name")

    maintenance = args.reset_running or args.release_lock is not None
    if not maintenance and args.id is None and args.name is None and not args.all:
        parser.error("one of --id, --name or --all is required")
    return args


def options_from_args(args: argparse.Namespace) -> ProcessingOptions:
    stages = {option: getattr(args, option) for option, _ in STAGE_FLAGS}
    return ProcessingOptions(force_rerun=args.force_rerun, **stages)


def install_signal_handlers(processor: SegmentProcessor) -> None:
    """Let SIGINT/SIGTERM stop a batch after the current segment."""
    def handle_shutdown_signal(signum, frame):
        signal_name = signal.Signals(signum).name
        logger.warning(f"Received {signal_name} signal, stopping after the current segment...")
        processor.halt = True

    signal.signal(signal.SIGINT, handle_shutdown_signal)
    signal.signal(signal.SIGTERM, handle_shutdown_signal)


def run_maintenance(db: DatabaseManager, args: argparse.Namespace) -> None:
    if args.release_lock is not None:
        if db.force_delete_semaphore(args.release_lock):
            logger.info(f"Lock on segment {args.release_lock} released.")
        else:
            logger.warning(f"No lock on segment {args.release_lock} was released.")

    if args.reset_running:
        count = db.reset_task_states(segment_id=args.id)
        scope = f"segment {args.id}" if args.id is not None else "all segments"
        logger.info(f"Reset {count} running task state(s) to pending for {scope}.")


def build_processor(db: DatabaseManager, config: dict, options: ProcessingOptions) -> SegmentProcessor:
    semaphore_settings = config.get('processing', {}).get('semaphores', {}) or {}
    semaphores = SemaphoreManager(db, stale_after_minutes=semaphore_settings.get('stale_after_minutes'))
    auto_publisher = AutoPublisher(
        db,
        publisher=ContentPublisher(db, config),
        notifier=Notifier(config),
        config=config
    )
    return SegmentProcessor(
        db,
        semaphores,
        auto_publisher=auto_publisher,
        config=config,
        options=options,
        entity_lookups=EntityLookups.from_config(config)
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    if args.config:
        # The database session reads the same file
        os.environ['ARCHIVE_CORE_CONFIG'] = os.path.abspath(args.config)
    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 2

    log_banner_start(logger, TITLE, " ".join(argv if argv is not None else sys.argv[1:]))
    try:
        with get_session() as session:
            db = DatabaseManager(session)

            if args.reset_running or args.release_lock is not None:
                run_maintenance(db, args)
                return 0

            processor = build_processor(db, config, options_from_args(args))
            install_signal_handlers(processor)

            if args.all:
                count = processor.process_segments()
                logger.info(f"Processed {count} segment(s).")
                return 0

            identifier = args.id if args.id is not None else args.name
            ready = processor.process_segment(identifier)
            return 0 if ready is not None else 1

    except Exception as e:
        logger.error(f"Processing failed: {e}", exc_info=True)
        return 1
    finally:
        dispose_engine()
        log_banner_end(logger, TITLE)


if __name__ == '__main__':
    sys.exit(main())
