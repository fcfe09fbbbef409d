"""
Content Publisher
=================

Uploads a collection's processed sessions to the object store of a
publishing environment.

Object layout within the environment bucket:

    {accession}/biography.json
    {accession}/sessions/{order}/{segment_name}.mp4
    {accession}/sessions/{order}/{segment_name}.jpg
    {accession}/sessions/{order}/{segment_name}.vtt
    {accession}/sessions/{order}/{segment_name}.json
"""

from enum import Enum
from typing import Callable, Dict, Iterable, List

from archive_core.database.manager import DatabaseManager
from archive_core.database.models import Collection, InterviewSession, PublishingPhase, Segment
from archive_core.utils.logger import setup_worker_logger
from archive_core.utils.paths import get_build_path

from .s3_utils import S3Storage, create_s3_storage_from_config

logger = setup_worker_logger('publisher')


class Environment(Enum):
    """Publishing targets, keyed by their section under `environments`"""
    PROCESSING = "processing"
    PRODUCTION = "production"

    @property
    def phase(self) -> PublishingPhase:
        return PublishingPhase.REVIEW if self == Environment.PROCESSING else PublishingPhase.PUBLISHED


class PublishingError(Exception):
    """Raised when a collection cannot be published at all"""
    pass


class ContentPublisher:
    """Publishes collections to the review or production object store."""

    def __init__(
        self,
        db: DatabaseManager,
        config: Dict,
        storage_factory: Callable[[Dict], S3Storage] = create_s3_storage_from_config
    ):
        self.db = db
        self.config = config
        self.storage_factory = storage_factory
        self._storages: Dict[Environment, S3Storage] = {}

    def _storage(self, environment: Environment) -> S3Storage:
        if environment not in self._storages:
            settings = self.config.get('environments', {}).get(environment.value)
            if not settings:
                raise PublishingError(f"No configuration for environment '{environment.value}'")
            try:
                self._storages[environment] = self.storage_factory(settings)
            except Exception as e:
                raise PublishingError(f"Could not connect to {environment.value} storage: {e}") from e
        return self._storages[environment]

    @staticmethod
    def biography_document(collection: Collection) -> Dict:
        return {
            "accession": collection.accession,
            "preferred_name": collection.preferred_name,
            "biography": collection.biography or "",
            "sessions": [s.session_order for s in collection.sessions],
        }

    @staticmethod
    def story_document(collection: Collection, interview_session: InterviewSession, segment: Segment) -> Dict:
        """JSON document describing one segment for the site"""
        return {
            "accession": collection.accession,
            "session_order": interview_session.session_order,
            "interviewer": interview_session.interviewer,
            "interview_date": interview_session.interview_date.isoformat() if interview_session.interview_date else None,
            "location": interview_session.location,
            "segment_id": segment.segment_id,
            "segment_name": segment.segment_name,
            "segment_order": segment.segment_order,
            "title": segment.title,
            "abstract": segment.abstract,
            "duration": segment.duration,
            "width": segment.width,
            "height": segment.height,
            "transcript": segment.transcript_text or "",
            "transcript_sync": segment.transcript_sync or [],
            "named_entities": [],
        }

    def _publish_segment(
        self,
        storage: S3Storage,
        collection: Collection,
        interview_session: InterviewSession,
        segment: Segment
    ) -> bool:
        prefix = f"{collection.accession}/sessions/{interview_session.session_order}/{segment.segment_name}"
        ok = True

        if segment.media_path:
            ok &= storage.upload_file(segment.media_path, f"{prefix}.mp4", content_type='video/mp4')
        else:
            logger.warning(f"Segment {segment.segment_id} has no web video")

        if segment.keyframe:
            ok &= storage.upload_bytes(f"{prefix}.jpg", segment.keyframe, content_type='image/jpeg')

        caption_file = get_build_path(self.config) / "Captions" / f"{segment.segment_name}.vtt"
        if caption_file.exists():
            ok &= storage.upload_file(str(caption_file), f"{prefix}.vtt", content_type='text/vtt')

        story = self.story_document(collection, interview_session, segment)
        story["named_entities"] = [
            {"type": e.type, "value": e.value} for e in self.db.get_named_entities(segment.segment_id)
        ]
        ok &= storage.upload_json(f"{prefix}.json", story)
        return bool(ok)

    def publish_collection(self, accession: str, environment: Environment, session_orders: Iterable[int]) -> bool:
        """
        Publish the selected sessions of a collection.

        Args:
            accession: Collection accession number
            environment: Target environment
            session_orders: Session numbers to publish

        Returns:
            True if every object was uploaded and the publishing phase recorded
        """
        session_orders = list(session_orders)
        logger.info(f"Publishing collection {accession} sessions {session_orders} to {environment.value}")

        try:
            collection = self.db.get_collection_by_accession(accession)
            if collection is None:
                raise PublishingError(f"Collection {accession} not found")
            sessions: List[InterviewSession] = self.db.get_sessions_by_order(collection.collection_id, session_orders)
            if not sessions:
                raise PublishingError(f"No sessions {session_orders} in collection {accession}")
            storage = self._storage(environment)
        except PublishingError as e:
            logger.error(f"Publishing failed: {e}")
            return False

        ok = storage.upload_json(f"{collection.accession}/biography.json", self.biography_document(collection))
        for interview_session in sessions:
            for segment in self.db.get_session_segments(interview_session.session_id):
                if not self._publish_segment(storage, collection, interview_session, segment):
                    logger.error(f"Errors uploading segment {segment.segment_id} ({segment.segment_name})")
                    ok = False

        if ok and not self.db.mark_published(collection, sessions, environment.phase):
            ok = False

        if ok:
            logger.info(f"Published collection {accession} to {environment.value}")
        else:
            logger.error(f"Collection {accession} published to {environment.value} with errors")
        return ok
