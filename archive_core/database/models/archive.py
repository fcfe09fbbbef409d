"""
Archive content models.

Contains:
- Collection: One interviewee's body of recorded material
- InterviewSession: One recording session within a collection
- Movie: A source video file from which segments are cut
- Segment: The unit of processing, a time range of a movie with its transcript
- NamedEntity: Canonical entities resolved from a segment's transcript
"""

from sqlalchemy import (
    Column, Integer, String, DateTime, Text, Float, LargeBinary, ForeignKey, JSON, Index
)
from sqlalchemy.orm import relationship
from datetime import datetime

from .base import Base


class Collection(Base):
    """
    A collection of interview sessions for one person.

    Attributes:
        collection_id: Primary key
        accession: Unique accession number used in publishing paths
        preferred_name: Display name of the interviewee
        biography: Short biography text published with the collection
        phase: PublishingPhase code ('D', 'R', 'P')
        published: When the collection was last published
    """
    __tablename__ = 'collections'

    collection_id = Column(Integer, primary_key=True)
    accession = Column(String(64), nullable=False, unique=True)
    preferred_name = Column(String(255), nullable=False)
    biography = Column(Text)
    phase = Column(String(1), nullable=False, default='D')
    published = Column(DateTime)
    created = Column(DateTime, default=datetime.utcnow)
    modified = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    sessions = relationship('InterviewSession', back_populates='collection',
                            order_by='InterviewSession.session_order')

    def __repr__(self):
        return f"<Collection(id={self.collection_id}, accession='{self.accession}')>"


class InterviewSession(Base):
    """
    A single interview session within a collection.

    Session completion drives auto-publishing: once every segment of a
    session has settled, the session is published for review.
    """
    __tablename__ = 'sessions'

    session_id = Column(Integer, primary_key=True)
    collection_id = Column(Integer, ForeignKey('collections.collection_id'), nullable=False)
    session_order = Column(Integer, nullable=False)
    interviewer = Column(String(255))
    interview_date = Column(DateTime)
    location = Column(String(255))
    phase = Column(String(1), nullable=False, default='D')
    published = Column(DateTime)

    collection = relationship('Collection', back_populates='sessions')
    segments = relationship('Segment', back_populates='session',
                            order_by='Segment.segment_order')

    def __repr__(self):
        return f"<InterviewSession(id={self.session_id}, order={self.session_order})>"


class Movie(Base):
    """Source video from which segments are transcoded."""
    __tablename__ = 'movies'

    movie_id = Column(Integer, primary_key=True)
    movie_name = Column(String(255), nullable=False, unique=True)
    collection_id = Column(Integer, ForeignKey('collections.collection_id'), nullable=False)
    session_id = Column(Integer, ForeignKey('sessions.session_id'), nullable=False)
    media_path = Column(String(1024), nullable=False)
    duration = Column(Integer)
    width = Column(Integer)
    height = Column(Integer)
    fps = Column(Float)

    def __repr__(self):
        return f"<Movie(id={self.movie_id}, name='{self.movie_name}')>"


class Segment(Base):
    """
    A time range of a movie plus its transcript: the unit of processing.

    Attributes:
        segment_id: Primary key
        segment_name: Unique human-readable name
        start_time / end_time: Range within the movie in milliseconds
        media_path / duration / width / height / fps: Transcoded web video
        transcript_text: Plain transcript
        transcript_sync: Word timings produced by alignment (list of dicts)
        keyframe: JPEG thumbnail bytes
        ready: ReadyStateValue code ('Y', 'F', 'N')
    """
    __tablename__ = 'segments'

    segment_id = Column(Integer, primary_key=True)
    segment_name = Column(String(255), nullable=False, unique=True)
    collection_id = Column(Integer, ForeignKey('collections.collection_id'), nullable=False)
    session_id = Column(Integer, ForeignKey('sessions.session_id'), nullable=False)
    movie_id = Column(Integer, ForeignKey('movies.movie_id'), nullable=False)
    title = Column(String(512))
    abstract = Column(Text)
    start_time = Column(Integer, nullable=False, default=0)
    end_time = Column(Integer, nullable=False, default=0)
    media_path = Column(String(1024))
    duration = Column(Integer)
    width = Column(Integer)
    height = Column(Integer)
    fps = Column(Float)
    url = Column(String(1024))
    segment_order = Column(Integer, nullable=False, default=0)
    transcript_text = Column(Text)
    transcript_sync = Column(JSON)
    keyframe = Column(LargeBinary)
    ready = Column(String(1), nullable=False, default='N')
    created = Column(DateTime, default=datetime.utcnow)
    modified = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    session = relationship('InterviewSession', back_populates='segments')
    movie = relationship('Movie')

    __table_args__ = (
        Index('idx_segments_ready', 'ready'),
        Index('idx_segments_session', 'session_id'),
    )

    @property
    def expected_duration(self) -> int:
        return self.end_time - self.start_time

    def __repr__(self):
        return f"<Segment(id={self.segment_id}, name='{self.segment_name}', ready='{self.ready}')>"


class NamedEntity(Base):
    """A resolved entity (year, decade, organization, state, country) mentioned in a segment."""
    __tablename__ = 'named_entities'

    named_entity_id = Column(Integer, primary_key=True)
    segment_id = Column(Integer, ForeignKey('segments.segment_id'), nullable=False)
    type = Column(String(32), nullable=False)
    value = Column(String(255), nullable=False)

    __table_args__ = (
        Index('idx_named_entities_segment', 'segment_id'),
    )
