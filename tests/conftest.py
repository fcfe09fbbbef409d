"""
Shared fixtures: a throwaway SQLite archive database and a small collection
(one session, one movie) to hang segments on.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from archive_core.database.manager import DatabaseManager
from archive_core.database.models import Base, Collection, InterviewSession, Movie, Segment


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'archive.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine)


@pytest.fixture
def db(session_factory):
    manager = DatabaseManager(session_factory())
    yield manager
    manager.close()


@pytest.fixture
def other_db(session_factory):
    """A second connection, as another processor would hold."""
    manager = DatabaseManager(session_factory())
    yield manager
    manager.close()


@pytest.fixture
def interview(db):
    """Collection 2019.001 with session 1 and its source movie."""
    collection = Collection(accession="2019.001", preferred_name="Jane Smith", biography="Jane Smith was born in 1931.")
    db.session.add(collection)
    db.session.flush()

    interview_session = InterviewSession(collection_id=collection.collection_id, session_order=1, interviewer="A. Jones")
    db.session.add(interview_session)
    db.session.flush()

    movie = Movie(
        movie_name="smith_jane_01",
        collection_id=collection.collection_id,
        session_id=interview_session.session_id,
        media_path="/archive/masters/smith_jane_01.mov",
        width=720,
        height=480,
    )
    db.session.add(movie)
    db.session.commit()
    return interview_session


@pytest.fixture
def add_segment(db, interview):
    """Factory adding segments to the interview session."""
    counter = {'order': 0}

    def _add(name=None, ready='N', transcript="We moved to Chicago in 1965.", session=None, **fields):
        counter['order'] += 1
        target = session or interview
        segment = Segment(
            segment_name=name or f"smith_jane_01_{counter['order']:03d}",
            collection_id=target.collection_id,
            session_id=target.session_id,
            movie_id=db.session.query(Movie).first().movie_id,
            segment_order=counter['order'],
            start_time=0,
            end_time=60000,
            transcript_text=transcript,
            ready=ready,
            **fields
        )
        db.session.add(segment)
        db.session.commit()
        return segment

    return _add
