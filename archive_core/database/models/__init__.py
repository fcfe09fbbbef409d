"""
Database Models for the Archive Segment Processing Pipeline
===========================================================

SQLAlchemy ORM models for the archive content and the processing
bookkeeping that coordinates batch processors.

## Content Models:
- **Collection**: An interviewee's collection, identified by accession
- **InterviewSession**: A recording session; the unit of auto-publishing
- **Movie**: Source video a segment is cut from
- **Segment**: The unit of processing
- **NamedEntity**: Entities resolved from a segment transcript

## Processing Models:
- **TaskState**: Per-(segment, task) state, 'P'/'R'/'C'/'F'
- **Semaphore**: Per-segment exclusive lock tagged with pid and hostname
"""

from .base import (
    Base,
    TaskStateValue,
    ReadyStateValue,
    PublishingPhase,
    NamedEntityType,
)
from .archive import Collection, InterviewSession, Movie, Segment, NamedEntity
from .processing import TaskState, Semaphore

__all__ = [
    'Base',
    'TaskStateValue',
    'ReadyStateValue',
    'PublishingPhase',
    'NamedEntityType',
    'Collection',
    'InterviewSession',
    'Movie',
    'Segment',
    'NamedEntity',
    'TaskState',
    'Semaphore',
]
