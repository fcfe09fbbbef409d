"""
Base module for database models.

Contains the SQLAlchemy declarative base and the single-character state
enums persisted in the processing tables.
"""

from sqlalchemy.orm import declarative_base
import enum


Base = declarative_base()


class TaskStateValue(enum.Enum):
    """Processing state of one task on one segment (task_states.state)"""
    COMPLETE = "C"      # Task ran to completion
    PENDING = "P"       # Never run, or requirements not yet met
    RUNNING = "R"       # Claimed by a running processor
    FAILED = "F"        # Last attempt failed, needs a forced re-run

    @classmethod
    def from_code(cls, code: str) -> 'TaskStateValue':
        """Map a stored code to its state; unknown codes read as Pending."""
        try:
            return cls(code)
        except ValueError:
            return cls.PENDING


class ReadyStateValue(enum.Enum):
    """Aggregate readiness of a segment (segments.ready)"""
    READY = "Y"         # Every task complete
    FAILED = "F"        # At least one task failed
    NOT_READY = "N"     # Anything else


class PublishingPhase(enum.Enum):
    """Publishing phase of a collection or session, in lifecycle order"""
    DRAFT = "D"
    REVIEW = "R"
    PUBLISHED = "P"

    @property
    def ordinal(self) -> int:
        return list(PublishingPhase).index(self)

    def __lt__(self, other):
        if not isinstance(other, PublishingPhase):
            return NotImplemented
        return self.ordinal < other.ordinal


class NamedEntityType(enum.Enum):
    """Kinds of resolved named entities attached to a segment"""
    YEAR = "Year"
    DECADE = "Decade"
    ORGANIZATION = "Organization"
    US_STATE = "USState"
    COUNTRY = "Country"
