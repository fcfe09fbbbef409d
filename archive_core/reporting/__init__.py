"""
Reporting Module
================

Email notifications to the processing team.
"""

from .email_service import (
    MessageLevel,
    send_email,
    should_send,
)
from .notifications import Notifier

__all__ = [
    'MessageLevel',
    'send_email',
    'should_send',
    'Notifier',
]
