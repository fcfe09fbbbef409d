"""
Email Service
=============

Sends processing notifications to the processing team via the Resend API.

Which messages go out is governed by email.message_level:
    all          every notification
    errors_only  only error reports
    none         nothing
"""

from enum import Enum
from typing import Dict, List, Optional

import resend

from archive_core.utils.config import get_credential, load_config
from archive_core.utils.logger import setup_worker_logger

logger = setup_worker_logger('email_service')


class MessageLevel(Enum):
    ALL = "all"
    ERRORS_ONLY = "errors_only"
    NONE = "none"

    @classmethod
    def parse(cls, value: Optional[str]) -> 'MessageLevel':
        try:
            return cls(str(value).lower())
        except ValueError:
            logger.warning(f"Unknown email message level '{value}', using 'all'")
            return cls.ALL


def get_email_config(config: Optional[Dict] = None) -> Dict:
    """Get email settings from config, with the API key falling back to RESEND_API_KEY."""
    if config is None:
        config = load_config()
    email = dict(config.get('email', {}))
    email['api_key'] = email.get('api_key') or get_credential('RESEND_API_KEY')
    email['message_level'] = MessageLevel.parse(email.get('message_level', 'all'))
    recipients = email.get('recipients') or []
    if isinstance(recipients, str):
        recipients = [r.strip() for r in recipients.split(',') if r.strip()]
    email['recipients'] = recipients
    return email


def should_send(level: MessageLevel, is_error: bool) -> bool:
    if level == MessageLevel.NONE:
        return False
    if level == MessageLevel.ERRORS_ONLY and not is_error:
        return False
    return True


def send_email(subject: str, body: str, is_error: bool = False, config: Optional[Dict] = None) -> bool:
    """
    Send a plain-text notification to the configured recipients.

    Args:
        subject: Email subject
        body: Plain-text body
        is_error: Whether this is an error report (always sent unless level is 'none')
        config: Loaded configuration (loaded on demand if omitted)

    Returns:
        True if the message was handed to Resend
    """
    settings = get_email_config(config)
    level = settings['message_level']

    if not should_send(level, is_error):
        logger.warning(f"Email suppressed by message level: {level.value}")
        return False

    recipients: List[str] = settings['recipients']
    if not settings.get('api_key') or not settings.get('sender') or not recipients:
        logger.warning(f"Email not configured; dropping notification '{subject}'")
        return False

    resend.api_key = settings['api_key']
    try:
        result = resend.Emails.send({
            "from": settings['sender'],
            "to": recipients,
            "subject": subject,
            "text": body,
        })
        logger.info(f"Email sent: '{subject}' ({result.get('id') if isinstance(result, dict) else result})")
        return True
    except Exception as e:
        logger.error(f"Failed to send email '{subject}': {e}")
        return False
