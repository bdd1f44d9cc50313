from flask import current_app, has_request_context

from models import db
from models.security_event import SecurityEvent, EVENT_TYPES, SEVERITIES
from utils.request_info import client_ip, user_agent

def log_security_event(event_type: str, identifier=None, details=None, severity="low", user_id=None):
    """
    Append a security event. Fire-and-forget: a failure here is written to
    the app log and never raised to the caller.
    """
    try:
        if event_type not in EVENT_TYPES:
            raise ValueError(f"unknown security event type {event_type!r}")
        if severity not in SEVERITIES:
            raise ValueError(f"unknown severity {severity!r}")

        row = SecurityEvent(
            event_type=event_type,
            identifier=identifier,
            user_id=user_id,
            details=details or None,
            severity=severity,
            ip=client_ip() if has_request_context() else None,
            user_agent=user_agent() if has_request_context() else None,
        )
        db.session.add(row)
        db.session.commit()
        return True
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to log security event %s", event_type)
        return False
