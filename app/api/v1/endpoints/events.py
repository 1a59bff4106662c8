import os
import hmac
import logging
from typing import Optional
from fastapi import APIRouter, Header

from app.core.errors import AuthenticationError, ConfigurationError, ValidationError
from app.services.triggers import DocumentEvent, feed

logger = logging.getLogger("editohub.events")
router = APIRouter()


@router.post("/events")
async def receive_event(payload: dict, x_event_token: Optional[str] = Header(None)):
    """
    Change-feed receiver for document create/update events.
    A non-2xx answer makes the platform redeliver.
    """
    expected = os.getenv("EVENTS_TOKEN")
    if not expected:
        logger.error("EVENTS_TOKEN is not set, refusing change-feed delivery")
        raise ConfigurationError("Server configuration error")
    if not hmac.compare_digest(expected.encode(), (x_event_token or "").encode()):
        raise AuthenticationError("Invalid event token")

    if not payload.get("id") or not (payload.get("path") or payload.get("document")):
        raise ValidationError("Event id and document path are required")

    event = DocumentEvent.from_payload(payload)
    handled = await feed.dispatch(event)
    return {"success": True, "handled": handled}
