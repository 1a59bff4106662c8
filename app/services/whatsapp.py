import os
import re
import logging
from typing import List, Optional

import httpx

from app.db.firestore import get_db

logger = logging.getLogger("editohub.whatsapp")

AISENSY_URL = "https://backend.aisensy.com/campaign/t1/api/v2"

# status (or event) -> message appended to the client update
EDITOR_ASSIGNED = "editor_assigned"

STATUS_MESSAGES = {
    "pending_assignment": "We have received your request. We're currently finding the best editor for you.",
    "active": "Production has officially started! We'll notify you once the first draft is ready.",
    "in_review": "A new draft is ready for review! View it here: {review_link}",
    "completed": "Congratulations! Your project is now complete and all files are ready for final download.",
    EDITOR_ASSIGNED: "A specialist editor has been assigned and is reviewing your requirements.",
}


def normalize_destination(phone_number: str) -> Optional[str]:
    digits = re.sub(r"\D", "", phone_number or "")
    if len(digits) == 10:
        return f"91{digits}"
    if len(digits) == 12 and digits.startswith("91"):
        return digits
    return None


async def send_whatsapp(phone_number: str, params: List[str], campaign_name: Optional[str] = None) -> bool:
    """Sends one campaign message through AiSensy. Returns False instead of raising."""
    destination = normalize_destination(phone_number)
    if not destination:
        logger.warning(f"Invalid phone format: {phone_number}")
        return False

    api_key = os.getenv("AISENSY_API_KEY")
    if not api_key:
        logger.error("AISENSY_API_KEY is missing")
        return False

    payload = {
        "apiKey": api_key,
        "campaignName": campaign_name or os.getenv("AISENSY_CAMPAIGN", "editohub"),
        "destination": destination,
        "userName": destination,
        "templateParams": params,
        "source": "API",
    }
    try:
        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.post(AISENSY_URL, json=payload)
    except httpx.HTTPError as e:
        logger.error(f"AiSensy network error: {e}")
        return False

    if response.status_code >= 400:
        logger.error(f"AiSensy error {response.status_code}: {response.text}")
        return False
    return True


async def notify_client_of_status(project_id: str, status: str, project: Optional[dict] = None) -> bool:
    """Looks up the project's client and sends the message for `status`, if there is one."""
    template = STATUS_MESSAGES.get(status)
    if not template:
        return False

    db = get_db()
    if project is None:
        doc = db.collection("projects").document(project_id).get()
        if not doc.exists:
            return False
        project = doc.to_dict()

    client_id = project.get("clientId")
    if not client_id:
        return False
    client_doc = db.collection("users").document(client_id).get()
    client = client_doc.to_dict() if client_doc.exists else {}
    if not client.get("phoneNumber"):
        return False

    review_link = f"{os.getenv('APP_URL', 'https://editohub.com')}/dashboard/projects/{project_id}/review"
    params = [
        client.get("displayName") or "Client",
        project.get("name", ""),
        template.format(review_link=review_link),
    ]
    return await send_whatsapp(client["phoneNumber"], params)


async def notify_client_quietly(project_id: str, status: str, project: Optional[dict] = None) -> bool:
    """Best effort variant for callers whose own write already succeeded."""
    try:
        return await notify_client_of_status(project_id, status, project)
    except Exception as e:
        logger.error(f"WhatsApp update '{status}' for {project_id} failed: {e}")
        return False
