"""
Feedback email delivery through the EmailJS REST API.
"""

import logging
import os

import httpx

from implementation.classes.schemas import Feedback

logger = logging.getLogger(__name__)

EMAILJS_SEND_URL = "https://api.emailjs.com/api/v1.0/email/send"

# EmailJS payload field -> environment variable holding its value.
_EMAILJS_ENV_VARS = {
    "service_id": "EMAILJS_SERVICE_ID",
    "template_id": "EMAILJS_TEMPLATE_ID",
    "user_id": "EMAILJS_PUBLIC_KEY",
}


def _emailjs_config() -> dict[str, str]:
    config = {field: os.getenv(env_var) for field, env_var in _EMAILJS_ENV_VARS.items()}
    missing = [_EMAILJS_ENV_VARS[field] for field, value in config.items() if not value]
    if missing:
        raise RuntimeError(f"EmailJS is not configured; missing: {', '.join(missing)}")
    return config


async def send_feedback(feedback: Feedback, client: httpx.AsyncClient) -> None:
    """
    Send one feedback message.

    Raises:
        RuntimeError: If the EmailJS ids are not configured.
        httpx.HTTPError: If EmailJS is unreachable or rejects the message.
    """
    payload = {
        **_emailjs_config(),
        "template_params": {
            "from_name": feedback.name,
            "from_email": feedback.email,
            "message": feedback.message,
        },
    }
    response = await client.post(EMAILJS_SEND_URL, json=payload)
    response.raise_for_status()
    logger.info("Feedback sent from %s", feedback.email)
