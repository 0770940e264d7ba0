# notifier.py
# Push notifications to the on-call team.
#
# Without NOTIFY_WEBHOOK_URL this is a mock backend: the notification is only
# written to the log. With it, the payload is POSTed to the hospital's push
# gateway, which fans out to on-call devices.
import os
import logging

import requests

from config import NOTIFY
from errors import NotificationError

logger = logging.getLogger(__name__)


def _webhook_url() -> str:
    return os.getenv("NOTIFY_WEBHOOK_URL", "").strip()


def send_push_notification(title: str, body: str) -> None:
    """
    Raises:
        NotificationError: the push gateway could not be reached or refused it.
    """
    logger.warning("PUSH to on-call team | %s | %s", title, body)

    url = _webhook_url()
    if not url:
        return

    try:
        resp = requests.post(
            url,
            json={"title": title, "body": body, "tag": "vital-alert"},
            timeout=NOTIFY["timeout_s"],
        )
        resp.raise_for_status()
    except requests.RequestException as e:
        raise NotificationError(f"Push gateway failed for '{title}': {e}") from e
