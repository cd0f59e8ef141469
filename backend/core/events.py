"""Company event publishing over Redis pub/sub.

Messages are JSON objects {company_id, action, payload, timestamp} published
on "company:<company_id>". Publishing is best effort: a notification that
cannot be sent is logged and never fails the caller.
"""

import logging
import time
from typing import Optional

from backend.core import redis_client
from backend.core.config import settings

logger = logging.getLogger(__name__)

TRANSACTION_FILE_UPLOADED = "TRANSACTION_FILE_UPLOADED"


def company_channel(company_id: str) -> str:
    return f"company:{company_id}"


def publish_company_event(company_id: str, action: str, payload: Optional[dict] = None) -> bool:
    """Publish an event on the company channel. Returns True if sent."""
    if not settings.publish_events:
        return False

    channel = company_channel(company_id)
    message = {
        "company_id": company_id,
        "action": action,
        "payload": payload or {},
        "timestamp": int(time.time()),
    }
    try:
        redis_client.publish_json(channel, message)
    except Exception as e:
        logger.warning(f"Failed to publish {action} on {channel}: {e}")
        return False
    return True


def publish_transaction_file_uploaded(
    company_id: str,
    transaction_file_id: str,
    records_created: int,
    status: str,
) -> bool:
    """Announce that a transaction file has been ingested."""
    return publish_company_event(company_id, TRANSACTION_FILE_UPLOADED, {
        "transaction_file_id": transaction_file_id,
        "records_created": records_created,
        "status": status,
    })
