"""
Realtime push of queue and triage events over the Channels layer.

Events are sent only after the surrounding transaction commits so that
listeners never see rows that were rolled back.
"""
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction

logger = logging.getLogger(__name__)

CRITICAL_ALERTS_GROUP = "triage.alerts"


def department_group(department_id) -> str:
    return f"queue.{department_id}"


def _send(group: str, event: dict) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    async_to_sync(channel_layer.group_send)(group, event)


def broadcast_queue_update(department_id, entries: list[dict], reason: str) -> None:
    event = {
        "type": "queue.updated",
        "departmentId": department_id,
        "reason": reason,
        "queue": entries,
    }
    transaction.on_commit(lambda: _send(department_group(department_id), event))


def broadcast_critical_alert(payload: dict) -> None:
    logger.warning({"event": "triage_critical", **payload})
    event = {"type": "triage.critical", **payload}
    transaction.on_commit(lambda: _send(CRITICAL_ALERTS_GROUP, event))
