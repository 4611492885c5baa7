import json

from channels.generic.websocket import AsyncWebsocketConsumer

from triage.services.notify import CRITICAL_ALERTS_GROUP, department_group


class DepartmentQueueConsumer(AsyncWebsocketConsumer):
    """Pushes a department's recalculated queue after every change."""

    async def connect(self):
        self.group = department_group(self.scope["url_route"]["kwargs"]["department_id"])
        await self.channel_layer.group_add(self.group, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "message": "connected"}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.group, self.channel_name)

    async def queue_updated(self, event):
        # event: {"type": "queue.updated", "departmentId": ..., "reason": ..., "queue": [...]}
        await self.send(json.dumps(event))


class CriticalAlertConsumer(AsyncWebsocketConsumer):
    GROUP = CRITICAL_ALERTS_GROUP

    async def connect(self):
        await self.channel_layer.group_add(self.GROUP, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.GROUP, self.channel_name)

    async def triage_critical(self, event):
        await self.send(json.dumps(event))
