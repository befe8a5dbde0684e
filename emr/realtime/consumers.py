import json

from channels.generic.websocket import AsyncWebsocketConsumer

from emr.services.queueing import BOARD_GROUP, queue_group


class QueueBoardConsumer(AsyncWebsocketConsumer):
    """Push ``queue.update`` events to waiting-room boards.

    ``ws/queues/`` follows every queue; ``ws/queues/<id>/`` follows one.
    """

    async def connect(self):
        queue_id = self.scope.get("url_route", {}).get("kwargs", {}).get("queue_id")
        self.group = queue_group(queue_id) if queue_id else BOARD_GROUP
        await self.channel_layer.group_add(self.group, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "group": self.group}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.group, self.channel_name)

    async def queue_update(self, event):
        # event: {"type": "queue.update", "queueId": int, "action": str, "ticketId": ..., "ts": "..."}
        await self.send(json.dumps(event))
