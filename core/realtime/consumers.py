import json

from asgiref.sync import sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer

from core.models import Treatment
from core.services.treatments import treatment_group


class TreatmentFundingConsumer(AsyncWebsocketConsumer):
    """Public stream of funding updates for one treatment."""

    async def connect(self):
        self.treatment_id = int(self.scope["url_route"]["kwargs"]["treatment_id"])
        exists = await sync_to_async(Treatment.objects.filter(id=self.treatment_id).exists)()
        if not exists:
            await self.close(code=4004)
            return
        self.group_name = treatment_group(self.treatment_id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "treatment_id": self.treatment_id}))

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        # read-only stream
        return

    async def treatment_funding(self, event):
        # event: {"type": "treatment.funding", "treatment_id", "donation_id", "amount", "funded_amount", "goal_amount", "status"}
        payload = {k: v for k, v in event.items() if k != "type"}
        await self.send(json.dumps({"type": "funding", **payload}))
