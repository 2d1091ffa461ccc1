import json
import logging

from asgiref.sync import sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.contrib.auth.models import AnonymousUser

from core.exceptions import DomainError
from core.models import TherapyChat
from core.services.mental_health import can_access, chat_group, post_message

logger = logging.getLogger(__name__)


async def _ws_error(ws, code: int, message: str, *, close: bool = False):
    """
    Error frame sent to the client.
    4xxx are client errors, 5xxx server errors.
    """
    payload = {"type": "error", "code": code, "message": message}
    try:
        await ws.send(json.dumps(payload))
    finally:
        if close:
            await ws.close(code=code)


class TherapyChatConsumer(AsyncWebsocketConsumer):
    async def connect(self):
        self.chat_id = int(self.scope["url_route"]["kwargs"]["chat_id"])
        user = self.scope.get("user") or AnonymousUser()
        if not user.is_authenticated:
            await self.close(code=4001)
            return

        chat = await sync_to_async(TherapyChat.objects.filter(id=self.chat_id).first)()
        if chat is None:
            await self.close(code=4004)
            return
        if not can_access(user, chat):
            await self.close(code=4003)
            return

        self.group_name = chat_group(self.chat_id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        if not text_data:
            return
        try:
            data = json.loads(text_data)
        except json.JSONDecodeError:
            await _ws_error(self, 4000, "invalid_json")
            return
        if not isinstance(data, dict) or data.get("type") != "send":
            await _ws_error(self, 4002, "unsupported_type")
            return

        user = self.scope.get("user") or AnonymousUser()
        try:
            # the service persists and broadcasts to the group after commit
            await sync_to_async(post_message)(user, self.chat_id, data.get("content", ""))
        except DomainError as exc:
            await _ws_error(self, 4000 + exc.status_code % 100, exc.message, close=exc.status_code in (403, 404))
            return
        await self.send(json.dumps({"type": "ack", "ok": True}))

    async def therapy_message(self, event):
        await self.send(json.dumps({"type": "message", "chat_id": event["chat_id"], **event["message"]}))
