"""
Anonymous therapy chats.

A chat belongs to the user who opened it; any doctor may join as the
counselor.  Message payloads never carry the sender's identity, only
``sender_role``.
"""
import logging
from typing import Optional

import bleach
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.db import transaction

from core.exceptions import ForbiddenError, NotFoundError, ValidationError
from core.models import ChatMessage, TherapyChat, User

logger = logging.getLogger(__name__)


def chat_group(chat_id: int) -> str:
    return f"therapy.{chat_id}"


def can_access(user: User, chat: TherapyChat) -> bool:
    if not getattr(user, 'is_authenticated', False):
        return False
    return chat.user_id == user.id or user.role == User.ROLE_DOCTOR


def get_chat_for(user: User, chat_id: int) -> TherapyChat:
    chat = TherapyChat.objects.filter(id=chat_id).first()
    if chat is None:
        raise NotFoundError('chat not found')
    if not can_access(user, chat):
        raise ForbiddenError('You cannot access this chat.')
    return chat


def serialize_message(m: ChatMessage) -> dict:
    return {
        'id': m.id,
        'sender_role': m.sender_role,
        'content': m.content,
        'created_at': m.created_at.isoformat() if m.created_at else None,
    }


def start_chat(user: User, topic: Optional[str]=None) -> TherapyChat:
    chat = TherapyChat.objects.create(user=user, topic=(topic or '').strip() or None, is_anonymous=True)
    logger.info("therapy chat %s opened", chat.id)
    return chat


def chat_detail(user: User, chat_id: int) -> dict:
    chat = get_chat_for(user, chat_id)
    msgs = chat.messages.order_by('created_at', 'id')
    return {
        'id': chat.id,
        'topic': chat.topic,
        'status': chat.status,
        'is_anonymous': chat.is_anonymous,
        'created_at': chat.created_at.isoformat() if chat.created_at else None,
        'messages': [serialize_message(m) for m in msgs],
    }


def _clean(content) -> str:
    if not isinstance(content, str):
        raise ValidationError('content must be text', field='content')
    content = bleach.clean(content.strip(), tags=[], strip=True).strip()
    if not content:
        raise ValidationError('content is required', field='content')
    limit = getattr(settings, 'CHAT_MESSAGE_MAX_CHARS', 4000)
    if len(content) > limit:
        raise ValidationError(f'content must be at most {limit} characters', field='content')
    return content


@transaction.atomic
def post_message(user: User, chat_id: int, content) -> ChatMessage:
    content = _clean(content)
    chat = get_chat_for(user, chat_id)
    if chat.status == TherapyChat.STATUS_CLOSED:
        raise ValidationError('chat is closed', field='chat_id')

    if user.role == User.ROLE_DOCTOR and chat.user_id != user.id:
        role = ChatMessage.SENDER_COUNSELOR
        if chat.counselor_id is None:
            chat.counselor = user
            chat.save(update_fields=['counselor', 'updated_at'])
    else:
        role = ChatMessage.SENDER_USER
    msg = ChatMessage.objects.create(chat=chat, sender=user, sender_role=role, content=content,
                                     is_anonymous=chat.is_anonymous)

    payload = {'type': 'therapy.message', 'chat_id': chat.id, 'message': serialize_message(msg)}
    transaction.on_commit(lambda: _publish(chat.id, payload), robust=True)
    return msg


def _publish(chat_id: int, payload: dict) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is not None:
        async_to_sync(channel_layer.group_send)(chat_group(chat_id), payload)


def close_chat(user: User, chat_id: int) -> TherapyChat:
    chat = get_chat_for(user, chat_id)
    if chat.status != TherapyChat.STATUS_CLOSED:
        chat.status = TherapyChat.STATUS_CLOSED
        chat.save(update_fields=['status', 'updated_at'])
        logger.info("therapy chat %s closed", chat.id)
    return chat
