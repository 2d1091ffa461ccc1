"""
JWT authentication for websocket connections.

Browsers cannot set an ``Authorization`` header on a websocket handshake,
so the access token travels as ``?token=<jwt>``.  Validation reuses
``rest_framework_simplejwt`` so HTTP and websocket tokens behave the same.
"""
from __future__ import annotations

from urllib.parse import parse_qs

from channels.auth import AuthMiddlewareStack
from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth.models import AnonymousUser
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken, TokenError


@database_sync_to_async
def _user_for_token(raw: str):
    auth = JWTAuthentication()
    try:
        token = auth.get_validated_token(raw)
        return auth.get_user(token)
    except (InvalidToken, TokenError, AuthenticationFailed):
        return AnonymousUser()


class JWTQueryAuthMiddleware(BaseMiddleware):
    """Populate ``scope['user']`` from a ``token`` query parameter when present."""

    async def __call__(self, scope, receive, send):
        query = parse_qs(scope.get("query_string", b"").decode())
        token = (query.get("token") or [None])[0]
        if token:
            scope = dict(scope, user=await _user_for_token(token))
        return await super().__call__(scope, receive, send)


def JWTAuthMiddlewareStack(inner):
    # session auth first, then a query token overrides it
    return AuthMiddlewareStack(JWTQueryAuthMiddleware(inner))
