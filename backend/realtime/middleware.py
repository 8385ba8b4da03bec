"""Authenticate WebSocket handshakes with a simplejwt access token."""

import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken

logger = logging.getLogger(__name__)


def token_from_scope(scope):
    """`?token=<jwt>` from the handshake querystring, if any."""
    params = parse_qs(scope.get("query_string", b"").decode())
    values = params.get("token") or [None]
    return values[0]


@database_sync_to_async
def user_for_token(raw_token):
    try:
        token = AccessToken(raw_token)
        user_id = token[api_settings.USER_ID_CLAIM]
    except (TokenError, KeyError) as e:
        logger.debug("Rejected socket token: %s", e)
        return AnonymousUser()

    user = get_user_model().objects.filter(pk=user_id, is_active=True).first()
    return user or AnonymousUser()


class JWTAuthMiddleware(BaseMiddleware):
    """
    Put the token's user in ``scope["user"]``.

    Connections without a valid token get ``AnonymousUser`` and are closed
    by the consumers.
    """

    async def __call__(self, scope, receive, send):
        raw_token = token_from_scope(scope)
        user = await user_for_token(raw_token) if raw_token else AnonymousUser()
        return await super().__call__({**scope, "user": user}, receive, send)
