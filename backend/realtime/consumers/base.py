"""Shared WebSocket plumbing for the provider and customer sockets."""

import logging
from typing import Any, Dict, Optional, Set, Tuple

from channels.generic.websocket import AsyncJsonWebsocketConsumer

logger = logging.getLogger(__name__)

# Close code for an authenticated user on the wrong socket
WRONG_ROLE_CLOSE_CODE = 4003


class BaseConsumer(AsyncJsonWebsocketConsumer):
    """
    Role-gated JSON socket bound to one personal group.

    Server code reaches a connected user through the group
    ``<group_prefix>_<user_id>``; group events are delivered to the method
    named after the event type. Client messages ``{"type": "<name>", ...}``
    are routed to ``on_<name>(data)``.

    Subclasses set ``required_role`` and ``group_prefix``.
    """
    required_role: Optional[str] = None
    group_prefix = "user"

    async def connect(self):
        self.user = self.scope.get("user")
        self.groups_joined: Set[str] = set()

        if self.user is None or self.user.is_anonymous:
            await self.close()
            return

        self.user_id = self.user.id
        self.role = getattr(self.user, "role", None)

        if self.required_role and self.role != self.required_role:
            logger.info("Rejecting %s socket for user %s (role %s)", self.required_role, self.user_id, self.role)
            await self.close(code=WRONG_ROLE_CLOSE_CODE)
            return

        await self.join(f"{self.group_prefix}_{self.user_id}")
        await self.accept()
        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
        })

    async def disconnect(self, close_code):
        for group in list(self.groups_joined):
            try:
                await self.leave(group)
            except Exception:
                logger.exception("Could not leave %s for user %s", group, getattr(self, "user_id", None))

    async def receive_json(self, content: Dict[str, Any], **kwargs):
        msg_type = content.get("type") if isinstance(content, dict) else None
        if not msg_type:
            await self.send_error("Message type is required")
            return

        handler = getattr(self, f"on_{msg_type}", None)
        if handler is None:
            await self.send_error(f"Unknown message type: {msg_type}")
            return

        try:
            await handler(content)
        except Exception:
            logger.exception("Socket message %s from user %s failed", msg_type, self.user_id)
            await self.send_error(f"Error processing {msg_type}")

    async def on_ping(self, data):
        await self.send_json({"type": "pong"})

    # ---------------------- Groups ----------------------

    async def join(self, group: str):
        await self.channel_layer.group_add(group, self.channel_name)
        self.groups_joined.add(group)

    async def leave(self, group: str):
        await self.channel_layer.group_discard(group, self.channel_name)
        self.groups_joined.discard(group)

    # ---------------------- Replies ----------------------

    async def send_error(self, message: str):
        await self.send_json({"type": "error", "message": message})

    async def send_success(self, event_type: str, **fields):
        await self.send_json({"type": event_type, **fields})

    async def forward_event(self, event: Dict[str, Any], *fields: str):
        """Relay a group event to the client, keeping only `fields`."""
        await self.send_json({"type": event["type"], **{f: event.get(f) for f in fields}})

    @staticmethod
    def parse_coordinates(data: Dict[str, Any]) -> Optional[Tuple[float, float]]:
        """(lat, lon) from a message, or None when missing or out of range."""
        try:
            lat = float(data.get("latitude"))
            lon = float(data.get("longitude"))
        except (TypeError, ValueError):
            return None
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            return None
        return lat, lon
