"""Customer socket: booking status updates and location reports."""

from channels.db import database_sync_to_async

from .base import BaseConsumer


class CustomerConsumer(BaseConsumer):
    required_role = "customer"
    group_prefix = "customer"

    async def on_location_update(self, data):
        coords = self.parse_coordinates(data)
        if coords is None:
            await self.send_error("location_update requires valid latitude and longitude")
            return

        await self._save_location(*coords)
        await self.send_success("location_updated", latitude=coords[0], longitude=coords[1])

    async def job_status_update(self, event):
        await self.forward_event(event, "booking_id", "status", "title", "message", "provider_name")

    @database_sync_to_async
    def _save_location(self, lat: float, lon: float):
        from customers.services.info_services import update_customer_location
        update_customer_location(self.user, round(lat, 6), round(lon, 6))
