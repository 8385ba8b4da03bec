"""Provider socket: new-job alerts, job-taken notices and location reports."""

from channels.db import database_sync_to_async

from .base import BaseConsumer


class ProviderConsumer(BaseConsumer):
    required_role = "provider"
    group_prefix = "provider"

    async def on_location_update(self, data):
        coords = self.parse_coordinates(data)
        if coords is None:
            await self.send_error("location_update requires valid latitude and longitude")
            return

        if not await self._save_location(*coords):
            await self.send_error("Provider profile not found")
            return

        await self.send_success("location_updated", latitude=coords[0], longitude=coords[1])

    # Group events

    async def new_job_alert(self, event):
        await self.forward_event(event, "booking_id", "service_name", "message")

    async def job_unavailable(self, event):
        await self.forward_event(event, "booking_id", "message")

    @database_sync_to_async
    def _save_location(self, lat: float, lon: float) -> bool:
        from providers.models import ProviderProfile
        from providers.services import update_provider_location

        profile = ProviderProfile.objects.filter(user_id=self.user_id).first()
        if profile is None:
            return False
        update_provider_location(profile, round(lat, 6), round(lon, 6))
        return True
