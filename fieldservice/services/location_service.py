"""
Сервис фиксации местоположения сотрудника для выездных статусов.

Геопозиция приходит сообщением Telegram. Принимается только свежая точка,
отправленная самим пользователем: пересланные и устаревшие отклоняются.
"""

import logging
from datetime import datetime, timezone

from telegram import Message

from fieldservice.core.config import settings
from fieldservice.core.exceptions import GeolocationUnavailableError
from fieldservice.models.location import LocationCapture, format_coordinates
from fieldservice.services.api_client import FieldServiceAPI

logger = logging.getLogger(__name__)


class LocationService:
    def __init__(
        self,
        api: FieldServiceAPI,
        accuracy_warning_meters: float | None = None,
        max_age_seconds: int | None = None,
    ):
        self.api = api
        self.accuracy_warning_meters = (
            accuracy_warning_meters
            if accuracy_warning_meters is not None
            else settings.location_accuracy_warning_meters
        )
        self.max_age_seconds = (
            max_age_seconds
            if max_age_seconds is not None
            else settings.location_timeout_seconds
        )

    async def resolve_address(self, latitude: float, longitude: float) -> str:
        """Адрес из обратного геокодирования, иначе координаты с 6 знаками."""
        address = await self.api.reverse_geocode(latitude, longitude)
        if not address:
            logger.info(
                f"No address for {latitude}, {longitude}; falling back to coordinates."
            )
            return format_coordinates(latitude, longitude)
        return address

    async def capture_from_message(self, message: Message) -> LocationCapture:
        """
        Превращает сообщение с геопозицией в LocationCapture.

        Raises:
            GeolocationUnavailableError: в сообщении нет точки, она переслана или устарела.
        """
        location = message.location
        if location is None:
            raise GeolocationUnavailableError("Message does not contain a location")

        if message.forward_origin is not None:
            raise GeolocationUnavailableError("Forwarded locations are not accepted")

        captured_at = message.date or datetime.now(timezone.utc)
        age = (datetime.now(timezone.utc) - captured_at).total_seconds()
        if age > self.max_age_seconds:
            raise GeolocationUnavailableError(
                f"Location is {int(age)}s old, a fresh one is required"
            )

        accuracy = location.horizontal_accuracy
        if accuracy is not None and accuracy > self.accuracy_warning_meters:
            logger.warning(
                f"Low location accuracy from user {message.chat_id}: ±{round(accuracy)}m "
                f"(threshold {round(self.accuracy_warning_meters)}m)."
            )

        address = await self.resolve_address(location.latitude, location.longitude)
        capture = LocationCapture(
            latitude=location.latitude,
            longitude=location.longitude,
            address=address,
            accuracy=accuracy,
            timestamp=captured_at,
        )
        logger.info(
            f"Location captured for chat {message.chat_id}: {capture.display_address} "
            f"({capture.accuracy_level})."
        )
        return capture
