"""
Модель зафиксированного местоположения сотрудника.
"""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

AccuracyLevel = Literal["excellent", "good", "fair", "poor", "unknown"]


def format_coordinates(latitude: float, longitude: float) -> str:
    """Адрес-заглушка, когда обратное геокодирование не дало результата."""
    return f"{latitude:.6f}, {longitude:.6f}"


class LocationCapture(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: str | None = None
    accuracy: float | None = Field(default=None, ge=0, description="Meters")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def accuracy_level(self) -> AccuracyLevel:
        if self.accuracy is None:
            return "unknown"
        if self.accuracy <= 10:
            return "excellent"
        if self.accuracy <= 50:
            return "good"
        if self.accuracy <= 100:
            return "fair"
        return "poor"

    @property
    def display_address(self) -> str:
        return self.address or format_coordinates(self.latitude, self.longitude)

    def to_payload(self) -> dict:
        """Тело поля `location` для PATCH /tickets/{id}/status."""
        timestamp = self.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        payload = {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "address": self.display_address,
            "timestamp": timestamp.astimezone(timezone.utc).isoformat(),
        }
        if self.accuracy is not None:
            payload["accuracy"] = self.accuracy
        return payload
