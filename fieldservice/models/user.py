"""
Модели данных, связанные с пользователем.
"""

from enum import Enum

from pydantic import BaseModel, Field, field_validator


class ActorRole(str, Enum):
    ADMIN = "ADMIN"
    SERVICE_PERSON = "SERVICE_PERSON"
    ZONE_USER = "ZONE_USER"
    CUSTOMER = "CUSTOMER"

    @classmethod
    def parse(cls, value: "str | ActorRole") -> "ActorRole":
        """Роль из таблицы пишется как угодно: 'admin', 'Service Person', 'zone-user'."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().upper().replace(" ", "_").replace("-", "_")
        return cls(normalized)


class User(BaseModel):
    """
    Модель пользователя, представляющая строку из Google-таблицы.

    Атрибуты:
        telegram_id (int): Уникальный идентификатор пользователя в Telegram.
        name (str): Имя пользователя.
        role (ActorRole): Роль пользователя, от неё зависят доступные статусы.
    """

    telegram_id: int = Field(..., description="Telegram User ID")
    name: str = Field(..., description="User's name or username")
    role: ActorRole = Field(..., description="User's role in the system")

    @field_validator("role", mode="before")
    @classmethod
    def _parse_role(cls, v):
        return ActorRole.parse(v)
