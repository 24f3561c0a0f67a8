"""
Модуль конфигурации бота выездного сервиса.

Загружает настройки из переменных окружения с помощью Pydantic Settings.
Все модули читают конфигурацию только через единственный экземпляр `settings`.
"""

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Основные настройки приложения.

    Атрибуты:
        bot_token (str): Токен Telegram Bot API.
        admin_ids (list[int]): ID администраторов, получающих отчёты об ошибках.
        tech_chat_id (int): Чат диспетчерской, куда уходят уведомления о смене статусов.
        google_sheet_id (str): ID Google-таблицы со справочником пользователей.
        api_base_url (str): Базовый URL REST-бэкенда заявок.
        api_token (str): Bearer-токен сервисной учётной записи бота.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # --- Telegram Bot Settings ---
    bot_token: str = Field(..., description="Telegram Bot API Token")
    admin_ids_str: str = Field(
        default="",
        alias="ADMIN_IDS",
        description="List of admin Telegram IDs, comma-separated",
    )
    tech_chat_id: int = Field(
        ..., description="Telegram Chat ID for dispatcher notifications"
    )

    @computed_field
    @property
    def admin_ids(self) -> list[int]:
        """Преобразует строку admin_ids_str в список целых чисел."""
        if not self.admin_ids_str:
            return []
        return [int(item.strip()) for item in self.admin_ids_str.split(",")]

    # --- Google API Settings ---
    google_sheet_id: str = Field(..., description="Google Sheet ID with the user directory")

    # --- Backend API Settings ---
    api_base_url: str = Field(
        default="http://localhost:5000/api",
        description="Base URL of the field-service REST backend",
    )
    api_token: str = Field(default="", description="Bearer token for the backend")
    api_timeout_seconds: float = Field(default=15.0, gt=0)

    # --- Business Logic Settings ---
    # Пауза между основным переходом и автоматическим (REACHED -> IN_PROGRESS)
    follow_up_delay_seconds: float = Field(default=0.5, ge=0)
    location_accuracy_warning_meters: float = Field(default=30.0, gt=0)
    location_timeout_seconds: int = Field(default=30, gt=0)

    log_level: str = Field(default="INFO", description="Root logging level")

    display_timezone: str = Field(
        default="Asia/Kolkata",
        description="Timezone for displaying dates and times to users",
    )


# Создаем единственный экземпляр настроек, который будет использоваться во всем приложении
settings = Settings()
