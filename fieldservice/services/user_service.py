"""
Сервис справочника сотрудников.

Кэширует справочник из Google-таблицы и при сбое чтения отдаёт устаревший кэш,
чтобы выездные сотрудники не теряли доступ к боту из-за таблицы.
"""

import logging
import time
from typing import Optional

from pydantic import ValidationError

from fieldservice.models.user import User
from fieldservice.services.google_api import GoogleAPIService

logger = logging.getLogger(__name__)


class UserService:
    """
    Сервис для работы с данными пользователей.
    """

    def __init__(self, google_api: GoogleAPIService, cache_ttl_seconds: int = 60):
        self.google_api = google_api
        self._cache_ttl = cache_ttl_seconds
        self._user_cache: list[User] | None = None
        self._cache_timestamp: float = 0.0

    def _parse_records(self, records: list[dict]) -> list[User]:
        users = []
        for record in records:
            try:
                users.append(User(**record))
            except ValidationError as e:
                # Одна кривая строка в таблице не должна блокировать остальных
                logger.warning(f"Skipping invalid user row {record}: {e}")
        return users

    def get_all_users(self) -> list[User]:
        current_time = time.time()
        if (
            self._user_cache is not None
            and (current_time - self._cache_timestamp) < self._cache_ttl
        ):
            logger.debug("Returning users from cache.")
            return self._user_cache

        logger.info("Cache is expired or empty. Fetching users from Google Sheet...")
        try:
            records = self.google_api.get_user_records()
            self._user_cache = self._parse_records(records)
            self._cache_timestamp = current_time
            logger.info(
                f"Successfully fetched and cached {len(self._user_cache)} users."
            )
            return self._user_cache
        except Exception as e:
            logger.error(f"Failed to fetch users from Google Sheet: {e}", exc_info=True)
            if self._user_cache is not None:
                logger.warning("Returning stale user cache due to fetch failure.")
                return self._user_cache
            return []

    def get_user_by_id(self, telegram_id: int) -> Optional[User]:
        for user in self.get_all_users():
            if user.telegram_id == telegram_id:
                return user
        return None

    def invalidate(self) -> None:
        self._user_cache = None
        self._cache_timestamp = 0.0
        logger.info("User cache invalidated.")
