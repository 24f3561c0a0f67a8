"""
Доступ к справочнику сотрудников в Google Sheets.

Лист 'users' хранит Telegram ID, имя и роль (ADMIN, SERVICE_PERSON, ZONE_USER, CUSTOMER).
Бот только читает справочник; редактируют его администраторы в самой таблице.
"""

import logging
from pathlib import Path

import gspread
import requests.exceptions
from gspread.exceptions import APIError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from fieldservice.core.config import settings

logger = logging.getLogger(__name__)

CREDENTIALS_FILE = Path(__file__).parent.parent.parent / "credentials.json"
USERS_WORKSHEET = "users"


def normalize_record(row: dict) -> dict:
    """'Telegram ID' -> 'telegram_id', строки обрезаются, пустые ячейки становятся None."""
    record = {}
    for key, value in row.items():
        name = str(key).strip().lower().replace(" ", "_")
        if isinstance(value, str):
            value = value.strip() or None
        record[name] = value
    return record


def is_retryable_gspread_error(exception: BaseException) -> bool:
    return isinstance(exception, APIError) and exception.response.status_code >= 500


google_api_retry = retry(
    retry=(
        retry_if_exception_type(requests.exceptions.RequestException)
        | retry_if_exception(is_retryable_gspread_error)
    ),
    wait=wait_exponential(multiplier=2, min=2, max=30),
    stop=stop_after_attempt(5),
    before_sleep=before_sleep_log(logger, logging.WARNING),
)


class GoogleAPIService:
    """
    Клиент Google Sheets только для чтения справочника пользователей.
    """

    def __init__(self, credentials_file: Path = CREDENTIALS_FILE) -> None:
        logger.info("Initializing Google Sheets client...")
        if not credentials_file.exists():
            logger.error(f"Credentials file not found at: {credentials_file}")
            raise FileNotFoundError(
                f"Google credentials file not found at {credentials_file}"
            )

        self.client = gspread.service_account(
            filename=str(credentials_file),
            scopes=["https://www.googleapis.com/auth/spreadsheets.readonly"],
        )
        logger.info("Google Sheets client initialized successfully.")

    @google_api_retry
    def get_user_records(self) -> list[dict]:
        """
        Возвращает строки листа 'users' как словари по заголовкам.

        Заголовки приводятся к виду telegram_id / name / role, пустые строки отбрасываются.
        """
        try:
            spreadsheet = self.client.open_by_key(settings.google_sheet_id)
            rows = spreadsheet.worksheet(USERS_WORKSHEET).get_all_records(
                default_blank=None
            )
        except gspread.exceptions.SpreadsheetNotFound:
            logger.error(f"Spreadsheet with ID '{settings.google_sheet_id}' not found.")
            raise
        except gspread.exceptions.WorksheetNotFound:
            logger.error(f"Worksheet '{USERS_WORKSHEET}' not found in the spreadsheet.")
            raise

        records = [normalize_record(row) for row in rows]
        return [record for record in records if any(v is not None for v in record.values())]
