"""
Общие фикстуры тестов.
"""

import os

# Настройки читаются при импорте fieldservice.core.config, поэтому задаём их до импорта
os.environ.setdefault("BOT_TOKEN", "123456:test-token")
os.environ.setdefault("TECH_CHAT_ID", "-100500")
os.environ.setdefault("GOOGLE_SHEET_ID", "test-sheet")
os.environ.setdefault("ADMIN_IDS", "100")
os.environ.setdefault("API_BASE_URL", "http://backend.test/api")

from datetime import datetime, timezone  # noqa: E402

import pytest  # noqa: E402

from fieldservice.models.location import LocationCapture  # noqa: E402


@pytest.fixture
def site_location() -> LocationCapture:
    return LocationCapture(
        latitude=12.971599,
        longitude=77.594566,
        address="MG Road, Bengaluru",
        accuracy=12.0,
        timestamp=datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc),
    )
