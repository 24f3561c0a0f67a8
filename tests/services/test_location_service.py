"""
Тесты фиксации геопозиции из сообщения Telegram.
"""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from fieldservice.core.exceptions import GeolocationUnavailableError
from fieldservice.services.location_service import LocationService


@pytest.fixture
def mock_api(mocker):
    api = mocker.MagicMock()
    api.reverse_geocode = mocker.AsyncMock(return_value="MG Road, Bengaluru")
    return api


@pytest.fixture
def location_service(mock_api):
    return LocationService(api=mock_api, accuracy_warning_meters=30, max_age_seconds=30)


def make_message(mocker, *, accuracy=8.0, age_seconds=2, forwarded=False, location=True):
    message = mocker.MagicMock()
    message.chat_id = 555
    message.date = datetime.now(timezone.utc) - timedelta(seconds=age_seconds)
    message.forward_origin = mocker.MagicMock() if forwarded else None
    if location:
        message.location.latitude = 12.971599
        message.location.longitude = 77.594566
        message.location.horizontal_accuracy = accuracy
    else:
        message.location = None
    return message


@pytest.mark.asyncio
async def test_capture_fresh_location(location_service, mock_api, mocker):
    message = make_message(mocker)

    capture = await location_service.capture_from_message(message)

    assert capture.latitude == 12.971599
    assert capture.longitude == 77.594566
    assert capture.address == "MG Road, Bengaluru"
    assert capture.accuracy == 8.0
    assert capture.accuracy_level == "excellent"
    assert capture.timestamp == message.date
    mock_api.reverse_geocode.assert_awaited_once_with(12.971599, 77.594566)


@pytest.mark.asyncio
async def test_address_falls_back_to_coordinates(location_service, mock_api, mocker):
    mock_api.reverse_geocode.return_value = None

    capture = await location_service.capture_from_message(make_message(mocker))

    assert capture.address == "12.971599, 77.594566"


@pytest.mark.asyncio
async def test_low_accuracy_is_logged_but_accepted(location_service, mocker, caplog):
    message = make_message(mocker, accuracy=85.0)

    with caplog.at_level(logging.WARNING):
        capture = await location_service.capture_from_message(message)

    assert capture.accuracy_level == "fair"
    assert "Low location accuracy" in caplog.text


@pytest.mark.asyncio
async def test_unknown_accuracy(location_service, mocker):
    capture = await location_service.capture_from_message(
        make_message(mocker, accuracy=None)
    )
    assert capture.accuracy is None
    assert capture.accuracy_level == "unknown"


@pytest.mark.asyncio
async def test_forwarded_location_rejected(location_service, mock_api, mocker):
    with pytest.raises(GeolocationUnavailableError):
        await location_service.capture_from_message(make_message(mocker, forwarded=True))
    mock_api.reverse_geocode.assert_not_awaited()


@pytest.mark.asyncio
async def test_stale_location_rejected(location_service, mocker):
    with pytest.raises(GeolocationUnavailableError):
        await location_service.capture_from_message(
            make_message(mocker, age_seconds=120)
        )


@pytest.mark.asyncio
async def test_message_without_location(location_service, mocker):
    with pytest.raises(GeolocationUnavailableError):
        await location_service.capture_from_message(
            make_message(mocker, location=False)
        )
