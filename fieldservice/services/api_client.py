"""
Клиент REST-бэкенда выездного сервиса.

Чтение (заявка, обратное геокодирование) повторяется при сетевых сбоях и 5xx.
Смена статуса не повторяется: повторный PATCH может задвоить переход.
"""

import logging

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from fieldservice.core.config import settings
from fieldservice.core.exceptions import TransitionSubmissionError
from fieldservice.models.submission import ValidSubmission
from fieldservice.models.ticket import Ticket

logger = logging.getLogger(__name__)


def is_retryable_http_error(exception: BaseException) -> bool:
    return (
        isinstance(exception, httpx.HTTPStatusError)
        and exception.response.status_code >= 500
    )


backend_read_retry = retry(
    retry=(
        retry_if_exception_type(httpx.TransportError)
        | retry_if_exception(is_retryable_http_error)
    ),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    stop=stop_after_attempt(3),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


def _error_message(response: httpx.Response) -> str:
    """Достаёт `message` из JSON-ответа бэкенда, иначе возвращает общий текст."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"Backend responded with HTTP {response.status_code}"


class FieldServiceAPI:
    """
    Асинхронный клиент бэкенда заявок.
    """

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        if client is None:
            headers = {"Accept": "application/json"}
            if settings.api_token:
                headers["Authorization"] = f"Bearer {settings.api_token}"
            client = httpx.AsyncClient(
                base_url=settings.api_base_url,
                headers=headers,
                timeout=settings.api_timeout_seconds,
            )
        self.client = client

    async def aclose(self) -> None:
        await self.client.aclose()

    @backend_read_retry
    async def get_ticket(self, ticket_id: int) -> Ticket:
        """Загружает заявку; бэкенд отдаёт её либо как есть, либо внутри `data`."""
        logger.info(f"Fetching ticket {ticket_id} from backend.")
        response = await self.client.get(f"/tickets/{ticket_id}")
        response.raise_for_status()
        body = response.json()
        if isinstance(body, dict) and isinstance(body.get("data"), dict):
            body = body["data"]
        return Ticket.model_validate(body)

    async def update_ticket_status(
        self, ticket_id: int, submission: ValidSubmission
    ) -> dict:
        """
        Отправляет PATCH /tickets/{id}/status.

        Raises:
            TransitionSubmissionError: бэкенд отклонил переход или недоступен.
        """
        payload = submission.to_payload()
        logger.info(
            f"Submitting status {payload['status']} for ticket {ticket_id} "
            f"(comment: {'comments' in payload}, location: {'location' in payload})."
        )
        try:
            response = await self.client.patch(
                f"/tickets/{ticket_id}/status", json=payload
            )
        except httpx.HTTPError as e:
            logger.error(
                f"Status update for ticket {ticket_id} failed in transport: {e}",
                exc_info=True,
            )
            raise TransitionSubmissionError(
                "Backend is unreachable, status was not changed"
            ) from e

        if response.is_error:
            detail = _error_message(response)
            logger.warning(
                f"Backend rejected status {payload['status']} for ticket {ticket_id}: "
                f"HTTP {response.status_code} {detail}"
            )
            raise TransitionSubmissionError(detail, status_code=response.status_code)

        logger.info(f"Ticket {ticket_id} moved to {payload['status']}.")
        try:
            return response.json()
        except ValueError:
            return {}

    @backend_read_retry
    async def _fetch_address(self, latitude: float, longitude: float) -> str | None:
        response = await self.client.get(
            "/geocoding/reverse",
            params={"latitude": latitude, "longitude": longitude},
        )
        response.raise_for_status()
        body = response.json()
        if not isinstance(body, dict) or not body.get("success"):
            return None
        return (body.get("data") or {}).get("address") or None

    async def reverse_geocode(self, latitude: float, longitude: float) -> str | None:
        """Адрес по координатам или None, если бэкенд не смог его определить."""
        try:
            return await self._fetch_address(latitude, longitude)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(
                f"Reverse geocoding failed for {latitude}, {longitude}: {e}"
            )
            return None
