"""
Тесты уведомлений диспетчерской.
"""

import pytest

from fieldservice.core.exceptions import TransitionSubmissionError
from fieldservice.models.status import TicketStatus
from fieldservice.models.ticket import Customer, Ticket
from fieldservice.models.user import User
from fieldservice.services.notification_service import (
    NotificationService,
    _format_datetime,
    format_status_change,
)
from fieldservice.services.transition_orchestrator import TransitionOutcome

TICKET = Ticket(
    id=42,
    title="Chiller <B-wing> not cooling",
    status="ONSITE_VISIT_STARTED",
    customer=Customer(company_name="Acme & Sons"),
)
ENGINEER = User(telegram_id=200, name="Ravi", role="SERVICE_PERSON")


def test_format_datetime_uses_display_timezone(site_location):
    assert _format_datetime(site_location.timestamp) == "19.10.2026 в 15:00"
    assert _format_datetime(None) == "не указано"


def test_message_with_successful_follow_up(site_location):
    outcome = TransitionOutcome(
        ticket_id=42,
        status=TicketStatus.ONSITE_VISIT_REACHED,
        follow_up_status=TicketStatus.ONSITE_VISIT_IN_PROGRESS,
        follow_up_succeeded=True,
    )

    text = format_status_change(TICKET, outcome, ENGINEER, location=site_location)

    assert "Chiller &lt;B-wing&gt; not cooling" in text
    assert "Acme &amp; Sons" in text
    assert "Onsite Visit Started → Onsite Visit Reached" in text
    assert "⚡ Автоматически: Onsite Visit In Progress" in text
    assert "📍 MG Road, Bengaluru (19.10.2026 в 15:00)" in text


def test_failed_follow_up_is_not_announced(site_location):
    outcome = TransitionOutcome(
        ticket_id=42,
        status=TicketStatus.ONSITE_VISIT_REACHED,
        follow_up_status=TicketStatus.ONSITE_VISIT_IN_PROGRESS,
        follow_up_error=TransitionSubmissionError("Invalid status transition", 400),
    )

    text = format_status_change(TICKET, outcome, ENGINEER, comment="Gate code 1234")

    assert "Автоматически" not in text
    assert "💬 Gate code 1234" in text


@pytest.mark.asyncio
async def test_send_failure_is_only_logged(mocker):
    bot = mocker.MagicMock()
    bot.send_message = mocker.AsyncMock(side_effect=Exception("Chat not found"))
    outcome = TransitionOutcome(ticket_id=42, status=TicketStatus.ON_HOLD)

    await NotificationService.send_status_changed_notification(
        bot=bot, chat_id=-100500, ticket=TICKET, outcome=outcome, actor=ENGINEER
    )

    bot.send_message.assert_awaited_once()
    assert bot.send_message.call_args.kwargs["parse_mode"] == "HTML"
