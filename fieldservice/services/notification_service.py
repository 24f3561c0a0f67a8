"""
Сервис уведомлений диспетчерской о смене статусов заявок.
"""

import html
import logging
from datetime import datetime

import pytz
from telegram import Bot
from telegram.constants import ParseMode

from fieldservice.core.config import settings
from fieldservice.models.location import LocationCapture
from fieldservice.models.ticket import Ticket
from fieldservice.models.user import User
from fieldservice.services.transition_engine import describe_status
from fieldservice.services.transition_orchestrator import TransitionOutcome

logger = logging.getLogger(__name__)


def _format_datetime(dt: datetime | None) -> str:
    """
    Форматирует datetime объект в строку с учетом часового пояса из настроек.
    """
    if not dt:
        return "не указано"

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=pytz.utc)

    display_tz = pytz.timezone(settings.display_timezone)
    local_dt = dt.astimezone(display_tz)

    return local_dt.strftime("%d.%m.%Y в %H:%M")


def format_status_change(
    ticket: Ticket,
    outcome: TransitionOutcome,
    actor: User,
    comment: str | None = None,
    location: LocationCapture | None = None,
) -> str:
    previous = describe_status(ticket.status).label
    current = describe_status(outcome.status).label
    lines = [
        f"🔄 <b>Заявка #{ticket.id}</b>: {html.escape(ticket.title)}",
        f"🏢 <b>Клиент:</b> {html.escape(ticket.customer_name)}",
        f"📌 <b>Статус:</b> {previous} → {current}",
        f"👤 <b>Сотрудник:</b> {html.escape(actor.name)}",
    ]
    if outcome.follow_up_succeeded and outcome.follow_up_status is not None:
        lines.append(
            f"⚡ Автоматически: {describe_status(outcome.follow_up_status).label}"
        )
    if comment:
        lines.append(f"💬 {html.escape(comment)}")
    if location is not None:
        lines.append(
            f"📍 {html.escape(location.display_address)} "
            f"({_format_datetime(location.timestamp)})"
        )
    return "\n".join(lines)


class NotificationService:
    @staticmethod
    async def send_status_changed_notification(
        bot: Bot,
        chat_id: int,
        ticket: Ticket,
        outcome: TransitionOutcome,
        actor: User,
        comment: str | None = None,
        location: LocationCapture | None = None,
    ) -> None:
        """
        Сообщает в чат диспетчерской о принятом переходе.

        Сбой отправки только логируется: переход уже принят бэкендом.
        """
        text = format_status_change(ticket, outcome, actor, comment, location)
        try:
            await bot.send_message(chat_id=chat_id, text=text, parse_mode=ParseMode.HTML)
            logger.info(
                f"Sent status change notification for ticket {ticket.id} to chat {chat_id}."
            )
        except Exception as e:
            logger.error(
                f"Failed to send notification for ticket {ticket.id} to chat {chat_id}: {e}",
                exc_info=True,
            )
