"""
Обработчики общих команд, доступных всем пользователям.
"""

import html
import json
import logging

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import ContextTypes

from fieldservice.core.decorators import require_role
from fieldservice.models.user import ActorRole
from fieldservice.services.user_service import UserService

logger = logging.getLogger(__name__)

ROLE_TITLES = {
    ActorRole.ADMIN: "администратор",
    ActorRole.SERVICE_PERSON: "сервисный инженер",
    ActorRole.ZONE_USER: "менеджер зоны",
    ActorRole.CUSTOMER: "клиент",
}


@require_role(*ActorRole)
async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Обработчик команды /start.

    Приветствует авторизованного пользователя и подсказывает доступные команды.
    """
    db_user = context.user_data["db_user"]
    logger.info(
        f"Authorized user {db_user.telegram_id} ({db_user.name}) with role '{db_user.role.value}' started the bot."
    )

    text = (
        f"Привет, {html.escape(db_user.name)}! 👋"
        f"\n\nВаш статус: <b>авторизован</b>."
        f"\nВаша роль: <b>{ROLE_TITLES[db_user.role]}</b>."
    )
    if db_user.role != ActorRole.CUSTOMER:
        text += "\n\nСменить статус заявки: /status &lt;номер заявки&gt;"
    await update.message.reply_html(text)


async def show_my_id(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Отправляет пользователю его собственный Telegram ID."""
    user = update.effective_user
    if not user:
        return

    logger.info(f"User {user.id} requested their ID.")
    await update.message.reply_text(
        f"Ваш Telegram ID: <code>{user.id}</code>\n\n"
        f"Пожалуйста, отправьте этот ID вашему администратору для получения доступа.",
        parse_mode="HTML",
    )


@require_role(ActorRole.ADMIN)
async def reload_users(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Сбрасывает кэш справочника после правки Google-таблицы."""
    user_service: UserService = context.application.bot_data["user_service"]
    user_service.invalidate()
    users = user_service.get_all_users()
    await update.effective_message.reply_text(
        f"🔄 Справочник перечитан: {len(users)} пользователей."
    )


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Логирует ошибки и отправляет уведомление администраторам.
    """

    logger.error("Exception while handling an update:", exc_info=context.error)

    if isinstance(update, Update):
        update_str = json.dumps(update.to_dict(), indent=2, ensure_ascii=False)
    else:
        update_str = str(update)

    message = (
        f"‼️ <b>Произошла ошибка в боте</b> ‼️\n\n"
        f"<pre>update = {html.escape(update_str)}</pre>\n\n"
        f"<pre>context.user_data = {html.escape(str(context.user_data))}</pre>\n\n"
        f"<pre>{html.escape(str(context.error))}</pre>"
    )

    for admin_id in context.bot_data["settings"].admin_ids:
        try:
            # Telegram ограничивает сообщение 4096 символами
            for x in range(0, len(message), 4096):
                await context.bot.send_message(
                    chat_id=admin_id,
                    text=message[x : x + 4096],
                    parse_mode=ParseMode.HTML,
                )
        except Exception as e:
            logger.error(f"Failed to send error message to admin {admin_id}: {e}")


async def unauthorized_user_handler(
    update: Update, context: ContextTypes.DEFAULT_TYPE
) -> None:
    """
    Обрабатывает сообщения от пользователей, которых нет в справочнике.
    """
    user = update.effective_user
    if not user:
        return

    user_service: UserService = context.application.bot_data["user_service"]
    if user_service.get_user_by_id(user.id):
        await update.message.reply_text(
            "Не понимаю сообщение. Чтобы сменить статус заявки: /status <номер заявки>"
        )
        return

    logger.warning(
        f"Received message from unauthorized user {user.id} ({user.first_name})."
    )

    admin_message = (
        f"⚠️ Получено сообщение от неавторизованного пользователя:\n\n"
        f"Имя: {html.escape(user.first_name or '')}\n"
        f"Username: @{user.username}\n"
        f"ID: <code>{user.id}</code>\n\n"
        f"Чтобы дать доступ, добавьте строку с этим ID и ролью в лист 'users' "
        f"и выполните /reloadusers"
    )
    for admin_id in context.bot_data["settings"].admin_ids:
        try:
            await context.bot.send_message(
                chat_id=admin_id, text=admin_message, parse_mode=ParseMode.HTML
            )
        except Exception as e:
            logger.error(f"Failed to send unauthorized notice to admin {admin_id}: {e}")

    await update.message.reply_text(
        "Здравствуйте! К сожалению, у вас нет доступа к этому боту. "
        "Пожалуйста, обратитесь к администратору."
    )
