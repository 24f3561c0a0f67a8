"""
Декораторы для проверки авторизации и прав доступа.
"""

import logging
from functools import wraps
from typing import Any, Callable, Coroutine

from telegram import Update
from telegram.ext import ContextTypes

from fieldservice.models.user import ActorRole
from fieldservice.services.user_service import UserService

logger = logging.getLogger(__name__)


def require_role(*roles: ActorRole) -> Callable:
    """
    Декоратор для проверки, что пользователь имеет одну из указанных ролей.

    Найденный пользователь кладётся в context.user_data["db_user"]:
    дальше по его роли движок фильтрует доступные статусы.

    Args:
        *roles: Роли, которым разрешен доступ.

    Returns:
        Декоратор для обработчика python-telegram-bot.
    """
    allowed = {ActorRole.parse(role) for role in roles}

    def decorator(
        func: Callable[[Update, ContextTypes.DEFAULT_TYPE], Coroutine[Any, Any, Any]],
    ):
        @wraps(func)
        async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE):
            user = update.effective_user
            if not user:
                return None

            user_service: UserService = context.application.bot_data["user_service"]
            db_user = user_service.get_user_by_id(user.id)

            if db_user and db_user.role in allowed:
                context.user_data["db_user"] = db_user
                return await func(update, context)

            role_str = db_user.role.value if db_user else "Unauthorized"
            logger.warning(
                f"Unauthorized access attempt by user {user.id} ({user.username}). "
                f"User role: '{role_str}'. Required roles: {sorted(r.value for r in allowed)}"
            )
            if update.callback_query:
                await update.callback_query.answer(
                    "⛔️ У вас нет доступа для этого действия.", show_alert=True
                )
            elif update.effective_message:
                await update.effective_message.reply_text(
                    "⛔️ У вас нет доступа для выполнения этой команды."
                )
            return None

        return wrapper

    return decorator
