"""
Основная точка входа в приложение.

Инициализирует сервисы и запускает Telegram-бота смены статусов заявок.
"""

import logging

from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ConversationHandler,
    MessageHandler,
    filters,
)

from fieldservice.core.config import settings
from fieldservice.core.logging_config import setup_logging
from fieldservice.handlers import common
from fieldservice.handlers import status as status_handler
from fieldservice.services.api_client import FieldServiceAPI
from fieldservice.services.google_api import GoogleAPIService
from fieldservice.services.location_service import LocationService
from fieldservice.services.transition_orchestrator import TransitionOrchestrator
from fieldservice.services.user_service import UserService

logger = logging.getLogger(__name__)

# Брошенный диалог выбрасывается через 10 минут бездействия
CONVERSATION_TIMEOUT_SECONDS = 600


def build_status_conversation() -> ConversationHandler:
    cancel_button = CallbackQueryHandler(
        status_handler.cancel, pattern=rf"^{status_handler.CANCEL}$"
    )
    return ConversationHandler(
        entry_points=[CommandHandler("status", status_handler.status_start)],
        states={
            status_handler.CHOOSE_STATUS: [
                CallbackQueryHandler(
                    status_handler.select_status,
                    pattern=rf"^{status_handler.SELECT_PREFIX}",
                ),
                cancel_button,
            ],
            status_handler.ENTER_COMMENT: [
                MessageHandler(
                    filters.TEXT & ~filters.COMMAND, status_handler.receive_comment
                ),
            ],
            status_handler.SHARE_LOCATION: [
                MessageHandler(filters.LOCATION, status_handler.receive_location),
                MessageHandler(
                    filters.Text([status_handler.DENY_LOCATION_TEXT]),
                    status_handler.location_denied,
                ),
                MessageHandler(
                    ~filters.COMMAND & ~filters.LOCATION,
                    status_handler.location_expected,
                ),
            ],
            status_handler.CONFIRM: [
                CallbackQueryHandler(
                    status_handler.submit_status, pattern=rf"^{status_handler.SUBMIT}$"
                ),
                CallbackQueryHandler(
                    status_handler.back_to_options, pattern=rf"^{status_handler.BACK}$"
                ),
                cancel_button,
                MessageHandler(
                    filters.TEXT & ~filters.COMMAND, status_handler.receive_comment
                ),
            ],
            ConversationHandler.TIMEOUT: [
                MessageHandler(filters.ALL, status_handler.conversation_timeout),
                CallbackQueryHandler(status_handler.conversation_timeout),
            ],
        },
        fallbacks=[CommandHandler("cancel", status_handler.cancel)],
        conversation_timeout=CONVERSATION_TIMEOUT_SECONDS,
    )


async def _close_api(application: Application) -> None:
    await application.bot_data["api"].aclose()


def main() -> None:
    """Основная функция для запуска бота."""
    setup_logging()

    logger.info("Initializing services...")
    google_api_service = GoogleAPIService()
    user_service = UserService(google_api=google_api_service)
    api = FieldServiceAPI()

    logger.info("Starting bot...")
    application = (
        Application.builder().token(settings.bot_token).post_shutdown(_close_api).build()
    )

    # Сервисы доступны обработчикам через bot_data
    application.bot_data["user_service"] = user_service
    application.bot_data["api"] = api
    application.bot_data["location_service"] = LocationService(api=api)
    application.bot_data["orchestrator"] = TransitionOrchestrator(api=api)
    application.bot_data["settings"] = settings

    application.add_handler(build_status_conversation())

    application.add_handler(CommandHandler("start", common.start))
    application.add_handler(CommandHandler("myid", common.show_my_id))
    application.add_handler(CommandHandler("reloadusers", common.reload_users))
    application.add_error_handler(common.error_handler)
    application.add_handler(
        MessageHandler(
            filters.TEXT & ~filters.COMMAND, common.unauthorized_user_handler
        )
    )

    logger.info("Bot is running in polling mode.")
    application.run_polling()


if __name__ == "__main__":
    main()
