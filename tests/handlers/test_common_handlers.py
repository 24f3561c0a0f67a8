"""
Тесты общих команд и обработки сообщений от посторонних.
"""

import pytest

from fieldservice.handlers import common
from fieldservice.models.user import User
from fieldservice.services.user_service import UserService

ADMIN_USER = User(telegram_id=100, name="Admin", role="ADMIN")
ENGINEER = User(telegram_id=200, name="Ravi", role="SERVICE_PERSON")


@pytest.fixture
def mock_update_context(mocker):
    mock_update = mocker.MagicMock()
    mock_context = mocker.MagicMock()

    mock_update.message.reply_text = mocker.AsyncMock()
    mock_update.message.reply_html = mocker.AsyncMock()
    mock_update.effective_message.reply_text = mocker.AsyncMock()
    mock_update.callback_query = None

    settings = mocker.MagicMock()
    settings.admin_ids = [100]
    mock_context.application.bot_data = {
        "user_service": mocker.MagicMock(spec=UserService),
    }
    mock_context.bot_data = {"settings": settings}
    mock_context.user_data = {}
    mock_context.bot.send_message = mocker.AsyncMock()

    return mock_update, mock_context


@pytest.mark.asyncio
async def test_start_greets_engineer_with_status_hint(mock_update_context):
    mock_update, mock_context = mock_update_context
    mock_update.effective_user.id = ENGINEER.telegram_id
    mock_context.application.bot_data["user_service"].get_user_by_id.return_value = ENGINEER

    await common.start(mock_update, mock_context)

    text = mock_update.message.reply_html.call_args.args[0]
    assert "сервисный инженер" in text
    assert "/status" in text


@pytest.mark.asyncio
async def test_reload_users_invalidates_cache(mock_update_context):
    mock_update, mock_context = mock_update_context
    user_service = mock_context.application.bot_data["user_service"]
    mock_update.effective_user.id = ADMIN_USER.telegram_id
    user_service.get_user_by_id.return_value = ADMIN_USER
    user_service.get_all_users.return_value = [ADMIN_USER, ENGINEER]

    await common.reload_users(mock_update, mock_context)

    user_service.invalidate.assert_called_once()
    mock_update.effective_message.reply_text.assert_awaited_once_with(
        "🔄 Справочник перечитан: 2 пользователей."
    )


@pytest.mark.asyncio
async def test_unknown_user_is_reported_to_admins(mock_update_context):
    mock_update, mock_context = mock_update_context
    mock_update.effective_user.id = 999
    mock_update.effective_user.first_name = "Stranger"
    mock_update.effective_user.username = "stranger"
    mock_context.application.bot_data["user_service"].get_user_by_id.return_value = None

    await common.unauthorized_user_handler(mock_update, mock_context)

    mock_context.bot.send_message.assert_awaited_once()
    assert mock_context.bot.send_message.call_args.kwargs["chat_id"] == 100
    assert "<code>999</code>" in mock_context.bot.send_message.call_args.kwargs["text"]
    assert "нет доступа" in mock_update.message.reply_text.call_args.args[0]


@pytest.mark.asyncio
async def test_known_user_gets_hint_instead_of_alarm(mock_update_context):
    mock_update, mock_context = mock_update_context
    mock_update.effective_user.id = ENGINEER.telegram_id
    mock_context.application.bot_data["user_service"].get_user_by_id.return_value = ENGINEER

    await common.unauthorized_user_handler(mock_update, mock_context)

    mock_context.bot.send_message.assert_not_awaited()
    assert "/status" in mock_update.message.reply_text.call_args.args[0]
