"""
Диалог смены статуса заявки.

/status <номер> показывает кнопки доступных переходов. Затем бот при необходимости
спрашивает комментарий и геопозицию, показывает итог и отправляет переход в бэкенд.
При ошибке отправки введённые данные сохраняются, и пользователь может повторить.
"""

import html
import logging

import httpx
from telegram import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
    ReplyKeyboardRemove,
    Update,
)
from telegram.constants import ParseMode
from telegram.ext import ContextTypes, ConversationHandler

from fieldservice.core.config import settings
from fieldservice.core.decorators import require_role
from fieldservice.core.exceptions import (
    CommentTooLongError,
    GeolocationError,
    GeolocationTimeoutError,
    GeolocationUnavailableError,
    MissingCommentError,
    MissingLocationError,
    PermissionDeniedError,
    TransitionNotAllowedError,
    TransitionSubmissionError,
    TransitionValidationError,
    UnknownStatusError,
)
from fieldservice.models.submission import StatusChangeDraft, StatusOption
from fieldservice.models.user import ActorRole
from fieldservice.services.api_client import FieldServiceAPI
from fieldservice.services.location_service import LocationService
from fieldservice.services.notification_service import NotificationService
from fieldservice.services.transition_engine import (
    describe_status,
    ensure_submission,
    get_available_transitions,
    plan_follow_up,
    validate_submission,
)
from fieldservice.services.transition_orchestrator import TransitionOrchestrator

logger = logging.getLogger(__name__)

DRAFT_KEY = "status_change"

# Состояния диалога
(CHOOSE_STATUS, ENTER_COMMENT, SHARE_LOCATION, CONFIRM) = range(4)

# callback_data кнопок
SELECT_PREFIX = "status:"
SUBMIT = "status_submit"
BACK = "status_back"
CANCEL = "status_cancel"

SHARE_LOCATION_TEXT = "📍 Отправить геопозицию"
DENY_LOCATION_TEXT = "🚫 Не могу поделиться"

USAGE_MESSAGE = "Использование: /status <номер заявки>\nПример: /status 1042"
CANCELLED_MESSAGE = "Смена статуса отменена."

GEOLOCATION_MESSAGES = {
    GeolocationUnavailableError: (
        "⚠️ Не удалось получить геопозицию. Нажмите кнопку «📍 Отправить геопозицию»: "
        "пересланные и устаревшие точки не принимаются."
    ),
    GeolocationTimeoutError: (
        "⏱ Геопозиция не получена вовремя. Нажмите «📍 Отправить геопозицию» ещё раз."
    ),
    PermissionDeniedError: (
        "🚫 Без геопозиции этот статус выбрать нельзя. Разрешите Telegram доступ "
        "к местоположению и попробуйте снова, или отмените смену статуса: /cancel"
    ),
}


def validation_message(error: TransitionValidationError) -> str:
    """Текст ошибки ввода для показа прямо в диалоге."""
    meta = describe_status(error.status)
    if isinstance(error, MissingCommentError):
        return (
            f"💬 Для статуса «{meta.label}» нужен комментарий "
            f"({meta.comment_prompt}). Напишите его одним сообщением."
        )
    if isinstance(error, CommentTooLongError):
        return f"✂️ Комментарий слишком длинный: {error.length}/{error.limit} символов."
    if isinstance(error, MissingLocationError):
        return f"📍 Для статуса «{meta.label}» нужна текущая геопозиция."
    if isinstance(error, TransitionNotAllowedError):
        return f"⛔️ Переход в «{meta.label}» сейчас недоступен."
    return str(error)


def _option_button_text(option: StatusOption) -> str:
    text = option.label
    if option.is_destructive:
        text = "⚠️ " + text
    if option.requires_comment:
        text += " 💬"
    if option.requires_location:
        text += " 📍"
    return text


def build_options_keyboard(options: list[StatusOption]) -> InlineKeyboardMarkup:
    keyboard = [
        [
            InlineKeyboardButton(
                _option_button_text(option),
                callback_data=f"{SELECT_PREFIX}{option.status.value}",
            )
        ]
        for option in options
    ]
    keyboard.append([InlineKeyboardButton("✖️ Отмена", callback_data=CANCEL)])
    return InlineKeyboardMarkup(keyboard)


def render_ticket_header(draft: StatusChangeDraft) -> str:
    ticket = draft.ticket
    current = describe_status(ticket.status)
    return (
        f"🎫 <b>Заявка #{ticket.id}</b>: {html.escape(ticket.title)}\n"
        f"🏢 Клиент: {html.escape(ticket.customer_name)}\n"
        f"📌 Текущий статус: <b>{current.label}</b>"
    )


def render_confirmation(draft: StatusChangeDraft) -> str:
    option = draft.selected_option
    lines = [render_ticket_header(draft), ""]
    lines.append(f"➡️ Новый статус: <b>{option.label}</b>")
    lines.append(f"<i>{option.description}</i>")
    if option.is_destructive:
        lines.append("⚠️ Это действие нельзя отменить.")
    else:
        lines.append("Статус будет обновлён сразу.")
    follow_up = plan_follow_up(option.status)
    if follow_up is not None:
        lines.append(
            f"⚡ После этого заявка автоматически перейдёт в «{describe_status(follow_up).label}»."
        )
    if draft.comment:
        lines.append(f"💬 {option.comment_prompt}: {html.escape(draft.comment)}")
    if draft.location is not None:
        accuracy = (
            f" (±{round(draft.location.accuracy)} м)"
            if draft.location.accuracy is not None
            else ""
        )
        lines.append(f"📍 {html.escape(draft.location.display_address)}{accuracy}")
    if not option.requires_comment:
        lines.append("\nМожно добавить комментарий, отправив его сообщением.")
    return "\n".join(lines)


def _confirm_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [
            [InlineKeyboardButton("✅ Обновить статус", callback_data=SUBMIT)],
            [
                InlineKeyboardButton("↩️ Назад", callback_data=BACK),
                InlineKeyboardButton("✖️ Отмена", callback_data=CANCEL),
            ],
        ]
    )


def _location_keyboard() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        [
            [KeyboardButton(SHARE_LOCATION_TEXT, request_location=True)],
            [KeyboardButton(DENY_LOCATION_TEXT)],
        ],
        one_time_keyboard=True,
        resize_keyboard=True,
    )


def _location_job_name(update: Update) -> str:
    return f"location_timeout:{update.effective_chat.id}:{update.effective_user.id}"


def _cancel_location_timeout(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if context.job_queue is None:
        return
    for job in context.job_queue.get_jobs_by_name(_location_job_name(update)):
        job.schedule_removal()


def _reset_selection(
    update: Update, context: ContextTypes.DEFAULT_TYPE, draft: StatusChangeDraft
) -> None:
    """Смена выбранного статуса выбрасывает его комментарий и геопозицию."""
    draft.selected = None
    draft.comment = None
    draft.location = None
    _cancel_location_timeout(update, context)


async def location_timeout(context: ContextTypes.DEFAULT_TYPE) -> None:
    """Срабатывает, если геопозиция не пришла за settings.location_timeout_seconds."""
    job = context.job
    draft: StatusChangeDraft | None = context.user_data.get(DRAFT_KEY)
    if draft is None or draft.location is not None:
        return
    logger.warning(
        f"Location capture timed out for user {job.user_id} on ticket {draft.ticket.id}."
    )
    await context.bot.send_message(
        chat_id=job.chat_id, text=GEOLOCATION_MESSAGES[GeolocationTimeoutError]
    )


async def _ask_location(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    draft: StatusChangeDraft = context.user_data[DRAFT_KEY]
    option = draft.selected_option
    await update.effective_message.reply_text(
        f"📍 Для статуса «{option.label}» нужна ваша текущая геопозиция.\n"
        f"Нажмите кнопку ниже в течение {settings.location_timeout_seconds} секунд.",
        reply_markup=_location_keyboard(),
    )
    if context.job_queue is not None:
        _cancel_location_timeout(update, context)
        context.job_queue.run_once(
            location_timeout,
            settings.location_timeout_seconds,
            chat_id=update.effective_chat.id,
            user_id=update.effective_user.id,
            name=_location_job_name(update),
        )
    return SHARE_LOCATION


async def _advance(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Переходит к следующему недостающему шагу: комментарий, геопозиция, подтверждение."""
    draft: StatusChangeDraft = context.user_data[DRAFT_KEY]
    option = draft.selected_option
    message = update.effective_message

    if option.requires_comment and not draft.comment:
        await message.reply_text(
            f"💬 <b>{option.comment_prompt}</b>\n"
            f"Напишите комментарий к статусу «{option.label}» одним сообщением.",
            parse_mode=ParseMode.HTML,
        )
        return ENTER_COMMENT

    if option.requires_location and draft.location is None:
        return await _ask_location(update, context)

    await message.reply_text(
        render_confirmation(draft),
        parse_mode=ParseMode.HTML,
        reply_markup=_confirm_keyboard(),
    )
    return CONFIRM


@require_role(ActorRole.ADMIN, ActorRole.SERVICE_PERSON, ActorRole.ZONE_USER)
async def status_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Начинает диалог: загружает заявку и показывает доступные переходы."""
    message = update.effective_message
    db_user = context.user_data["db_user"]

    if len(context.args or []) != 1:
        await message.reply_text(USAGE_MESSAGE)
        return ConversationHandler.END
    try:
        ticket_id = int(context.args[0].lstrip("#"))
    except ValueError:
        await message.reply_text("⚠️ Номер заявки должен быть числом.\n\n" + USAGE_MESSAGE)
        return ConversationHandler.END

    api: FieldServiceAPI = context.application.bot_data["api"]
    try:
        ticket = await api.get_ticket(ticket_id)
    except httpx.HTTPStatusError as e:
        if e.response.status_code == 404:
            await message.reply_text(f"⚠️ Заявка #{ticket_id} не найдена.")
        else:
            logger.error(f"Failed to load ticket {ticket_id}: {e}", exc_info=True)
            await message.reply_text("❌ Не удалось загрузить заявку. Попробуйте позже.")
        return ConversationHandler.END
    except httpx.HTTPError as e:
        logger.error(f"Failed to load ticket {ticket_id}: {e}", exc_info=True)
        await message.reply_text("❌ Не удалось загрузить заявку. Попробуйте позже.")
        return ConversationHandler.END

    try:
        options = get_available_transitions(ticket.status, db_user.role)
    except UnknownStatusError:
        logger.error(
            f"Ticket {ticket.id} has status '{ticket.status}' missing from the transition table."
        )
        await message.reply_text(
            f"⚠️ Статус заявки #{ticket.id} ({ticket.status}) не поддерживается ботом. "
            "Обратитесь к администратору."
        )
        return ConversationHandler.END

    draft = StatusChangeDraft(ticket=ticket, role=db_user.role, options=options)
    if not options:
        await message.reply_text(
            render_ticket_header(draft) + "\n\nДля вашей роли переходов из этого статуса нет.",
            parse_mode=ParseMode.HTML,
        )
        return ConversationHandler.END

    context.user_data[DRAFT_KEY] = draft
    logger.info(
        f"User {db_user.telegram_id} opened status change for ticket {ticket.id} "
        f"({ticket.status}, {len(options)} options)."
    )
    await message.reply_text(
        render_ticket_header(draft) + "\n\nВыберите новый статус:",
        parse_mode=ParseMode.HTML,
        reply_markup=build_options_keyboard(options),
    )
    return CHOOSE_STATUS


async def select_status(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Обрабатывает нажатие на кнопку статуса."""
    query = update.callback_query
    draft: StatusChangeDraft | None = context.user_data.get(DRAFT_KEY)
    if draft is None:
        await query.answer("Диалог устарел, начните заново: /status <номер>", show_alert=True)
        return ConversationHandler.END

    option = draft.option_for(query.data.removeprefix(SELECT_PREFIX))
    if option is None:
        await query.answer("⚠️ Этот статус недоступен.", show_alert=True)
        return CHOOSE_STATUS

    await query.answer()
    if draft.selected != option.status:
        _reset_selection(update, context, draft)
    draft.selected = option.status
    await query.edit_message_reply_markup(reply_markup=None)
    return await _advance(update, context)


async def receive_comment(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Принимает комментарий (обязательный на шаге ENTER_COMMENT или дополнительный на CONFIRM)."""
    message = update.effective_message
    draft: StatusChangeDraft = context.user_data[DRAFT_KEY]

    result = validate_submission(draft.selected, message.text, draft.location)
    if isinstance(result.error, (MissingCommentError, CommentTooLongError)):
        await message.reply_text(validation_message(result.error))
        return ENTER_COMMENT if draft.selected_option.requires_comment and not draft.comment else CONFIRM

    draft.comment = message.text.strip()
    return await _advance(update, context)


async def receive_location(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    message = update.effective_message
    draft: StatusChangeDraft = context.user_data[DRAFT_KEY]
    location_service: LocationService = context.application.bot_data["location_service"]

    try:
        draft.location = await location_service.capture_from_message(message)
    except GeolocationError as e:
        logger.warning(f"Location rejected for ticket {draft.ticket.id}: {e}")
        await message.reply_text(
            GEOLOCATION_MESSAGES[type(e)], reply_markup=_location_keyboard()
        )
        return SHARE_LOCATION

    _cancel_location_timeout(update, context)
    await message.reply_text(
        f"📍 Геопозиция получена: {draft.location.display_address}",
        reply_markup=ReplyKeyboardRemove(),
    )
    return await _advance(update, context)


async def location_denied(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    _cancel_location_timeout(update, context)
    logger.info(f"User {update.effective_user.id} declined to share location.")
    await update.effective_message.reply_text(
        GEOLOCATION_MESSAGES[PermissionDeniedError], reply_markup=_location_keyboard()
    )
    return SHARE_LOCATION


async def location_expected(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Пользователь прислал что-то кроме геопозиции."""
    await update.effective_message.reply_text(
        GEOLOCATION_MESSAGES[GeolocationUnavailableError],
        reply_markup=_location_keyboard(),
    )
    return SHARE_LOCATION


async def back_to_options(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()
    draft: StatusChangeDraft = context.user_data[DRAFT_KEY]
    _reset_selection(update, context, draft)
    await query.edit_message_text(
        render_ticket_header(draft) + "\n\nВыберите новый статус:",
        parse_mode=ParseMode.HTML,
        reply_markup=build_options_keyboard(draft.options),
    )
    return CHOOSE_STATUS


async def submit_status(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """
    Отправляет переход.

    Повторные нажатия во время отправки игнорируются. При отказе бэкенда
    черновик сохраняется, и кнопка остаётся доступной для повтора.
    """
    query = update.callback_query
    draft: StatusChangeDraft | None = context.user_data.get(DRAFT_KEY)
    if draft is None:
        await query.answer("Диалог устарел, начните заново: /status <номер>", show_alert=True)
        return ConversationHandler.END
    if draft.submitting:
        await query.answer("⏳ Статус уже отправляется...")
        return CONFIRM

    await query.answer()
    try:
        submission = ensure_submission(
            draft.selected,
            draft.comment,
            draft.location,
            current_status=draft.ticket.status,
            role=draft.role,
        )
    except TransitionValidationError as e:
        await query.message.reply_text(validation_message(e))
        if isinstance(e, TransitionNotAllowedError):
            _reset_selection(update, context, draft)
            await query.message.reply_text(
                render_ticket_header(draft) + "\n\nВыберите новый статус:",
                parse_mode=ParseMode.HTML,
                reply_markup=build_options_keyboard(draft.options),
            )
            return CHOOSE_STATUS
        return await _advance(update, context)

    orchestrator: TransitionOrchestrator = context.application.bot_data["orchestrator"]
    draft.submitting = True
    try:
        await query.edit_message_text(
            render_confirmation(draft) + "\n\n⏳ Обновляю статус...",
            parse_mode=ParseMode.HTML,
        )
        outcome = await orchestrator.submit(draft.ticket.id, submission)
    except TransitionSubmissionError as e:
        await query.edit_message_text(
            render_confirmation(draft) + f"\n\n❌ Не удалось обновить статус: {e.detail}",
            parse_mode=ParseMode.HTML,
            reply_markup=_confirm_keyboard(),
        )
        return CONFIRM
    finally:
        # Любой сбой до ответа бэкенда оставляет кнопку доступной для повтора
        draft.submitting = False

    option = draft.selected_option
    await query.edit_message_text(
        f"✅ Статус заявки #{draft.ticket.id} изменён на «{option.label}».",
        parse_mode=ParseMode.HTML,
    )
    await NotificationService.send_status_changed_notification(
        bot=context.bot,
        chat_id=settings.tech_chat_id,
        ticket=draft.ticket,
        outcome=outcome,
        actor=context.user_data["db_user"],
        comment=submission.comment,
        location=submission.location,
    )
    del context.user_data[DRAFT_KEY]
    return ConversationHandler.END


async def cancel(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Отменяет диалог без каких-либо изменений в бэкенде."""
    context.user_data.pop(DRAFT_KEY, None)
    _cancel_location_timeout(update, context)

    if update.callback_query:
        await update.callback_query.answer()
        await update.callback_query.edit_message_text(CANCELLED_MESSAGE)
    else:
        await update.effective_message.reply_text(
            CANCELLED_MESSAGE, reply_markup=ReplyKeyboardRemove()
        )
    return ConversationHandler.END


async def conversation_timeout(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Диалог брошен: черновик выбрасывается."""
    context.user_data.pop(DRAFT_KEY, None)
    if update and update.effective_message:
        await update.effective_message.reply_text(
            "⌛️ Диалог смены статуса закрыт по неактивности.",
            reply_markup=ReplyKeyboardRemove(),
        )
