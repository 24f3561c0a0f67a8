"""
Движок переходов статусов заявок.

Чистая логика без ввода-вывода: по текущему статусу и роли считает
доступные переходы, проверяет комментарий и геопозицию перед отправкой
и подсказывает автоматический следующий переход.
Состоянием заявки владеет бэкенд, движок вызывается заново при каждом открытии диалога.
"""

import logging

from fieldservice.core.exceptions import (
    CommentTooLongError,
    MissingCommentError,
    MissingLocationError,
    TransitionNotAllowedError,
    TransitionValidationError,
    UnknownRoleError,
    UnknownStatusError,
)
from fieldservice.models.location import LocationCapture
from fieldservice.models.status import (
    ONSITE_LOCATION_STATUSES,
    STATUS_METADATA,
    TRANSITIONS,
    StatusMetadata,
    TicketStatus,
    fallback_metadata,
)
from fieldservice.models.submission import StatusOption, SubmissionResult, ValidSubmission
from fieldservice.models.user import ActorRole

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 500
FOLLOW_UP_COMMENT = "Automatically transitioned to in progress after reaching site"

# Выбор статуса-ключа сразу влечёт переход в статус-значение
FOLLOW_UPS: dict[TicketStatus, TicketStatus] = {
    TicketStatus.ONSITE_VISIT_REACHED: TicketStatus.ONSITE_VISIT_IN_PROGRESS,
}

# Статусы, которые может выбрать только перечисленный круг ролей
ROLE_RESTRICTED: dict[TicketStatus, frozenset[ActorRole]] = {
    TicketStatus.CLOSED: frozenset({ActorRole.ADMIN}),
}


def _coerce_status(status: "TicketStatus | str") -> TicketStatus:
    try:
        return TicketStatus(status)
    except ValueError:
        raise UnknownStatusError(status) from None


def _coerce_role(role: "ActorRole | str | None") -> ActorRole | None:
    if role is None:
        return None
    try:
        return ActorRole.parse(role)
    except ValueError:
        raise UnknownRoleError(role) from None


def describe_status(status: "TicketStatus | str") -> StatusMetadata:
    """Описание статуса; для неизвестных строк выводится из имени, категория Other."""
    try:
        return STATUS_METADATA[TicketStatus(status)]
    except ValueError:
        return fallback_metadata(str(status))


def is_transition_allowed_for_role(
    status: "TicketStatus | str", role: "ActorRole | str | None"
) -> bool:
    """
    Ролевая политика для целевого статуса.

    Без роли действует политика по умолчанию: ограниченные статусы скрыты.
    """
    allowed_roles = ROLE_RESTRICTED.get(_coerce_status(status))
    if allowed_roles is None:
        return True
    return _coerce_role(role) in allowed_roles


def requires_location(status: "TicketStatus | str") -> bool:
    try:
        return TicketStatus(status) in ONSITE_LOCATION_STATUSES
    except ValueError:
        return False


def plan_follow_up(selected_status: "TicketStatus | str") -> TicketStatus | None:
    """Статус, в который заявка переводится автоматически после выбранного, или None."""
    try:
        return FOLLOW_UPS.get(TicketStatus(selected_status))
    except ValueError:
        return None


def _to_option(status: TicketStatus) -> StatusOption:
    meta = describe_status(status)
    return StatusOption(
        status=status,
        label=meta.label,
        short_label=meta.short_label,
        category=meta.category,
        description=meta.description,
        is_destructive=meta.is_destructive,
        requires_comment=meta.requires_comment,
        requires_location=requires_location(status),
        comment_prompt=meta.comment_prompt,
    )


def get_available_transitions(
    current_status: "TicketStatus | str", role: "ActorRole | str | None" = None
) -> list[StatusOption]:
    """
    Доступные переходы из текущего статуса для роли.

    Порядок совпадает с порядком в таблице переходов (логическая группировка шагов).

    Raises:
        UnknownStatusError: текущий статус отсутствует в таблице.
    """
    current = _coerce_status(current_status)
    actor = _coerce_role(role)
    options = [
        _to_option(status)
        for status in TRANSITIONS[current]
        if is_transition_allowed_for_role(status, actor)
    ]
    logger.debug(
        f"{len(options)} transitions available from {current.value} for role {actor.value if actor else None}"
    )
    return options


def can_transition(
    current_status: "TicketStatus | str",
    target_status: "TicketStatus | str",
    role: "ActorRole | str | None" = None,
) -> bool:
    try:
        target = TicketStatus(target_status)
    except ValueError:
        return False
    return any(
        option.status == target
        for option in get_available_transitions(current_status, role)
    )


def _check(
    selected_status: "TicketStatus | str",
    comment: str | None,
    location: LocationCapture | None,
    current_status: "TicketStatus | str | None",
    role: "ActorRole | str | None",
) -> ValidSubmission:
    status = _coerce_status(selected_status)
    meta = STATUS_METADATA[status]
    text = (comment or "").strip()

    if current_status is not None and not can_transition(current_status, status, role):
        current = _coerce_status(current_status)
        actor = _coerce_role(role)
        raise TransitionNotAllowedError(
            current.value, status.value, actor.value if actor else None
        )
    if meta.requires_comment and not text:
        raise MissingCommentError(status.value)
    if len(text) > MAX_COMMENT_LENGTH:
        raise CommentTooLongError(status.value, len(text), MAX_COMMENT_LENGTH)
    if requires_location(status) and location is None:
        raise MissingLocationError(status.value)

    return ValidSubmission(status=status, comment=text or None, location=location)


def validate_submission(
    selected_status: "TicketStatus | str",
    comment: str | None,
    location: LocationCapture | None,
    *,
    current_status: "TicketStatus | str | None" = None,
    role: "ActorRole | str | None" = None,
) -> SubmissionResult:
    """
    Проверяет переход без исключений: ошибка ввода возвращается в результате.

    Если передан current_status, дополнительно проверяется, что переход
    допустим из этого статуса для этой роли.
    """
    try:
        return SubmissionResult.success(
            _check(selected_status, comment, location, current_status, role)
        )
    except TransitionValidationError as e:
        return SubmissionResult.failure(e)


def ensure_submission(
    selected_status: "TicketStatus | str",
    comment: str | None,
    location: LocationCapture | None,
    *,
    current_status: "TicketStatus | str | None" = None,
    role: "ActorRole | str | None" = None,
) -> ValidSubmission:
    """Та же проверка, что validate_submission, но ошибка поднимается. Вызывается при отправке."""
    return _check(selected_status, comment, location, current_status, role)
