"""
Иерархия ошибок смены статусов заявок.

Ошибки валидации исправляются пользователем и показываются в диалоге,
ошибки геолокации оставляют шаг захвата местоположения открытым,
ошибки отправки приходят от бэкенда.
"""


class FieldServiceError(Exception):
    """Базовая ошибка приложения."""


class UnknownStatusError(FieldServiceError, ValueError):
    """Статус отсутствует в таблице переходов (ошибка данных, а не пользователя)."""

    def __init__(self, status: object):
        self.status = status
        super().__init__(f"Unknown ticket status: {status!r}")


class UnknownRoleError(FieldServiceError, ValueError):
    """Роль не входит в набор ActorRole (ошибка данных справочника или вызова)."""

    def __init__(self, role: object):
        self.role = role
        super().__init__(f"Unknown actor role: {role!r}")


# --- Ошибки валидации ---


class TransitionValidationError(FieldServiceError):
    """Переход нельзя отправить, пока пользователь не исправит ввод."""

    def __init__(self, status: str, message: str):
        self.status = status
        super().__init__(message)


class MissingCommentError(TransitionValidationError):
    def __init__(self, status: str):
        super().__init__(status, f"A comment is required to move a ticket to {status}")


class CommentTooLongError(TransitionValidationError):
    def __init__(self, status: str, length: int, limit: int):
        self.length = length
        self.limit = limit
        super().__init__(
            status, f"Comment is {length} characters long, the limit is {limit}"
        )


class MissingLocationError(TransitionValidationError):
    def __init__(self, status: str):
        super().__init__(
            status, f"Current location is required to move a ticket to {status}"
        )


class TransitionNotAllowedError(TransitionValidationError):
    def __init__(self, current_status: str, status: str, role: str | None = None):
        self.current_status = current_status
        self.role = role
        detail = f"Transition not allowed: {current_status} -> {status}"
        if role:
            detail += f" for role {role}"
        super().__init__(status, detail)


# --- Ошибки геолокации ---


class GeolocationError(FieldServiceError):
    """Не удалось получить местоположение пользователя."""


class GeolocationUnavailableError(GeolocationError):
    """Клиент не прислал пригодную геопозицию (нет, переслана или устарела)."""


class GeolocationTimeoutError(GeolocationError):
    """Пользователь не отправил геопозицию за отведённое время."""


class PermissionDeniedError(GeolocationError):
    """Пользователь отказался делиться местоположением."""


# --- Ошибки бэкенда ---


class TransitionSubmissionError(FieldServiceError):
    """Бэкенд отклонил смену статуса или запрос не дошёл до него."""

    def __init__(self, detail: str, status_code: int | None = None):
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail)
