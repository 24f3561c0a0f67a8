"""
Модели выбора статуса и проверенной заявки на переход.
"""

from pydantic import BaseModel, ConfigDict, model_validator

from fieldservice.core.exceptions import TransitionValidationError
from fieldservice.models.location import LocationCapture
from fieldservice.models.status import StatusCategory, TicketStatus
from fieldservice.models.ticket import Ticket
from fieldservice.models.user import ActorRole


class StatusOption(BaseModel):
    """Один доступный переход с данными для отображения кнопки."""

    model_config = ConfigDict(frozen=True)

    status: TicketStatus
    label: str
    short_label: str
    category: StatusCategory
    description: str
    is_destructive: bool
    requires_comment: bool
    requires_location: bool
    comment_prompt: str


class ValidSubmission(BaseModel):
    status: TicketStatus
    comment: str | None = None
    location: LocationCapture | None = None

    def to_payload(self) -> dict:
        """Тело PATCH /tickets/{id}/status; отсутствующие поля не передаются вовсе."""
        payload: dict = {"status": self.status.value}
        if self.comment:
            payload["comments"] = self.comment
        if self.location is not None:
            payload["location"] = self.location.to_payload()
        return payload


class SubmissionResult(BaseModel):
    """
    Результат проверки перехода: либо submission, либо error.

    Диалог использует `ok` для блокировки кнопки отправки,
    а при отправке вызывает `unwrap()`, который поднимет сохранённую ошибку.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    submission: ValidSubmission | None = None
    error: TransitionValidationError | None = None

    @model_validator(mode="after")
    def _exactly_one(self):
        if (self.submission is None) == (self.error is None):
            raise ValueError("SubmissionResult needs exactly one of submission or error")
        return self

    @classmethod
    def success(cls, submission: ValidSubmission) -> "SubmissionResult":
        return cls(submission=submission)

    @classmethod
    def failure(cls, error: TransitionValidationError) -> "SubmissionResult":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> ValidSubmission:
        if self.error is not None:
            raise self.error
        return self.submission


class StatusChangeDraft(BaseModel):
    """
    Локальное состояние диалога смены статуса одного пользователя.

    Живёт в context.user_data и выбрасывается при отмене или после отправки.
    """

    ticket: Ticket
    role: ActorRole
    options: list[StatusOption]
    selected: TicketStatus | None = None
    comment: str | None = None
    location: LocationCapture | None = None
    submitting: bool = False

    def option_for(self, status: TicketStatus | str) -> StatusOption | None:
        for option in self.options:
            if option.status == status:
                return option
        return None

    @property
    def selected_option(self) -> StatusOption | None:
        if self.selected is None:
            return None
        return self.option_for(self.selected)
