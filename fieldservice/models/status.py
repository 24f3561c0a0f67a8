"""
Статусы заявок, таблица допустимых переходов и описания статусов.

Таблицы неизменяемые и строятся один раз при импорте модуля.
Порядок направлений в TRANSITIONS задаёт порядок кнопок в диалоге.
"""

from enum import Enum
from types import MappingProxyType
from typing import Mapping

from pydantic import BaseModel, ConfigDict


class TicketStatus(str, Enum):
    OPEN = "OPEN"
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    IN_PROCESS = "IN_PROCESS"  # устаревший синоним IN_PROGRESS
    WAITING_CUSTOMER = "WAITING_CUSTOMER"
    ONSITE_VISIT = "ONSITE_VISIT"
    ONSITE_VISIT_PLANNED = "ONSITE_VISIT_PLANNED"
    ONSITE_VISIT_STARTED = "ONSITE_VISIT_STARTED"
    ONSITE_VISIT_REACHED = "ONSITE_VISIT_REACHED"
    ONSITE_VISIT_IN_PROGRESS = "ONSITE_VISIT_IN_PROGRESS"
    ONSITE_VISIT_RESOLVED = "ONSITE_VISIT_RESOLVED"
    ONSITE_VISIT_PENDING = "ONSITE_VISIT_PENDING"
    ONSITE_VISIT_COMPLETED = "ONSITE_VISIT_COMPLETED"
    PO_NEEDED = "PO_NEEDED"
    PO_REACHED = "PO_REACHED"
    PO_RECEIVED = "PO_RECEIVED"
    SPARE_PARTS_NEEDED = "SPARE_PARTS_NEEDED"
    SPARE_PARTS_BOOKED = "SPARE_PARTS_BOOKED"
    SPARE_PARTS_DELIVERED = "SPARE_PARTS_DELIVERED"
    CLOSED_PENDING = "CLOSED_PENDING"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"
    REOPENED = "REOPENED"
    ON_HOLD = "ON_HOLD"
    ESCALATED = "ESCALATED"
    RESOLVED = "RESOLVED"
    PENDING = "PENDING"


class StatusCategory(str, Enum):
    BASIC = "Basic"
    ONSITE = "Onsite"
    PURCHASE = "Purchase"
    PARTS = "Parts"
    COMPLETION = "Completion"
    SPECIAL = "Special"
    OTHER = "Other"


class StatusMetadata(BaseModel):
    """Описание статуса для отображения пользователю."""

    model_config = ConfigDict(frozen=True)

    label: str
    short_label: str
    category: StatusCategory
    description: str
    is_destructive: bool = False
    requires_comment: bool = False
    comment_prompt: str = "Additional Notes"


_S = TicketStatus

LEGACY_ALIASES: Mapping[TicketStatus, TicketStatus] = MappingProxyType(
    {_S.IN_PROCESS: _S.IN_PROGRESS}
)

_IN_PROGRESS_EXITS = (
    _S.WAITING_CUSTOMER,
    _S.ONSITE_VISIT,
    _S.PO_NEEDED,
    _S.SPARE_PARTS_NEEDED,
    _S.CLOSED_PENDING,
    _S.RESOLVED,
    _S.ON_HOLD,
    _S.ESCALATED,
    _S.CANCELLED,
    _S.PENDING,
)

TRANSITIONS: Mapping[TicketStatus, tuple[TicketStatus, ...]] = MappingProxyType(
    {
        # Базовый поток
        _S.OPEN: (_S.ASSIGNED, _S.CANCELLED, _S.PENDING),
        _S.ASSIGNED: (_S.IN_PROGRESS, _S.ONSITE_VISIT, _S.CANCELLED, _S.PENDING),
        _S.IN_PROGRESS: _IN_PROGRESS_EXITS,
        _S.IN_PROCESS: _IN_PROGRESS_EXITS,
        _S.WAITING_CUSTOMER: (
            _S.IN_PROGRESS,
            _S.ONSITE_VISIT,
            _S.CLOSED_PENDING,
            _S.CANCELLED,
            _S.PENDING,
        ),
        # Выезд к клиенту
        _S.ONSITE_VISIT: (
            _S.ONSITE_VISIT_PLANNED,
            _S.ONSITE_VISIT_STARTED,
            _S.IN_PROGRESS,
            _S.CANCELLED,
            _S.PENDING,
        ),
        _S.ONSITE_VISIT_PLANNED: (
            _S.ONSITE_VISIT_STARTED,
            _S.IN_PROGRESS,
            _S.PO_NEEDED,
            _S.SPARE_PARTS_NEEDED,
            _S.CLOSED_PENDING,
            _S.CANCELLED,
            _S.PENDING,
        ),
        _S.ONSITE_VISIT_STARTED: (
            _S.ONSITE_VISIT_REACHED,
            _S.ONSITE_VISIT_PENDING,
            _S.CANCELLED,
        ),
        _S.ONSITE_VISIT_REACHED: (_S.ONSITE_VISIT_IN_PROGRESS, _S.ONSITE_VISIT_PENDING),
        _S.ONSITE_VISIT_IN_PROGRESS: (
            _S.ONSITE_VISIT_RESOLVED,
            _S.ONSITE_VISIT_PENDING,
            _S.PO_NEEDED,
            _S.SPARE_PARTS_NEEDED,
            _S.ESCALATED,
        ),
        _S.ONSITE_VISIT_RESOLVED: (
            _S.ONSITE_VISIT_COMPLETED,
            _S.CLOSED_PENDING,
            _S.RESOLVED,
        ),
        _S.ONSITE_VISIT_PENDING: (
            _S.ONSITE_VISIT_STARTED,
            _S.ONSITE_VISIT_PLANNED,
            _S.IN_PROGRESS,
            _S.CANCELLED,
        ),
        _S.ONSITE_VISIT_COMPLETED: (
            _S.CLOSED_PENDING,
            _S.RESOLVED,
            _S.IN_PROGRESS,
            _S.PENDING,
        ),
        # Заказ на закупку
        _S.PO_NEEDED: (_S.PO_REACHED, _S.PO_RECEIVED, _S.CANCELLED, _S.PENDING),
        _S.PO_REACHED: (_S.PO_RECEIVED, _S.CANCELLED, _S.PENDING),
        _S.PO_RECEIVED: (
            _S.IN_PROGRESS,
            _S.ONSITE_VISIT,
            _S.SPARE_PARTS_NEEDED,
            _S.CANCELLED,
            _S.PENDING,
        ),
        # Запчасти
        _S.SPARE_PARTS_NEEDED: (_S.SPARE_PARTS_BOOKED, _S.CANCELLED, _S.PENDING),
        _S.SPARE_PARTS_BOOKED: (_S.SPARE_PARTS_DELIVERED, _S.CANCELLED, _S.PENDING),
        _S.SPARE_PARTS_DELIVERED: (
            _S.IN_PROGRESS,
            _S.ONSITE_VISIT,
            _S.CANCELLED,
            _S.PENDING,
        ),
        # Закрытие
        _S.CLOSED_PENDING: (_S.CLOSED, _S.REOPENED),
        _S.CLOSED: (_S.REOPENED,),
        _S.CANCELLED: (_S.REOPENED,),
        # Особые состояния
        _S.REOPENED: (_S.ASSIGNED, _S.IN_PROGRESS, _S.PENDING),
        _S.ON_HOLD: (_S.IN_PROGRESS, _S.CANCELLED, _S.PENDING),
        _S.ESCALATED: (_S.IN_PROGRESS, _S.ON_HOLD, _S.PENDING),
        _S.RESOLVED: (_S.CLOSED, _S.REOPENED, _S.PENDING),
        _S.PENDING: (_S.OPEN, _S.ASSIGNED, _S.IN_PROGRESS, _S.CANCELLED),
    }
)

ONSITE_LOCATION_STATUSES: frozenset[TicketStatus] = frozenset(
    {
        _S.ONSITE_VISIT_STARTED,
        _S.ONSITE_VISIT_REACHED,
        _S.ONSITE_VISIT_IN_PROGRESS,
        _S.ONSITE_VISIT_RESOLVED,
        _S.ONSITE_VISIT_COMPLETED,
    }
)


def _meta(
    label: str,
    short_label: str,
    category: StatusCategory,
    description: str,
    *,
    destructive: bool = False,
    comment: bool = False,
    prompt: str = "Additional Notes",
) -> StatusMetadata:
    return StatusMetadata(
        label=label,
        short_label=short_label,
        category=category,
        description=description,
        is_destructive=destructive,
        requires_comment=comment,
        comment_prompt=prompt,
    )


_C = StatusCategory

STATUS_METADATA: Mapping[TicketStatus, StatusMetadata] = MappingProxyType(
    {
        _S.OPEN: _meta("Open", "Open", _C.BASIC, "Ticket has been raised and awaits assignment"),
        _S.ASSIGNED: _meta("Assigned", "Assigned", _C.BASIC, "A service person has been assigned"),
        _S.IN_PROGRESS: _meta("In Progress", "Working", _C.BASIC, "Work on the ticket is ongoing"),
        _S.IN_PROCESS: _meta("In Process", "Working", _C.BASIC, "Work on the ticket is ongoing"),
        _S.WAITING_CUSTOMER: _meta(
            "Waiting for Customer", "Customer", _C.BASIC, "Waiting for customer response or availability"
        ),
        _S.PENDING: _meta("Pending", "Pending", _C.BASIC, "Ticket is parked until further action"),
        _S.ONSITE_VISIT: _meta("Onsite Visit", "Onsite", _C.ONSITE, "An onsite visit is required"),
        _S.ONSITE_VISIT_PLANNED: _meta(
            "Onsite Visit Planned", "Planned", _C.ONSITE, "Onsite visit has been scheduled",
            comment=True, prompt="Visit Plan",
        ),
        _S.ONSITE_VISIT_STARTED: _meta(
            "Onsite Visit Started", "En Route", _C.ONSITE, "Traveling to customer location"
        ),
        _S.ONSITE_VISIT_REACHED: _meta(
            "Onsite Visit Reached", "On Site", _C.ONSITE, "Reached customer location"
        ),
        _S.ONSITE_VISIT_IN_PROGRESS: _meta(
            "Onsite Visit In Progress", "Working Onsite", _C.ONSITE, "Currently working at customer site"
        ),
        _S.ONSITE_VISIT_RESOLVED: _meta(
            "Onsite Visit Resolved", "Onsite Done", _C.ONSITE, "Work completed at customer site"
        ),
        _S.ONSITE_VISIT_PENDING: _meta(
            "Onsite Visit Pending", "Visit Pending", _C.ONSITE, "Onsite work paused, another visit is needed"
        ),
        _S.ONSITE_VISIT_COMPLETED: _meta(
            "Onsite Visit Completed", "Visit Done", _C.ONSITE, "Left the customer site after the visit"
        ),
        _S.PO_NEEDED: _meta("PO Needed", "PO Needed", _C.PURCHASE, "A purchase order is required"),
        _S.PO_REACHED: _meta("PO Reached", "PO Reached", _C.PURCHASE, "Purchase order reached the customer"),
        _S.PO_RECEIVED: _meta("PO Received", "PO Received", _C.PURCHASE, "Purchase order has been received"),
        _S.SPARE_PARTS_NEEDED: _meta(
            "Spare Parts Needed", "Parts Needed", _C.PARTS, "Spare parts are required"
        ),
        _S.SPARE_PARTS_BOOKED: _meta(
            "Spare Parts Booked", "Parts Booked", _C.PARTS, "Spare parts have been ordered"
        ),
        _S.SPARE_PARTS_DELIVERED: _meta(
            "Spare Parts Delivered", "Parts Delivered", _C.PARTS, "Spare parts have arrived"
        ),
        _S.CLOSED_PENDING: _meta(
            "Pending Closure", "Closing", _C.COMPLETION, "Work is done, closure awaits approval",
            comment=True, prompt="Closure Notes",
        ),
        _S.CLOSED: _meta(
            "Closed", "Closed", _C.COMPLETION, "Ticket is closed",
            destructive=True, comment=True, prompt="Resolution Details",
        ),
        _S.RESOLVED: _meta(
            "Resolved", "Resolved", _C.COMPLETION, "Issue has been fully resolved",
            comment=True, prompt="Resolution Summary",
        ),
        _S.CANCELLED: _meta(
            "Cancelled", "Cancelled", _C.SPECIAL, "Ticket has been cancelled",
            destructive=True, comment=True, prompt="Cancellation Reason",
        ),
        _S.REOPENED: _meta("Reopened", "Reopened", _C.SPECIAL, "Ticket has been reopened"),
        _S.ON_HOLD: _meta(
            "On Hold", "On Hold", _C.SPECIAL, "Work is temporarily suspended",
            comment=True, prompt="Hold Reason",
        ),
        _S.ESCALATED: _meta(
            "Escalated", "Escalated", _C.SPECIAL, "Ticket has been escalated",
            destructive=True, comment=True, prompt="Escalation Details",
        ),
    }
)


def derive_label(status: str) -> str:
    """ONSITE_VISIT_DONE -> 'Onsite Visit Done'."""
    return " ".join(part.capitalize() for part in status.split("_") if part)


def fallback_metadata(status: str) -> StatusMetadata:
    """Описание для статуса, которого нет в таблице (например, новый статус бэкенда)."""
    label = derive_label(status)
    return StatusMetadata(
        label=label,
        short_label=label,
        category=StatusCategory.OTHER,
        description=label,
    )
