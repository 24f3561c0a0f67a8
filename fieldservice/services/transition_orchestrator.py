"""
Последовательная отправка перехода статуса и автоматического следующего шага.

Второй переход отправляется только после успешного ответа на первый.
Его сбой пишется в лог и в результат, но не отменяет уже принятый первый переход.
"""

import asyncio
import logging

from pydantic import BaseModel, ConfigDict

from fieldservice.core.config import settings
from fieldservice.core.exceptions import TransitionSubmissionError
from fieldservice.models.status import TicketStatus
from fieldservice.models.submission import ValidSubmission
from fieldservice.services.api_client import FieldServiceAPI
from fieldservice.services.transition_engine import FOLLOW_UP_COMMENT, plan_follow_up

logger = logging.getLogger(__name__)


class TransitionOutcome(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    ticket_id: int
    status: TicketStatus
    follow_up_status: TicketStatus | None = None
    follow_up_succeeded: bool = False
    follow_up_error: TransitionSubmissionError | None = None

    @property
    def final_status(self) -> TicketStatus:
        if self.follow_up_succeeded and self.follow_up_status is not None:
            return self.follow_up_status
        return self.status


class TransitionOrchestrator:
    def __init__(self, api: FieldServiceAPI, settle_delay: float | None = None):
        self.api = api
        self.settle_delay = (
            settle_delay if settle_delay is not None else settings.follow_up_delay_seconds
        )

    async def submit(
        self, ticket_id: int, submission: ValidSubmission
    ) -> TransitionOutcome:
        """
        Отправляет переход и, если нужно, автоматический следующий.

        Raises:
            TransitionSubmissionError: только при сбое основного перехода.
        """
        await self.api.update_ticket_status(ticket_id, submission)
        outcome = TransitionOutcome(ticket_id=ticket_id, status=submission.status)

        follow_up = plan_follow_up(submission.status)
        if follow_up is None:
            return outcome

        outcome.follow_up_status = follow_up
        await asyncio.sleep(self.settle_delay)

        chained = ValidSubmission(
            status=follow_up,
            comment=FOLLOW_UP_COMMENT,
            location=submission.location,
        )
        try:
            await self.api.update_ticket_status(ticket_id, chained)
            outcome.follow_up_succeeded = True
            logger.info(
                f"Ticket {ticket_id} auto-transitioned {submission.status.value} -> {follow_up.value}."
            )
        except TransitionSubmissionError as e:
            outcome.follow_up_error = e
            logger.error(
                f"Auto-transition of ticket {ticket_id} to {follow_up.value} failed: {e}",
                exc_info=True,
            )
        return outcome
