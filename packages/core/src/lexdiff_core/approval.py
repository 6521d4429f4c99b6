"""Quorum approval, independent of ReviewSession.

ReviewSession.approve() flips a session to APPROVED on the first approver.
Callers who need several approvers to sign off compose an ApprovalWorkflow
next to the session and only call session.approve() once it is complete.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from lexdiff_core.review import ReviewSession

logger = logging.getLogger(__name__)


class ApprovalError(Exception):
    """Base class for approval workflow failures."""


class NotARequiredApproverError(ApprovalError):
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User {user_id!r} is not a required approver")


class ApprovalWorkflow:
    def __init__(self, required_approvers: Iterable[str], min_approvals: int):
        # Ordered and de-duplicated so pending_approvers() follows declaration order.
        self.required_approvers: tuple[str, ...] = tuple(dict.fromkeys(required_approvers))
        self.min_approvals = min_approvals
        self.approved_by: set[str] = set()

    @classmethod
    def for_session(cls, session: ReviewSession, min_approvals: int | None = None) -> ApprovalWorkflow:
        """Build a workflow from the session's active approvers.

        min_approvals defaults to every approver. The workflow is not attached
        to the session; the caller decides when to call session.approve().
        """
        from lexdiff_core.review import ParticipantRole

        approvers = [p.user_id for p in session.participants if p.role == ParticipantRole.APPROVER and p.is_active]
        workflow = cls(approvers, min_approvals=0)
        workflow.min_approvals = len(workflow.required_approvers) if min_approvals is None else min_approvals
        return workflow

    def approve(self, user_id: str) -> None:
        """Record an approval. Approving twice is a no-op."""
        if user_id not in self.required_approvers:
            raise NotARequiredApproverError(user_id)
        if user_id in self.approved_by:
            logger.debug("%s already approved; ignoring", user_id)
            return
        self.approved_by.add(user_id)

    def is_complete(self) -> bool:
        return len(self.approved_by) >= self.min_approvals

    def pending_approvers(self) -> list[str]:
        return [u for u in self.required_approvers if u not in self.approved_by]
