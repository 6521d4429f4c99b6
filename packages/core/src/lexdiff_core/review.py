"""Stakeholder review of a statute diff.

A ReviewSession wraps exactly one StatuteDiff and records everything people
do with it. Participants, comments, replies and annotations are append-only:
nothing is ever deleted, participants are deactivated and comments are
resolved instead, so the session doubles as an audit trail.

State machine:

    IN_PROGRESS ──approve──────────► APPROVED   (terminal)
        │  ▲    ──reject───────────► REJECTED   (terminal)
        │  │    ──cancel───────────► CANCELLED  (terminal)
        ▼  │
    CHANGES_REQUESTED (resumable: may still be approved, rejected, cancelled)

approve() needs a single active APPROVER. Quorum approval is a separate,
explicitly composed object (see lexdiff_core.approval.ApprovalWorkflow).
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Callable, Sequence

from lexdiff_core.notifications import NotificationType

if TYPE_CHECKING:
    from lexdiff_core.diff import StatuteDiff
    from lexdiff_core.notifications import NotificationSystem

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ReviewState(str, Enum):
    IN_PROGRESS = "in_progress"
    APPROVED = "approved"
    CHANGES_REQUESTED = "changes_requested"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({ReviewState.APPROVED, ReviewState.REJECTED, ReviewState.CANCELLED})


class ParticipantRole(str, Enum):
    REVIEWER = "reviewer"
    APPROVER = "approver"
    AUTHOR = "author"
    MODERATOR = "moderator"


class AnnotationType(str, Enum):
    SUGGESTION = "suggestion"
    NOTE = "note"
    QUESTION = "question"
    ISSUE = "issue"


class ReviewError(Exception):
    """Base class for review workflow failures."""


class NotAuthorizedError(ReviewError):
    def __init__(self, user_id: str, action: str):
        self.user_id = user_id
        self.action = action
        super().__init__(f"User {user_id!r} is not allowed to {action}")


class NotAnApproverError(NotAuthorizedError):
    def __init__(self, user_id: str):
        super().__init__(user_id, "approve this review")


class InvalidTransitionError(ReviewError):
    def __init__(self, current: ReviewState, requested: ReviewState):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move a {current.value} review to {requested.value}")


class CommentNotFoundError(ReviewError):
    def __init__(self, comment_id: str):
        self.comment_id = comment_id
        super().__init__(f"No comment with id {comment_id!r}")


@dataclass(frozen=True)
class Participant:
    user_id: str
    display_name: str
    role: ParticipantRole
    joined_at: datetime = field(default_factory=_now)
    is_active: bool = True


@dataclass(frozen=True)
class Comment:
    """A comment, optionally anchored to a change by its rendered description.

    Records are immutable; the session swaps in an updated copy when a comment
    is resolved or gains a reply, so earlier references keep their old state.
    """

    author_id: str
    content: str
    target: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_now)
    resolved: bool = False
    replies: tuple[Comment, ...] = ()


@dataclass(frozen=True)
class Annotation:
    author_id: str
    target: str
    text: str
    annotation_type: AnnotationType
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_now)


class ReviewSession:
    """Review of one StatuteDiff. All operations are serialized by an internal lock."""

    def __init__(
        self,
        diff: StatuteDiff,
        author_id: str,
        author_name: str | None = None,
        notifier: NotificationSystem | None = None,
    ):
        self.id = str(uuid.uuid4())
        self._diff = diff
        self._notifier = notifier
        self._lock = threading.RLock()
        self._participants: list[Participant] = [
            Participant(user_id=author_id, display_name=author_name or author_id, role=ParticipantRole.AUTHOR)
        ]
        self._comments: list[Comment] = []
        self._annotations: list[Annotation] = []
        self._state = ReviewState.IN_PROGRESS
        self._created_at = _now()
        self.updated_at = self._created_at
        logger.info("Opened review %s for statute %s (author: %s)", self.id, diff.statute_id, author_id)

    @property
    def diff(self) -> StatuteDiff:
        return self._diff

    @property
    def state(self) -> ReviewState:
        return self._state

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def author_id(self) -> str:
        return self._participants[0].user_id

    @property
    def participants(self) -> tuple[Participant, ...]:
        with self._lock:
            return tuple(self._participants)

    @property
    def comments(self) -> tuple[Comment, ...]:
        with self._lock:
            return tuple(self._comments)

    @property
    def annotations(self) -> tuple[Annotation, ...]:
        with self._lock:
            return tuple(self._annotations)

    def has_role(self, user_id: str, role: ParticipantRole) -> bool:
        """True if an active participant entry for user_id holds role."""
        with self._lock:
            return any(p.user_id == user_id and p.role == role and p.is_active for p in self._participants)

    def unresolved_comments(self) -> list[Comment]:
        with self._lock:
            return [c for c in self._comments if not c.resolved]

    def add_participant(self, user_id: str, display_name: str, role: ParticipantRole) -> Participant:
        """Add a participant. The same user may be added again under another role."""
        participant = Participant(user_id=user_id, display_name=display_name, role=role)
        with self._lock:
            self._participants.append(participant)
            self._touch()
        self._notify(
            [user_id],
            NotificationType.REVIEW_REQUESTED,
            f"You were added as {role.value} to the review of statute {self._diff.statute_id}",
        )
        return participant

    def deactivate_participant(self, user_id: str) -> int:
        """Mark every entry for user_id inactive; return how many entries changed."""
        count = 0
        with self._lock:
            for i, participant in enumerate(self._participants):
                if participant.user_id == user_id and participant.is_active:
                    self._participants[i] = replace(participant, is_active=False)
                    count += 1
            if count:
                self._touch()
        return count

    def add_comment(self, user_id: str, content: str, target: str | None = None) -> Comment:
        with self._lock:
            comment = self._append_comment(user_id, content, target)
        self._notify_others(user_id, NotificationType.COMMENT_ADDED, f"{user_id} commented: {content}")
        return comment

    def reply_to_comment(self, comment_id: str, user_id: str, content: str) -> Comment:
        """Reply to a comment or to a reply at any depth of its thread."""
        with self._lock:
            parent = self._find_comment(comment_id)
            reply = Comment(author_id=user_id, content=content, target=parent.target)
            self._update_comment(comment_id, lambda c: replace(c, replies=c.replies + (reply,)))
        self._notify_others(user_id, NotificationType.COMMENT_ADDED, f"{user_id} replied: {content}")
        return reply

    def resolve_comment(self, comment_id: str) -> None:
        with self._lock:
            self._update_comment(comment_id, lambda c: replace(c, resolved=True))

    def add_annotation(self, user_id: str, target: str, text: str, annotation_type: AnnotationType) -> Annotation:
        annotation = Annotation(author_id=user_id, target=target, text=text, annotation_type=annotation_type)
        with self._lock:
            self._annotations.append(annotation)
            self._touch()
        return annotation

    def approve(self, user_id: str) -> None:
        """Approve the review. One active approver is enough to flip the state.

        Raises:
            NotAnApproverError: if user_id is not an active APPROVER.
            InvalidTransitionError: if the review was already rejected or cancelled.
        """
        with self._lock:
            if not self.has_role(user_id, ParticipantRole.APPROVER):
                logger.warning("Review %s: %s tried to approve without the approver role", self.id, user_id)
                raise NotAnApproverError(user_id)
            self._transition(ReviewState.APPROVED, user_id)
        self._notify_others(user_id, NotificationType.APPROVED, f"{user_id} approved the review")

    def request_changes(self, user_id: str, reason: str) -> None:
        with self._lock:
            self._transition(ReviewState.CHANGES_REQUESTED, user_id)
            self._append_comment(user_id, reason)
        self._notify_others(user_id, NotificationType.CHANGES_REQUESTED, f"{user_id} requested changes: {reason}")

    def reject(self, user_id: str, reason: str) -> None:
        with self._lock:
            self._transition(ReviewState.REJECTED, user_id)
            self._append_comment(user_id, reason)
        self._notify_others(user_id, NotificationType.REJECTED, f"{user_id} rejected the review: {reason}")

    def cancel(self, user_id: str) -> None:
        """Withdraw the review. Only the author or an active moderator may cancel."""
        with self._lock:
            if user_id != self.author_id and not self.has_role(user_id, ParticipantRole.MODERATOR):
                raise NotAuthorizedError(user_id, "cancel this review")
            self._transition(ReviewState.CANCELLED, user_id)
        self._notify_others(user_id, NotificationType.CANCELLED, f"{user_id} cancelled the review")

    def _transition(self, new_state: ReviewState, user_id: str) -> None:
        if self._state in TERMINAL_STATES and self._state != new_state:
            raise InvalidTransitionError(self._state, new_state)
        logger.info("Review %s: %s -> %s by %s", self.id, self._state.value, new_state.value, user_id)
        self._state = new_state
        self._touch()

    def _append_comment(self, user_id: str, content: str, target: str | None = None) -> Comment:
        # Caller holds the lock and sends any notification after releasing it.
        comment = Comment(author_id=user_id, content=content, target=target)
        self._comments.append(comment)
        self._touch()
        return comment

    def _find_comment(self, comment_id: str) -> Comment:
        pending = list(self._comments)
        while pending:
            comment = pending.pop(0)
            if comment.id == comment_id:
                return comment
            pending.extend(comment.replies)
        raise CommentNotFoundError(comment_id)

    def _update_comment(self, comment_id: str, update: Callable[[Comment], Comment]) -> None:
        def rebuild(comments: Sequence[Comment]) -> tuple[list[Comment], bool]:
            result = list(comments)
            for i, comment in enumerate(result):
                if comment.id == comment_id:
                    result[i] = update(comment)
                    return result, True
                replies, found = rebuild(comment.replies)
                if found:
                    result[i] = replace(comment, replies=tuple(replies))
                    return result, True
            return result, False

        comments, found = rebuild(self._comments)
        if not found:
            raise CommentNotFoundError(comment_id)
        self._comments = comments
        self._touch()

    def _touch(self) -> None:
        self.updated_at = _now()

    def _notify_others(self, actor_id: str, notification_type: NotificationType, message: str) -> None:
        with self._lock:
            recipients = [p.user_id for p in self._participants if p.is_active and p.user_id != actor_id]
        self._notify(list(dict.fromkeys(recipients)), notification_type, message)

    def _notify(self, recipients: list[str], notification_type: NotificationType, message: str) -> None:
        if self._notifier is None:
            return
        for recipient in recipients:
            self._notifier.notify(recipient, notification_type, self.id, message)
