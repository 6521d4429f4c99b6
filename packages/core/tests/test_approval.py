"""Tests for quorum approval."""

import pytest

from lexdiff_core.approval import ApprovalWorkflow, NotARequiredApproverError
from lexdiff_core.diff import StatuteDiff
from lexdiff_core.review import ParticipantRole, ReviewSession, ReviewState


class TestApprovalWorkflow:
    def test_quorum(self):
        workflow = ApprovalWorkflow(["bob", "carol", "dave"], min_approvals=2)
        assert not workflow.is_complete()
        workflow.approve("bob")
        assert not workflow.is_complete()
        workflow.approve("dave")
        assert workflow.is_complete()

    def test_reapproval_is_idempotent(self):
        workflow = ApprovalWorkflow(["bob", "carol"], min_approvals=2)
        workflow.approve("bob")
        workflow.approve("bob")
        assert workflow.approved_by == {"bob"}
        assert not workflow.is_complete()

    def test_unknown_approver_raises(self):
        workflow = ApprovalWorkflow(["bob"], min_approvals=1)
        with pytest.raises(NotARequiredApproverError):
            workflow.approve("mallory")
        assert workflow.approved_by == set()

    def test_pending_in_declared_order(self):
        workflow = ApprovalWorkflow(["dave", "bob", "carol", "bob"], min_approvals=1)
        workflow.approve("bob")
        assert workflow.pending_approvers() == ["dave", "carol"]

    def test_zero_quorum_is_complete(self):
        assert ApprovalWorkflow([], min_approvals=0).is_complete()


class TestForSession:
    def _session(self):
        session = ReviewSession(StatuteDiff(statute_id="law"), "alice")
        session.add_participant("bob", "Bob", ParticipantRole.APPROVER)
        session.add_participant("carol", "Carol", ParticipantRole.APPROVER)
        session.add_participant("rev", "Rev", ParticipantRole.REVIEWER)
        session.add_participant("gone", "Gone", ParticipantRole.APPROVER)
        session.deactivate_participant("gone")
        return session

    def test_collects_active_approvers(self):
        workflow = ApprovalWorkflow.for_session(self._session())
        assert workflow.required_approvers == ("bob", "carol")
        assert workflow.min_approvals == 2

    def test_explicit_quorum(self):
        assert ApprovalWorkflow.for_session(self._session(), min_approvals=1).min_approvals == 1

    def test_composition_with_session(self):
        session = self._session()
        workflow = ApprovalWorkflow.for_session(session)

        workflow.approve("bob")
        assert not workflow.is_complete()
        assert session.state == ReviewState.IN_PROGRESS

        workflow.approve("carol")
        if workflow.is_complete():
            session.approve("carol")
        assert session.state == ReviewState.APPROVED
