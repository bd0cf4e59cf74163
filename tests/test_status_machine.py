"""Quotation lifecycle: edges, role gates, edit surfaces."""

import pytest

from salesdesk.constants.error_codes import ErrorCode
from salesdesk.core.exceptions import (
    AlreadyInTargetState,
    AppException,
    CartLocked,
    InvalidTransition,
    PermissionDenied,
)
from salesdesk.models.enums.quotation_status import QuotationStatus as S
from salesdesk.models.enums.review_reason import ReviewReason
from salesdesk.services.billing import status_machine as sm
from salesdesk.services.billing.status_machine import WorkflowState


def state(*statuses):
    ws = WorkflowState.new(actor_id=1)
    for s in statuses:
        ws = sm.transition(ws, s, "admin" if s in (S.approved, S.rejected) and ws.status is S.review else "sales").state
    return ws


# ============================================================
# Edges
# ============================================================


class TestTransitions:

    def test_draft_to_approved_has_no_edge(self):
        with pytest.raises(InvalidTransition) as exc:
            sm.transition(WorkflowState.new(), S.approved, "admin")
        assert exc.value.details == {"current": "draft", "requested": "approved"}
        assert exc.value.status_code == 409

    def test_non_admin_cannot_approve_from_review(self):
        ws = state(S.accepted, S.review)
        with pytest.raises(PermissionDenied) as exc:
            sm.transition(ws, S.approved, "sales")
        assert exc.value.details["action"] == "approve"

    def test_finance_cannot_reject_from_review(self):
        ws = state(S.accepted, S.review)
        with pytest.raises(PermissionDenied):
            sm.transition(ws, S.rejected, "finance")

    def test_admin_approves_review(self):
        ws = state(S.accepted, S.review)
        outcome = sm.transition(ws, S.approved, "admin", actor_id=1)
        assert outcome.status is S.approved
        assert outcome.previous is S.review

    def test_accepting_twice_is_already_in_target_state(self):
        ws = state(S.accepted)
        with pytest.raises(AlreadyInTargetState) as exc:
            sm.transition(ws, S.accepted, "sales")
        assert exc.value.error_code == ErrorCode.ALREADY_IN_TARGET_STATE

    def test_same_state_check_runs_before_role_check(self):
        ws = state(S.accepted, S.review)
        with pytest.raises(AlreadyInTargetState):
            sm.transition(ws, S.review, "finance")

    def test_confirm_allowed_for_finance(self):
        ws = state(S.accepted, S.review, S.approved)
        assert sm.transition(ws, S.confirmed, "finance").status is S.confirmed

    def test_confirm_denied_for_sales(self):
        ws = state(S.accepted, S.review, S.approved)
        with pytest.raises(PermissionDenied):
            sm.transition(ws, S.confirmed, "sales")

    def test_confirmed_is_terminal(self):
        for target in S:
            if target is S.confirmed:
                continue
            assert not sm.has_edge(S.confirmed, target)

    def test_booked_behaves_like_accepted(self):
        ws = state(S.booked)
        outcome = sm.transition(ws, S.review, "sales")
        assert outcome.review_reason is ReviewReason.initial

    def test_unknown_role_is_denied(self):
        with pytest.raises(PermissionDenied):
            sm.transition(WorkflowState.new(), S.accepted, "cashier")


class TestHistory:

    def test_success_appends_exactly_one_entry(self):
        ws = WorkflowState.new(actor_id=7)
        outcome = sm.transition(ws, S.accepted, "sales", actor_id=7)
        assert len(outcome.state.history) == len(ws.history) + 1
        assert outcome.state.history[-1].status is outcome.state.status
        assert outcome.state.history[-1].actor_id == 7

    def test_input_state_is_not_mutated(self):
        ws = WorkflowState.new()
        sm.transition(ws, S.rejected, "sales")
        assert ws.status is S.draft
        assert len(ws.history) == 1

    def test_failed_transition_leaves_nothing_behind(self):
        ws = WorkflowState.new()
        with pytest.raises(InvalidTransition):
            sm.transition(ws, S.confirmed, "admin")
        assert ws.history[-1].status is S.draft


class TestReviewReason:

    def test_rejected_order_goes_back_for_reapproval(self):
        ws = state(S.rejected)
        outcome = sm.transition(ws, S.review, "sales")
        assert outcome.status is S.review
        assert outcome.review_reason is ReviewReason.reapproval
        assert outcome.message == "Order sent for reapproval"

    def test_accepted_order_goes_for_first_review(self):
        ws = state(S.accepted)
        outcome = sm.transition(ws, S.review, "sales")
        assert outcome.status is S.review
        assert outcome.review_reason is ReviewReason.initial
        assert outcome.message == "Order sent for review"

    def test_both_routes_land_on_the_same_status(self):
        a = sm.transition(state(S.accepted), S.review, "sales")
        r = sm.transition(state(S.rejected), S.review, "sales")
        assert a.status == r.status
        assert a.review_reason != r.review_reason


# ============================================================
# Edit surfaces
# ============================================================


class TestEditGuards:

    @pytest.mark.parametrize("status", [S.draft, S.accepted, S.rejected, S.booked])
    def test_cart_editable_statuses(self, status):
        sm.check_cart_edit(status, "sales")

    @pytest.mark.parametrize("status", [S.review, S.approved, S.confirmed])
    def test_cart_locked_statuses(self, status):
        with pytest.raises(CartLocked):
            sm.check_cart_edit(status, "admin")

    def test_discount_editable_in_review(self):
        sm.check_discount_edit(S.review, "sales")
        sm.check_discount_edit(S.review, "admin")

    def test_finance_cannot_edit_discount(self):
        with pytest.raises(PermissionDenied):
            sm.check_discount_edit(S.review, "finance")

    def test_discount_locked_after_approval(self):
        with pytest.raises(CartLocked):
            sm.check_discount_edit(S.approved, "admin")

    def test_delete_only_rejected_and_admin(self):
        sm.check_delete(S.rejected, "admin")
        with pytest.raises(PermissionDenied):
            sm.check_delete(S.rejected, "sales")
        with pytest.raises(AppException) as exc:
            sm.check_delete(S.draft, "admin")
        assert exc.value.error_code == ErrorCode.QUOTATION_CANNOT_DELETE

    @pytest.mark.parametrize("status", [S.approved, S.confirmed])
    def test_invoice_inputs(self, status):
        sm.check_invoice(status, "admin")

    def test_invoice_refused_for_review(self):
        with pytest.raises(AppException) as exc:
            sm.check_invoice(S.review, "admin")
        assert exc.value.error_code == ErrorCode.INVOICE_NOT_ALLOWED


class TestAllowedActions:

    def test_admin_in_review(self):
        actions = sm.allowed_actions(S.review, "admin")
        assert {"approve", "reject"} <= set(actions)
        assert "edit_discount" in actions
        assert "edit_cart" not in actions

    def test_sales_on_rejected(self):
        actions = sm.allowed_actions(S.rejected, "sales")
        assert "send_for_reapproval" in actions
        assert "edit_cart" in actions
        assert "delete" not in actions

    def test_admin_on_approved(self):
        actions = sm.allowed_actions(S.approved, "admin")
        assert actions == ["confirm", "create_invoice"]

    def test_display_names(self):
        assert sm.display_name(S.accepted) == "Customer Accepted"
        assert sm.display_name(S.review) == "Under Review"
