# salesdesk/services/billing/status_machine.py
"""
Quotation / order lifecycle.

Single source of truth for which status edges exist, who may walk them,
what may be edited in each status and how statuses are displayed. Callers
never compare raw status strings; they ask this module.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from salesdesk.constants.roles import Role
from salesdesk.constants.error_codes import ErrorCode
from salesdesk.core.exceptions import (
    AlreadyInTargetState,
    AppException,
    CartLocked,
    InvalidTransition,
    PermissionDenied,
)
from salesdesk.models.enums.quotation_status import QuotationStatus
from salesdesk.models.enums.review_reason import ReviewReason

S = QuotationStatus

ADMIN_ONLY = frozenset({Role.ADMIN})
QUOTING_ROLES = frozenset({Role.ADMIN, Role.SALES})
CONFIRMING_ROLES = frozenset({Role.ADMIN, Role.FINANCE})

# =====================================================
# EDGES
# =====================================================
TRANSITIONS: dict[QuotationStatus, frozenset[QuotationStatus]] = {
    S.draft: frozenset({S.accepted, S.rejected, S.booked}),
    S.accepted: frozenset({S.review}),
    S.booked: frozenset({S.review}),
    S.rejected: frozenset({S.review}),
    S.review: frozenset({S.approved, S.rejected}),
    S.approved: frozenset({S.confirmed}),
    S.confirmed: frozenset(),
}

# Roles allowed to walk a specific edge; keyed by (source, target).
EDGE_ROLES: dict[tuple[QuotationStatus, QuotationStatus], frozenset[Role]] = {
    (S.draft, S.accepted): QUOTING_ROLES,
    (S.draft, S.rejected): QUOTING_ROLES,
    (S.draft, S.booked): QUOTING_ROLES,
    (S.accepted, S.review): QUOTING_ROLES,
    (S.booked, S.review): QUOTING_ROLES,
    (S.rejected, S.review): QUOTING_ROLES,
    (S.review, S.approved): ADMIN_ONLY,
    (S.review, S.rejected): ADMIN_ONLY,
    (S.approved, S.confirmed): CONFIRMING_ROLES,
}

# Action verbs exposed to callers, per edge.
EDGE_ACTIONS: dict[tuple[QuotationStatus, QuotationStatus], str] = {
    (S.draft, S.accepted): "accept",
    (S.draft, S.rejected): "reject",
    (S.draft, S.booked): "book",
    (S.accepted, S.review): "send_for_review",
    (S.booked, S.review): "send_for_review",
    (S.rejected, S.review): "send_for_reapproval",
    (S.review, S.approved): "approve",
    (S.review, S.rejected): "reject",
    (S.approved, S.confirmed): "confirm",
}

# =====================================================
# EDIT SURFACES
# =====================================================
CART_EDITABLE = frozenset({S.draft, S.accepted, S.rejected, S.booked})
DISCOUNT_ONLY_EDITABLE = frozenset({S.review})
DELETABLE = frozenset({S.rejected})
INVOICEABLE = frozenset({S.approved, S.confirmed})

DISPLAY_NAMES = {
    S.draft: "Draft",
    S.accepted: "Customer Accepted",
    S.rejected: "Rejected",
    S.review: "Under Review",
    S.approved: "Approved",
    S.confirmed: "Confirmed",
    S.booked: "Booked",
}

REVIEW_MESSAGES = {
    ReviewReason.initial: "Order sent for review",
    ReviewReason.reapproval: "Order sent for reapproval",
}


@dataclass(frozen=True)
class StatusEntry:
    status: QuotationStatus
    at: datetime
    actor_id: int | None = None
    review_reason: ReviewReason | None = None


@dataclass(frozen=True)
class WorkflowState:
    status: QuotationStatus
    history: tuple[StatusEntry, ...] = field(default_factory=tuple)

    @classmethod
    def new(cls, actor_id: int | None = None, at: datetime | None = None) -> "WorkflowState":
        entry = StatusEntry(S.draft, at or _now(), actor_id)
        return cls(status=S.draft, history=(entry,))


@dataclass(frozen=True)
class TransitionOutcome:
    previous: QuotationStatus
    state: WorkflowState
    review_reason: ReviewReason | None = None

    @property
    def status(self) -> QuotationStatus:
        return self.state.status

    @property
    def message(self) -> str:
        if self.review_reason is not None:
            return REVIEW_MESSAGES[self.review_reason]
        return f"Quotation {display_name(self.state.status).lower()}"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _role(role) -> Role | None:
    try:
        return Role(str(getattr(role, "value", role)).lower())
    except ValueError:
        return None


def _role_label(role) -> str:
    return str(getattr(role, "value", role))


def display_name(status: QuotationStatus) -> str:
    return DISPLAY_NAMES[QuotationStatus(status)]


def is_admin(role) -> bool:
    return _role(role) is Role.ADMIN


# =====================================================
# TRANSITIONS
# =====================================================
def has_edge(current: QuotationStatus, target: QuotationStatus) -> bool:
    return QuotationStatus(target) in TRANSITIONS[QuotationStatus(current)]


def review_reason_for(current: QuotationStatus) -> ReviewReason:
    """accepted/booked go to review for the first time, rejected goes back for reapproval."""
    return ReviewReason.reapproval if QuotationStatus(current) is S.rejected else ReviewReason.initial


def check_transition(current, target, role) -> None:
    current = QuotationStatus(current)
    target = QuotationStatus(target)

    if current is target:
        raise AlreadyInTargetState(target.value)

    if not has_edge(current, target):
        raise InvalidTransition(current.value, target.value)

    if _role(role) not in EDGE_ROLES[(current, target)]:
        raise PermissionDenied(_role_label(role), EDGE_ACTIONS[(current, target)])


def transition(
    state: WorkflowState,
    target: QuotationStatus,
    role,
    *,
    actor_id: int | None = None,
    at: datetime | None = None,
) -> TransitionOutcome:
    """
    Validate and build the next state. The input state is never mutated;
    callers swap in ``outcome.state`` once the remote side has confirmed.
    """
    target = QuotationStatus(target)
    check_transition(state.status, target, role)

    reason = review_reason_for(state.status) if target is S.review else None
    entry = StatusEntry(target, at or _now(), actor_id, reason)
    next_state = replace(state, status=target, history=state.history + (entry,))

    return TransitionOutcome(previous=state.status, state=next_state, review_reason=reason)


def allowed_targets(current, role) -> list[QuotationStatus]:
    current = QuotationStatus(current)
    r = _role(role)
    return sorted(
        (t for t in TRANSITIONS[current] if r in EDGE_ROLES[(current, t)]),
        key=lambda s: list(QuotationStatus).index(s),
    )


# =====================================================
# EDIT / DELETE / INVOICE GUARDS
# =====================================================
def is_cart_editable(status) -> bool:
    return QuotationStatus(status) in CART_EDITABLE


def is_discount_editable(status) -> bool:
    status = QuotationStatus(status)
    return status in CART_EDITABLE or status in DISCOUNT_ONLY_EDITABLE


def check_cart_edit(status, role) -> None:
    status = QuotationStatus(status)
    if status not in CART_EDITABLE:
        raise CartLocked(status.value, "edit_cart")
    if _role(role) not in QUOTING_ROLES:
        raise PermissionDenied(_role_label(role), "edit_cart")


def check_discount_edit(status, role) -> None:
    status = QuotationStatus(status)
    if not is_discount_editable(status):
        raise CartLocked(status.value, "edit_discount")
    if _role(role) not in QUOTING_ROLES:
        raise PermissionDenied(_role_label(role), "edit_discount")


def check_delete(status, role) -> None:
    status = QuotationStatus(status)
    if status not in DELETABLE:
        raise AppException(409, "Only rejected quotations can be deleted", ErrorCode.QUOTATION_CANNOT_DELETE)
    if _role(role) not in ADMIN_ONLY:
        raise PermissionDenied(_role_label(role), "delete")


def check_invoice(status, role) -> None:
    status = QuotationStatus(status)
    if status not in INVOICEABLE:
        raise AppException(409, "Only approved or confirmed orders can be invoiced", ErrorCode.INVOICE_NOT_ALLOWED)
    if _role(role) not in ADMIN_ONLY:
        raise PermissionDenied(_role_label(role), "create_invoice")


def _permitted(check, status, role) -> bool:
    try:
        check(status, role)
    except AppException:
        return False
    return True


def allowed_actions(status, role) -> list[str]:
    status = QuotationStatus(status)
    actions = [EDGE_ACTIONS[(status, t)] for t in allowed_targets(status, role)]

    extra = (
        ("edit_cart", check_cart_edit),
        ("edit_discount", check_discount_edit),
        ("delete", check_delete),
        ("create_invoice", check_invoice),
    )
    for name, check in extra:
        if _permitted(check, status, role):
            actions.append(name)

    return actions
