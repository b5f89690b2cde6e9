# ledger/policies.py
"""
Business policy functions for ledger transactions.

Policies answer: "Is this action allowed given the current state?"
They do NOT perform the action; that's the store's or the posting
coordinator's job.

Workflow rules (which status may follow which) are enforced HERE, not in
model.save(). Models only enforce true invariants such as "entries of a
posted transaction never change".

Lifecycle:

    DRAFT -> PENDING_APPROVAL -> APPROVED -> POSTED -> VOIDED
    DRAFT -> VOIDED               (discard, no balance impact)
    PENDING_APPROVAL -> REJECTED

Usage:
    from ledger.policies import can_post, assert_can_post

    # Option 1: Check and get boolean + reason
    allowed, reason = can_post(txn)
    if not allowed:
        ...

    # Option 2: Assert and raise on failure
    assert_can_post(txn)  # raises InvalidStateTransitionError
"""

from ledger.exceptions import InvalidStateTransitionError
from ledger.models import Transaction


Status = Transaction.Status

ALLOWED_TRANSITIONS = {
    (Status.DRAFT, Status.PENDING_APPROVAL),
    (Status.DRAFT, Status.VOIDED),
    (Status.PENDING_APPROVAL, Status.APPROVED),
    (Status.PENDING_APPROVAL, Status.REJECTED),
    (Status.APPROVED, Status.POSTED),
    (Status.POSTED, Status.VOIDED),
}

# Transactions in these states still block their period from closing.
OPEN_STATUSES = (Status.DRAFT, Status.PENDING_APPROVAL)

EDITABLE_STATUSES = (Status.DRAFT,)


def validate_status_transition(old_status, new_status) -> tuple[bool, str]:
    """
    Validate a status transition is allowed.

    Returns:
        (True, "") if transition is allowed
        (False, reason) if not allowed
    """
    if (old_status, new_status) in ALLOWED_TRANSITIONS:
        return True, ""

    return False, f"Invalid status transition: {old_status} -> {new_status}"


def _require(txn, new_status) -> None:
    allowed, reason = validate_status_transition(txn.status, new_status)
    if not allowed:
        raise InvalidStateTransitionError(txn.status, new_status, reason)


# =============================================================================
# Transition Policies
# =============================================================================

def can_edit(txn) -> tuple[bool, str]:
    if txn.status not in EDITABLE_STATUSES:
        return False, f"Cannot edit transaction in {txn.status} status. Only DRAFT transactions can be edited."
    return True, ""


def can_submit(txn) -> tuple[bool, str]:
    return validate_status_transition(txn.status, Status.PENDING_APPROVAL)


def can_approve(txn) -> tuple[bool, str]:
    return validate_status_transition(txn.status, Status.APPROVED)


def can_reject(txn) -> tuple[bool, str]:
    return validate_status_transition(txn.status, Status.REJECTED)


def can_post(txn) -> tuple[bool, str]:
    """
    Only APPROVED transactions can be posted.

    A repeated post therefore fails instead of counting twice.
    """
    if txn.status == Status.POSTED:
        return False, "Transaction is already posted."
    return validate_status_transition(txn.status, Status.POSTED)


def can_void(txn) -> tuple[bool, str]:
    """Only POSTED transactions can be voided. Drafts are discarded instead."""
    if txn.status != Status.POSTED:
        return False, f"Only POSTED transactions can be voided (status is {txn.status})."
    return True, ""


def can_discard(txn) -> tuple[bool, str]:
    if txn.status != Status.DRAFT:
        return False, f"Only DRAFT transactions can be discarded (status is {txn.status})."
    return True, ""


# =============================================================================
# Assertions
# =============================================================================

def assert_can_edit(txn) -> None:
    allowed, reason = can_edit(txn)
    if not allowed:
        raise InvalidStateTransitionError(txn.status, txn.status, reason)


def assert_can_submit(txn) -> None:
    _require(txn, Status.PENDING_APPROVAL)


def assert_can_approve(txn) -> None:
    _require(txn, Status.APPROVED)


def assert_can_reject(txn) -> None:
    _require(txn, Status.REJECTED)


def assert_can_post(txn) -> None:
    allowed, reason = can_post(txn)
    if not allowed:
        raise InvalidStateTransitionError(txn.status, Status.POSTED, reason)


def assert_can_void(txn) -> None:
    allowed, reason = can_void(txn)
    if not allowed:
        raise InvalidStateTransitionError(txn.status, Status.VOIDED, reason)


def assert_can_discard(txn) -> None:
    allowed, reason = can_discard(txn)
    if not allowed:
        raise InvalidStateTransitionError(txn.status, Status.VOIDED, reason)
