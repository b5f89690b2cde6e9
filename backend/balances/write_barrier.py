# balances/write_barrier.py
"""
Thread-local write contexts for account balances.

AccountBalance.save() checks the active context; only posting, period
closing and carry-forward may write balance rows. Contexts nest, the
innermost one wins.
"""

from contextlib import contextmanager
import threading


_state = threading.local()

POSTING = "posting"
CLOSING = "closing"
CARRY_FORWARD = "carry_forward"

BALANCE_WRITE_CONTEXTS = {POSTING, CLOSING, CARRY_FORWARD}


def _active_contexts() -> list[str]:
    if not hasattr(_state, "contexts"):
        _state.contexts = []
    return _state.contexts


def current_write_context() -> str | None:
    contexts = _active_contexts()
    return contexts[-1] if contexts else None


def write_context_allowed(allowed_contexts: set[str]) -> bool:
    return current_write_context() in allowed_contexts


@contextmanager
def balance_writes(context: str):
    if context not in BALANCE_WRITE_CONTEXTS:
        raise ValueError(f"Unknown balance write context: {context}")
    contexts = _active_contexts()
    contexts.append(context)
    try:
        yield
    finally:
        contexts.pop()


def posting_writes_allowed():
    return balance_writes(POSTING)


def closing_writes_allowed():
    return balance_writes(CLOSING)


def carry_forward_writes_allowed():
    return balance_writes(CARRY_FORWARD)
