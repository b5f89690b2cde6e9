# ledger/__init__.py
"""
Ledger app - financial transactions, their lifecycle and posting.

Entry point for other modules is ledger.services.GeneralLedger.
"""
