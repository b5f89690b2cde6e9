# ledger/types.py
"""
Inbound request shapes for the ledger.

Callers build a TransactionRequest (directly, or from a dict through
ledger.serializers.TransactionRequestSerializer) and hand it to
GeneralLedger.create_transaction().
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional


@dataclass
class EntryRequest:
    """One debit or credit line."""
    account_id: str
    debit_amount: Decimal = Decimal("0.00")
    credit_amount: Decimal = Decimal("0.00")
    description: str = ""


@dataclass
class TransactionRequest:
    """
    A transaction to be validated and stored.

    amount is optional; when given it must equal the entry totals.
    """
    transaction_type: str
    date: date
    fiscal_year_id: int
    fiscal_period_id: int
    created_by: str
    entries: List[EntryRequest] = field(default_factory=list)
    description: str = ""
    reference: str = ""
    amount: Optional[Decimal] = None
