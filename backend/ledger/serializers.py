# ledger/serializers.py
"""
Serializers for ledger transactions.

These serializers are used for:
1. Audit snapshots (previous_state / new_state on audit entries)
2. Input validation of transaction requests arriving as plain dicts

Business rules (balance, open periods, permissions) are checked by the
store, not here. The request serializer only checks shape and types.
"""

from decimal import Decimal

from rest_framework import serializers

from ledger.exceptions import InvalidEntryError
from ledger.models import Transaction, TransactionEntry
from ledger.types import EntryRequest, TransactionRequest


# =============================================================================
# Snapshots
# =============================================================================

class TransactionEntrySnapshotSerializer(serializers.ModelSerializer):
    class Meta:
        model = TransactionEntry
        fields = ["line_no", "account_id", "description", "debit_amount", "credit_amount"]
        read_only_fields = fields


class TransactionSnapshotSerializer(serializers.ModelSerializer):
    """Full transaction with its entries, as stored on audit entries."""
    entries = TransactionEntrySnapshotSerializer(many=True, read_only=True)

    class Meta:
        model = Transaction
        fields = [
            "id", "transaction_type", "date", "description", "reference",
            "amount", "status", "fiscal_year", "fiscal_period",
            "created_by", "approved_by", "approved_at",
            "posted_by", "posted_at",
            "voided_by", "voided_at", "void_reason",
            "rejected_by", "rejected_at", "rejection_reason",
            "entries",
        ]
        read_only_fields = fields


def transaction_snapshot(txn: Transaction) -> dict:
    data = TransactionSnapshotSerializer(txn).data
    return {
        **data,
        "entries": [dict(entry) for entry in data["entries"]],
    }


# =============================================================================
# Inbound requests
# =============================================================================

class EntryRequestSerializer(serializers.Serializer):
    account_id = serializers.CharField(max_length=32)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    debit_amount = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, default=Decimal("0.00"))
    credit_amount = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, default=Decimal("0.00"))


class TransactionRequestSerializer(serializers.Serializer):
    """
    Validate the shape of a transaction request.

    Usage:
        serializer = TransactionRequestSerializer(data=payload)
        serializer.is_valid(raise_exception=True)
        request = serializer.to_request()
    """
    transaction_type = serializers.ChoiceField(choices=Transaction.TransactionType.choices)
    date = serializers.DateField()
    description = serializers.CharField(required=False, allow_blank=True, default="")
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    fiscal_year_id = serializers.IntegerField()
    fiscal_period_id = serializers.IntegerField()
    created_by = serializers.CharField(max_length=64)
    amount = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, allow_null=True, default=None)
    entries = EntryRequestSerializer(many=True)

    def to_request(self) -> TransactionRequest:
        data = self.validated_data
        return TransactionRequest(
            transaction_type=data["transaction_type"],
            date=data["date"],
            description=data.get("description", ""),
            reference=data.get("reference", ""),
            fiscal_year_id=data["fiscal_year_id"],
            fiscal_period_id=data["fiscal_period_id"],
            created_by=data["created_by"],
            amount=data.get("amount"),
            entries=[
                EntryRequest(
                    account_id=line["account_id"],
                    description=line.get("description", ""),
                    debit_amount=line.get("debit_amount"),
                    credit_amount=line.get("credit_amount"),
                )
                for line in data["entries"]
            ],
        )


def parse_transaction_request(payload: dict) -> TransactionRequest:
    """
    Build a TransactionRequest from a plain dict.

    Raises:
        InvalidEntryError: the payload has the wrong shape.
    """
    serializer = TransactionRequestSerializer(data=payload)
    if not serializer.is_valid():
        raise InvalidEntryError(f"Invalid transaction request: {dict(serializer.errors)}")
    return serializer.to_request()
