# fiscal/serializers.py
"""
Snapshot serializers for fiscal years and periods.

Used to build the previous/new state stored on audit entries.
"""

from rest_framework import serializers

from fiscal.models import FiscalPeriod, FiscalYear


class FiscalYearSnapshotSerializer(serializers.ModelSerializer):
    class Meta:
        model = FiscalYear
        fields = [
            "id", "name", "start_date", "end_date", "status",
            "is_current", "closing_date",
        ]
        read_only_fields = fields


class FiscalPeriodSnapshotSerializer(serializers.ModelSerializer):
    class Meta:
        model = FiscalPeriod
        fields = [
            "id", "fiscal_year", "period", "name", "start_date", "end_date",
            "status", "is_current", "closed_at",
        ]
        read_only_fields = fields


def year_snapshot(year: FiscalYear) -> dict:
    return dict(FiscalYearSnapshotSerializer(year).data)


def period_snapshot(period: FiscalPeriod) -> dict:
    return dict(FiscalPeriodSnapshotSerializer(period).data)
