# balances/__init__.py
"""
Balances app - running account balances per fiscal year and period.

Rows are only written while a balance write context is active (see
balances/write_barrier.py); everything else reads them.
"""
