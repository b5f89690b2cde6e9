# accounting/__init__.py
"""
Accounting app - Chart of Accounts as seen by the ledger.

The chart is owned by another part of the application; the ledger only
reads it to check that entries reference real accounts and to tell cash
accounts apart. See accounting/chart.py for the collaborator protocol.
"""
