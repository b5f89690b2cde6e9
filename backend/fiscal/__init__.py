# fiscal/__init__.py
"""
Fiscal calendar app.

Owns fiscal years and their periods, and decides whether a date, period
or year is open for posting.
"""
