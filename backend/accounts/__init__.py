# accounts/__init__.py
"""
Accounts app - ledger users and their roles.

This app provides:
- Membership: user id -> role mapping for the finance office
- ROLE_DEFAULTS: permission codes granted to each role
- Authorizer / RoleAuthorizer: the coarse permission check the ledger
  consults before create / approve / post / void / close

Authentication itself lives outside the ledger; user ids are opaque strings.
"""
