# accounts/permission_defaults.py

ROLE_DEFAULTS = {
    "ADMIN": {
        "transactions.view",
        "transactions.create",
        "transactions.approve",
        "transactions.post",
        "transactions.void",

        "periods.view",
        "periods.open",
        "periods.close",
        "years.close",

        "balances.view",
    },
    "ACCOUNTANT": {
        "transactions.view",
        "transactions.create",
        "transactions.post",

        "periods.view",
        "periods.close",

        "balances.view",
    },
    "MANAGER": {
        "transactions.view",
        "transactions.approve",

        "periods.view",
        "balances.view",
    },
    "USER": {
        "transactions.view",
        "periods.view",
        "balances.view",
    },
    "READONLY": {
        "transactions.view",
        "periods.view",
        "balances.view",
    },
}


def all_permission_codes() -> set[str]:
    codes: set[str] = set()
    for s in ROLE_DEFAULTS.values():
        codes |= set(s)
    return codes
