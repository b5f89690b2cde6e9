import os
import sys
from pathlib import Path
from dotenv import load_dotenv
import dj_database_url

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

SECRET_KEY = os.environ.get("SECRET_KEY", os.environ.get("DJANGO_SECRET_KEY", "changeme"))
DEBUG = os.getenv("DEBUG", os.getenv("DJANGO_DEBUG", "False")) == "True"
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "127.0.0.1,localhost").split(",")

# Test-mode flag, also set for Django's manage.py test invocation.
TESTING = (
    "PYTEST_CURRENT_TEST" in os.environ
    or "pytest" in sys.argv[0]
    or "test" in sys.argv
)

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "rest_framework",
    "accounts.apps.AccountsConfig",
    "accounting.apps.AccountingConfig",
    "fiscal.apps.FiscalConfig",
    "audit.apps.AuditConfig",
    "balances.apps.BalancesConfig",
    "ledger.apps.LedgerConfig",
]

# =============================================================================
# Database Configuration
# =============================================================================
DATABASES = {
    "default": dj_database_url.config(
        env="DATABASE_URL",
        default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}",
        conn_max_age=600,
    )
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

REST_FRAMEWORK = {
    "COERCE_DECIMAL_TO_STRING": True,
    "UNAUTHENTICATED_USER": None,
}

# =============================================================================
# Ledger Configuration
# =============================================================================
# Minimum number of lines a transaction must carry to be accepted.
LEDGER_MIN_ENTRY_LINES = int(os.getenv("LEDGER_MIN_ENTRY_LINES", "2"))

# Number of periods generate_periods() splits a fiscal year into by default.
LEDGER_DEFAULT_PERIOD_COUNT = int(os.getenv("LEDGER_DEFAULT_PERIOD_COUNT", "12"))

# =============================================================================
# Structured Logging Configuration
# =============================================================================
from ops.logging_config import get_logging_config
if TESTING:
    os.environ.setdefault("LOG_LEVEL", "WARNING")
LOGGING = get_logging_config(DEBUG)

VERSION = os.getenv("APP_VERSION", "dev")
