"""Test settings - uses SQLite for fast local testing."""
from .base import *  # noqa: F401,F403

DEBUG = True

# Use SQLite for tests (no PostgreSQL dependency)
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

# Faster password hashing in tests
PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

# Disable Celery in tests
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

# No backoff sleeps in tests
WORKFLOW_RETRY_BASE_DELAY = 0

# Disable logging noise during tests; let caplog see the app logger.
LOGGING["handlers"].pop("file")  # noqa: F405
LOGGING["root"]["level"] = "WARNING"  # noqa: F405
LOGGING["loggers"]["bizfin"]["handlers"] = ["console"]  # noqa: F405
LOGGING["loggers"]["bizfin"]["level"] = "WARNING"  # noqa: F405
LOGGING["loggers"]["bizfin"]["propagate"] = True  # noqa: F405
