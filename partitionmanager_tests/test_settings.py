"""
Settings file for the partition manager test suite.
"""

import os

DEBUG = True

SECRET_KEY = "test"

TEST_DB_BACKEND = os.getenv("TEST_DB_BACKEND", "sqlite3")

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "partitionmanager",
    "test_app",
]

if TEST_DB_BACKEND == "postgresql":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv(
                "TEST_DB_NAME",
                "partitionmanager" + os.environ.get("TOX_PARALLEL_ENV", ""),
            ),
            "USER": os.getenv("TEST_DB_USER", "postgres"),
            "PASSWORD": os.getenv("TEST_DB_PASS", ""),
            "HOST": os.getenv("TEST_DB_HOST", "127.0.0.1"),
            "PORT": os.getenv("TEST_DB_PORT", "5432"),
        }
    }
elif TEST_DB_BACKEND == "sqlite3":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": os.getenv(
                "TEST_DB_NAME",
                (
                    ":memory:"
                    if os.getenv("TOX_PARALLEL_ENV")
                    else "test_partitionmanager.sqlite3"
                ),
            ),
        }
    }
else:
    raise ValueError(f"Unsupported database backend: {TEST_DB_BACKEND}")

PARTITIONMANAGER_LOGGING = True

USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.AutoField"
