"""Engine settings come from the shared Settings object."""

import database
from config import settings


def test_engine_uses_settings():
    assert database.DB_TIMEOUT_SECONDS == settings.DB_TIMEOUT_SECONDS
    assert database.SQLALCHEMY_DATABASE_URL == settings.DATABASE_URL
    assert database.connect_args["timeout"] == settings.DB_TIMEOUT_SECONDS
