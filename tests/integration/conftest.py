import os
import uuid
from collections.abc import Generator
from typing import Any

import psycopg
import pytest
from psycopg import sql

from intake.config.settings import Settings
from intake.database.connection import close_pool, get_connection, init_pool


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "intake_test")
    suffix = uuid.uuid4().hex[:8]
    return Settings(
        identity_table=f"table_id_{suffix}",
        certificate_table=f"HR_cert_id_{suffix}",
    )


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            conn.execute("SELECT 1")
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run.")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture(scope="session")
def session_tables(
    integration_pool: None, test_settings: Settings
) -> Generator[Settings, None, None]:
    """Create throwaway identity and certificate tables with the production columns."""
    identity = sql.Identifier(test_settings.identity_table)
    certificate = sql.Identifier(test_settings.certificate_table)
    with get_connection() as conn:
        conn.execute(
            sql.SQL(
                """
                CREATE TABLE {table} (
                    id BIGSERIAL PRIMARY KEY,
                    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                    "SessionId" TEXT NOT NULL,
                    "FirstName" TEXT, "LastName" TEXT, "DateOfBirth" TEXT,
                    "IdNumber" TEXT, "IssuedDate" TEXT, "ValidUntil" TEXT,
                    "Role" TEXT, "IdType" TEXT
                )
                """
            ).format(table=identity)
        )
        conn.execute(
            sql.SQL(
                """
                CREATE TABLE {table} (
                    id BIGSERIAL PRIMARY KEY,
                    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                    "SessionId" TEXT NOT NULL,
                    "CompanyNameHeb" TEXT, "BusinessId" TEXT, "IssuedDate" TEXT,
                    cert_type TEXT, "officeAdr" TEXT, "mailAdr" TEXT
                )
                """
            ).format(table=certificate)
        )
        conn.commit()
    try:
        yield test_settings
    finally:
        with get_connection() as conn:
            conn.execute(sql.SQL("DROP TABLE IF EXISTS {}").format(identity))
            conn.execute(sql.SQL("DROP TABLE IF EXISTS {}").format(certificate))
            conn.commit()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def session_id() -> str:
    return f"sess-{uuid.uuid4().hex[:12]}"
