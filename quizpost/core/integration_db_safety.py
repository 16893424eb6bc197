from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy.engine import make_url

TEST_DB_NAME_RE = re.compile(r"test", re.IGNORECASE)
LOCAL_TEST_HOSTS = frozenset({"localhost", "127.0.0.1", "::1", "postgres", "quizpost_postgres"})


@dataclass(frozen=True, slots=True)
class IntegrationDbSafetyResult:
    is_safe: bool
    reason: str
    database_name: str
    host: str


def assess_integration_db_safety(
    database_url: str,
    *,
    extra_hosts: Iterable[str] = (),
) -> IntegrationDbSafetyResult:
    parsed = make_url(database_url)
    db_name = (parsed.database or "").strip()
    host = (parsed.host or "").strip().lower()
    allowed_hosts = LOCAL_TEST_HOSTS | {item.strip().lower() for item in extra_hosts if item.strip()}

    if parsed.get_backend_name() != "postgresql":
        return IntegrationDbSafetyResult(
            is_safe=False,
            reason="Integration tests run only against PostgreSQL.",
            database_name=db_name,
            host=host,
        )

    if not db_name:
        return IntegrationDbSafetyResult(
            is_safe=False,
            reason="Database name is empty.",
            database_name=db_name,
            host=host,
        )

    if TEST_DB_NAME_RE.search(db_name) is None:
        return IntegrationDbSafetyResult(
            is_safe=False,
            reason="Database name must contain 'test'.",
            database_name=db_name,
            host=host,
        )

    if host not in allowed_hosts:
        return IntegrationDbSafetyResult(
            is_safe=False,
            reason="Host is not an allowed local test host.",
            database_name=db_name,
            host=host,
        )

    return IntegrationDbSafetyResult(
        is_safe=True,
        reason="ok",
        database_name=db_name,
        host=host,
    )


def assert_safe_integration_db(database_url: str, *, extra_hosts: Iterable[str] = ()) -> None:
    result = assess_integration_db_safety(database_url, extra_hosts=extra_hosts)
    if result.is_safe:
        return

    raise RuntimeError(
        "Refusing to TRUNCATE tables outside a dedicated test database.\n"
        f"Reason: {result.reason}\n"
        f"Resolved DB: name='{result.database_name}' host='{result.host}'\n"
        "Point DATABASE_URL at a local PostgreSQL database such as 'quizpost_test'."
    )
