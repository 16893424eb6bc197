from __future__ import annotations

import argparse
import asyncio
import re

import asyncpg
from sqlalchemy.engine import make_url

from quizpost.core.config import get_settings
from quizpost.core.integration_db_safety import assess_integration_db_safety

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def resolve_test_database(
    database_url: str,
    *,
    extra_hosts: list[str] | None = None,
) -> tuple[str, dict[str, object]]:
    safety = assess_integration_db_safety(database_url, extra_hosts=extra_hosts or ())
    if not safety.is_safe:
        raise RuntimeError(f"Refusing to prepare database '{safety.database_name}': {safety.reason}")
    if IDENTIFIER_RE.fullmatch(safety.database_name) is None:
        raise RuntimeError(
            f"Unsupported database name '{safety.database_name}'. "
            "Only [A-Za-z0-9_] identifiers are supported."
        )

    parsed = make_url(database_url)
    if parsed.username is None:
        raise RuntimeError("DATABASE_URL username is required.")
    return safety.database_name, {
        "host": parsed.host or "localhost",
        "port": int(parsed.port or 5432),
        "user": parsed.username,
        "password": parsed.password,
        "database": "postgres",
    }


async def ensure_database_exists(database_url: str, *, extra_hosts: list[str] | None = None) -> bool:
    db_name, connect_kwargs = resolve_test_database(database_url, extra_hosts=extra_hosts)
    conn = await asyncpg.connect(**connect_kwargs)
    try:
        exists = await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", db_name)
        if exists:
            return False
        await conn.execute(f'CREATE DATABASE "{db_name}"')
        return True
    finally:
        await conn.close()


def main() -> int:
    parser = argparse.ArgumentParser(description="Create the local quizpost test database if it is missing")
    parser.add_argument("--database-url", default=get_settings().database_url)
    parser.add_argument("--allow-host", dest="extra_hosts", action="append", default=[], help="extra local DB host")
    args = parser.parse_args()

    created = asyncio.run(ensure_database_exists(args.database_url, extra_hosts=args.extra_hosts))
    state = "created" if created else "exists"
    safe_url = make_url(args.database_url).render_as_string(hide_password=True)
    print(f"ensure_test_db: {state} url={safe_url}")  # noqa: T201
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
