"""Apply SQL schema and seed the registry row for local PostgreSQL setup."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from confidential_nft.backend.config import load_settings

SEED_REGISTRY_SQL = """
INSERT INTO registry (id, name, symbol, admin, mint_price, max_supply, created_at, updated_at)
VALUES (1, %s, %s, %s, %s, %s, %s, %s)
ON CONFLICT (id) DO NOTHING
"""


def main() -> None:
    settings = load_settings()
    if not settings.database_url:
        raise RuntimeError("CNFT_DATABASE_URL is required for migration")

    import psycopg

    schema_path = Path(__file__).with_name("db_schema.sql")
    schema_sql = schema_path.read_text(encoding="utf-8")
    now = datetime.now(timezone.utc)

    with psycopg.connect(settings.database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(schema_sql)
            cur.execute(
                SEED_REGISTRY_SQL,
                (settings.name, settings.symbol, settings.admin, settings.mint_price, settings.max_supply, now, now),
            )
        conn.commit()


if __name__ == "__main__":
    main()
