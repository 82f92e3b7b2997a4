"""Add customers.telegram_chat_id.

One-off operator migration. Run once against the production database:

    DATABASE_URL=postgres://... python -m benedict_cafe.migrations.add_telegram_chat_id

Exits with status 1 if anything fails or the column is missing afterwards.
"""

import asyncio
import logging
import sys

import asyncpg

from benedict_cafe.config import settings

logger = logging.getLogger(__name__)

ADD_COLUMN = """
    ALTER TABLE customers
    ADD COLUMN IF NOT EXISTS telegram_chat_id TEXT
"""

CREATE_INDEX = """
    CREATE INDEX IF NOT EXISTS idx_customers_telegram_chat_id
    ON customers(telegram_chat_id)
    WHERE telegram_chat_id IS NOT NULL
"""

VERIFY_COLUMN = """
    SELECT column_name, data_type, is_nullable
    FROM information_schema.columns
    WHERE table_name = 'customers'
    AND column_name = 'telegram_chat_id'
"""

COUNT_CUSTOMERS = """
    SELECT COUNT(*) AS total,
           COUNT(telegram_chat_id) AS with_telegram
    FROM customers
"""


class MigrationError(Exception):
    pass


async def migrate(conn: "asyncpg.Connection") -> dict:
    """Apply the change on an open connection and return customer counts."""
    logger.info("📝 Running migration: Add telegram_chat_id column...")
    await conn.execute(ADD_COLUMN)
    logger.info("✅ Added telegram_chat_id column")

    await conn.execute(CREATE_INDEX)
    logger.info("✅ Created index on telegram_chat_id")

    column = await conn.fetchrow(VERIFY_COLUMN)
    if column is None:
        raise MigrationError("Column was not created!")
    logger.info(f"✅ Migration successful! Column details: {dict(column)}")

    counts = await conn.fetchrow(COUNT_CUSTOMERS)
    stats = {"total": counts["total"], "with_telegram": counts["with_telegram"]}
    logger.info(f"📊 Total customers: {stats['total']}, with telegram_chat_id: {stats['with_telegram']}")
    return stats


async def run_migration(database_url: str) -> int:
    if not database_url:
        logger.error("❌ DATABASE_URL is not defined")
        return 1

    logger.info("🔌 Connecting to database...")
    try:
        conn = await asyncpg.connect(database_url)
    except Exception as e:
        logger.error(f"❌ Migration failed: {e}")
        return 1
    logger.info("✅ Connected to database")

    try:
        await migrate(conn)
    except Exception as e:
        logger.error(f"❌ Migration failed: {e}")
        return 1
    finally:
        await conn.close()
        logger.info("🔌 Database connection closed")

    logger.info("🎉 Migration completed successfully!")
    return 0


def main():
    logging.basicConfig(level=logging.INFO, stream=sys.stdout, force=True)
    sys.exit(asyncio.run(run_migration(settings.DATABASE_URL)))


if __name__ == "__main__":
    main()
