"""Database migration utilities"""
import logging

from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


def _existing_columns(sync_conn, table_name: str) -> set[str] | None:
    insp = inspect(sync_conn)
    if not insp.has_table(table_name):
        return None
    return {c["name"] for c in insp.get_columns(table_name)}


async def add_missing_user_columns(engine: AsyncEngine):
    """Add the profile columns (name, role) to a users table created before they existed"""
    async with engine.begin() as conn:
        existing_columns = await conn.run_sync(_existing_columns, "users")
        if existing_columns is None:
            # create_all will build the table with every column
            return

        required_columns = {
            "name": ("VARCHAR", None),
            "role": ("VARCHAR", "'seller'"),
        }

        for column_name, (column_type, default_value) in required_columns.items():
            if column_name in existing_columns:
                logger.debug("%s column already exists in users table", column_name)
                continue

            logger.info("Adding %s column to users table...", column_name)
            if default_value is None:
                await conn.execute(text(f"ALTER TABLE users ADD COLUMN {column_name} {column_type}"))
                continue

            await conn.execute(
                text(f"ALTER TABLE users ADD COLUMN {column_name} {column_type} DEFAULT {default_value}")
            )
            # Backfill rows that predate the column
            await conn.execute(
                text(f"UPDATE users SET {column_name} = {default_value} WHERE {column_name} IS NULL")
            )

        # Existing superusers keep full access under the role model
        if "role" not in existing_columns:
            await conn.execute(text("UPDATE users SET role = 'superAdmin' WHERE is_superuser = TRUE"))
        logger.info("users table columns are up to date")
