"""
db/init_db.py
-------------
Creates the `votes` table if it does not already exist.
Run this module directly to initialize a fresh database:
    python -m db.init_db
"""

import psycopg2

from db.connection import ConnectionPool
from utils.logger import get_logger

logger = get_logger(__name__)

SCHEMA_SQL = """
-- One row per ballot; candidate is 'TABS' or 'SPACES'
CREATE TABLE IF NOT EXISTS votes (
    vote_id     SERIAL NOT NULL,
    time_cast   TIMESTAMP NOT NULL,
    candidate   CHAR(6) NOT NULL,
    PRIMARY KEY (vote_id)
);
"""


class SchemaVerificationError(RuntimeError):
    """Raised when the votes table cannot be created or verified."""


def create_tables(pool: ConnectionPool) -> None:
    """
    Execute the schema SQL to create the votes table.
    Safe to call multiple times (uses IF NOT EXISTS).

    Raises:
        SchemaVerificationError: If the statement fails. The process must not
            serve requests without the table.
    """
    try:
        with pool.connection() as conn:
            try:
                with conn.cursor() as cur:
                    cur.execute(SCHEMA_SQL)
                conn.commit()
            except psycopg2.Error:
                conn.rollback()
                raise
    except psycopg2.Error as e:
        logger.error(f"Failed to verify table schema: {e}")
        raise SchemaVerificationError(
            "Unable to verify table schema. Check the database settings and try again."
        ) from e
    logger.info("Database schema verified.")


if __name__ == "__main__":
    from config import PoolSettings, load_settings
    from db.connection import close_pool, init_pool

    create_tables(init_pool(load_settings(), PoolSettings.from_env()))
    close_pool()
    print("Database schema created successfully.")
