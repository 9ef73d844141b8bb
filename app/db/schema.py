"""
Table definitions for users, astrologers and appointments.

Applied at startup when DB_AUTO_CREATE_SCHEMA is enabled. Every statement
is idempotent so restarts against an existing database are safe.
"""

from app.db.helpers import execute_query
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS astrologers (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        name TEXT NOT NULL,
        email TEXT NOT NULL UNIQUE,
        specialization TEXT,
        experience INTEGER NOT NULL DEFAULT 0,
        is_top_astro BOOLEAN NOT NULL DEFAULT FALSE,
        availability BOOLEAN NOT NULL DEFAULT TRUE,
        flow_multiplier DOUBLE PRECISION NOT NULL DEFAULT 1,
        curr_connection_id UUID,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        name TEXT NOT NULL,
        email TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'user' CHECK (role IN ('user', 'admin')),
        assigned_astrologer_id UUID REFERENCES astrologers (id) ON DELETE SET NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS appointments (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id UUID REFERENCES users (id) ON DELETE SET NULL,
        astro_id UUID REFERENCES astrologers (id) ON DELETE SET NULL,
        appointment_date TIMESTAMPTZ NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending'
            CHECK (status IN ('pending', 'approved', 'rejected')),
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    # astrologers and appointments reference each other, so this FK comes last
    """
    DO $$
    BEGIN
        IF NOT EXISTS (
            SELECT 1 FROM pg_constraint WHERE conname = 'astrologers_curr_connection_fk'
        ) THEN
            ALTER TABLE astrologers
                ADD CONSTRAINT astrologers_curr_connection_fk
                FOREIGN KEY (curr_connection_id) REFERENCES appointments (id)
                ON DELETE SET NULL;
        END IF;
    END
    $$
    """,
    "CREATE INDEX IF NOT EXISTS astrologers_is_top_astro_idx ON astrologers (is_top_astro)",
    "CREATE INDEX IF NOT EXISTS appointments_user_id_idx ON appointments (user_id)",
    "CREATE INDEX IF NOT EXISTS appointments_astro_id_idx ON appointments (astro_id)",
)


async def apply_schema() -> None:
    """Create tables, constraints and indexes that do not exist yet."""
    for statement in SCHEMA_STATEMENTS:
        await execute_query(statement)

    logger.info("Database schema ensured", statements=len(SCHEMA_STATEMENTS))
