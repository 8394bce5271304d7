from __future__ import annotations

import os
import sys

import psycopg

STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS generations (
        id SERIAL PRIMARY KEY,
        user_id VARCHAR NOT NULL,
        user_email VARCHAR,
        status VARCHAR NOT NULL DEFAULT 'pending',
        character_name VARCHAR,
        character_image_url VARCHAR,
        source_video_url VARCHAR,
        aspect_ratio VARCHAR(10) NOT NULL DEFAULT 'fill',
        source_video_aspect_ratio VARCHAR(10) NOT NULL DEFAULT 'fill',
        run_id VARCHAR,
        video_url VARCHAR,
        error_message TEXT,
        created_at TIMESTAMP DEFAULT NOW(),
        updated_at TIMESTAMP DEFAULT NOW(),
        completed_at TIMESTAMP
    )
    """,
    # Older deployments predate these columns
    "ALTER TABLE generations ADD COLUMN IF NOT EXISTS user_email VARCHAR",
    "ALTER TABLE generations ADD COLUMN IF NOT EXISTS aspect_ratio VARCHAR(10) NOT NULL DEFAULT 'fill'",
    "ALTER TABLE generations ADD COLUMN IF NOT EXISTS source_video_aspect_ratio VARCHAR(10) NOT NULL DEFAULT 'fill'",
    "ALTER TABLE generations ADD COLUMN IF NOT EXISTS completed_at TIMESTAMP",
    "CREATE INDEX IF NOT EXISTS ix_generations_user_id ON generations (user_id)",
    "CREATE INDEX IF NOT EXISTS ix_generations_status_completed ON generations (status, completed_at)",
    """
    CREATE TABLE IF NOT EXISTS reference_images (
        id SERIAL PRIMARY KEY,
        user_id VARCHAR NOT NULL,
        name VARCHAR NOT NULL,
        image_url VARCHAR NOT NULL,
        category VARCHAR,
        created_at TIMESTAMP DEFAULT NOW()
    )
    """,
    "ALTER TABLE reference_images ADD COLUMN IF NOT EXISTS category VARCHAR",
    "CREATE INDEX IF NOT EXISTS ix_reference_images_user_id ON reference_images (user_id)",
    """
    CREATE TABLE IF NOT EXISTS character_submissions (
        id SERIAL PRIMARY KEY,
        image_url TEXT NOT NULL,
        suggested_name TEXT,
        suggested_category TEXT,
        user_id VARCHAR,
        status VARCHAR NOT NULL DEFAULT 'pending',
        created_at TIMESTAMP DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS character_usage (
        character_id VARCHAR PRIMARY KEY,
        usage_count INTEGER NOT NULL DEFAULT 0,
        last_used_at TIMESTAMP DEFAULT NOW(),
        created_at TIMESTAMP DEFAULT NOW()
    )
    """,
]


def _get_database_url() -> str:
    database_url = os.environ.get("DATABASE_URL", "").strip()
    if not database_url:
        raise SystemExit("DATABASE_URL is not set")
    # SQLAlchemy-style "postgresql+psycopg://..." -> plain conninfo URL
    if database_url.startswith("postgresql+"):
        database_url = "postgresql://" + database_url.split("://", 1)[1]
    return database_url


def main() -> None:
    database_url = _get_database_url()

    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            for statement in STATEMENTS:
                cur.execute(statement)
        conn.commit()

    print(f"OK: applied {len(STATEMENTS)} statements")


if __name__ == "__main__":
    try:
        main()
    except Exception as e:
        print(f"FAILED: {e}", file=sys.stderr)
        raise
