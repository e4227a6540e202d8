"""Initial schema: users, challenges, participations, referrals, posts, classifications.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id VARCHAR(64) PRIMARY KEY,
            email VARCHAR(320) UNIQUE,
            full_name VARCHAR(128),
            city VARCHAR(128),
            points INTEGER NOT NULL DEFAULT 0 CHECK (points >= 0),
            level INTEGER NOT NULL DEFAULT 1 CHECK (level >= 1),
            badges JSONB NOT NULL DEFAULT '[]',
            recommendations JSONB,
            onboarding_completed BOOLEAN NOT NULL DEFAULT false,
            chat_exchanges INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_users_points
        ON users(points DESC)
    """)

    # --- Challenges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS challenges (
            id SERIAL PRIMARY KEY,
            name VARCHAR(64) UNIQUE NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            goal DOUBLE PRECISION NOT NULL CHECK (goal > 0),
            unit VARCHAR(32) NOT NULL,
            start_date DATE,
            end_date DATE
        )
    """)

    # --- Challenge Participants ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS challenge_participants (
            id SERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            challenge_id INTEGER NOT NULL REFERENCES challenges(id),
            progress DOUBLE PRECISION NOT NULL DEFAULT 0 CHECK (progress >= 0),
            completed BOOLEAN NOT NULL DEFAULT false,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_challenge_participants_user_challenge UNIQUE (user_id, challenge_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_challenge_participants_challenge
        ON challenge_participants(challenge_id)
    """)

    # --- Referrals ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS referrals (
            id SERIAL PRIMARY KEY,
            referrer_id VARCHAR(64) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            referred_id VARCHAR(64) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_referrals_referrer_referred UNIQUE (referrer_id, referred_id)
        )
    """)

    # --- Posts ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS posts (
            id SERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            content TEXT NOT NULL,
            tags JSONB NOT NULL DEFAULT '[]',
            likes JSONB NOT NULL DEFAULT '[]',
            upvotes JSONB NOT NULL DEFAULT '[]',
            comments JSONB NOT NULL DEFAULT '[]',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_posts_user
        ON posts(user_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_posts_created
        ON posts(created_at DESC)
    """)

    # --- Classifications ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS classifications (
            id SERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            item VARCHAR(128),
            result VARCHAR(128) NOT NULL,
            is_recyclable BOOLEAN NOT NULL DEFAULT false,
            weight DOUBLE PRECISION NOT NULL DEFAULT 0,
            image_url TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_classifications_user_recyclable
        ON classifications(user_id, is_recyclable)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS classifications CASCADE")
    op.execute("DROP TABLE IF EXISTS posts CASCADE")
    op.execute("DROP TABLE IF EXISTS referrals CASCADE")
    op.execute("DROP TABLE IF EXISTS challenge_participants CASCADE")
    op.execute("DROP TABLE IF EXISTS challenges CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
