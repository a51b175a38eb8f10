"""Discipline engine tables.

Creates discipline_profiles, discipline_tasks, discipline_challenges,
user_titles, task_completions, exploit_detections, discipline_activity_log,
notifications and discipline_seasons.

Revision ID: 001_discipline_tables
Revises:
Create Date: 2026-10-17
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_discipline_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Profiles ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS discipline_profiles (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) UNIQUE NOT NULL,
            total_xp INTEGER NOT NULL DEFAULT 0,
            weekly_xp INTEGER NOT NULL DEFAULT 0,
            season_xp INTEGER NOT NULL DEFAULT 0,
            current_rank VARCHAR(16) NOT NULL DEFAULT 'Iron',
            rank_progress DOUBLE PRECISION NOT NULL DEFAULT 0,
            shadow_score DOUBLE PRECISION NOT NULL DEFAULT 50,
            honesty_factor DOUBLE PRECISION NOT NULL DEFAULT 1,
            effort_quality DOUBLE PRECISION NOT NULL DEFAULT 1,
            recovery_factor DOUBLE PRECISION NOT NULL DEFAULT 1,
            total_failures INTEGER NOT NULL DEFAULT 0,
            legacy_modifier DOUBLE PRECISION NOT NULL DEFAULT 1,
            permanent_debuffs JSONB NOT NULL DEFAULT '[]',
            last_activity_at TIMESTAMPTZ,
            decay_rate DOUBLE PRECISION NOT NULL DEFAULT 0.02,
            days_inactive INTEGER NOT NULL DEFAULT 0,
            completion_rate DOUBLE PRECISION NOT NULL DEFAULT 1,
            current_streak INTEGER NOT NULL DEFAULT 0,
            longest_streak INTEGER NOT NULL DEFAULT 0,
            total_tasks_completed INTEGER NOT NULL DEFAULT 0,
            total_tasks_missed INTEGER NOT NULL DEFAULT 0,
            difficulty_multiplier DOUBLE PRECISION NOT NULL DEFAULT 1,
            mastered_tasks JSONB NOT NULL DEFAULT '[]',
            current_season INTEGER NOT NULL DEFAULT 1,
            season_survived BOOLEAN NOT NULL DEFAULT false,
            week_iso VARCHAR(10),
            version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_discipline_profiles_last_activity_at
        ON discipline_profiles(last_activity_at)
    """)

    # --- Tasks ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS discipline_tasks (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            task_name VARCHAR(64) NOT NULL,
            task_type VARCHAR(16) NOT NULL DEFAULT 'daily',
            target_frequency INTEGER NOT NULL DEFAULT 1,
            minimum_duration_minutes INTEGER,
            acceptable_miss_limit INTEGER NOT NULL DEFAULT 1,
            current_period_completions INTEGER NOT NULL DEFAULT 0,
            current_period_misses INTEGER NOT NULL DEFAULT 0,
            period_start_at TIMESTAMPTZ,
            total_completions INTEGER NOT NULL DEFAULT 0,
            consecutive_completions INTEGER NOT NULL DEFAULT 0,
            base_xp INTEGER NOT NULL DEFAULT 5,
            current_difficulty INTEGER NOT NULL DEFAULT 1 CHECK (current_difficulty BETWEEN 1 AND 5),
            times_mastered INTEGER NOT NULL DEFAULT 0,
            requires_proof BOOLEAN NOT NULL DEFAULT false,
            requires_reflection BOOLEAN NOT NULL DEFAULT false,
            last_completion_at TIMESTAMPTZ,
            is_active BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_discipline_tasks_user_task UNIQUE (user_id, task_name)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_discipline_tasks_user_id ON discipline_tasks(user_id)")

    # --- Challenges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS discipline_challenges (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            challenge_name VARCHAR(128) NOT NULL,
            description TEXT,
            duration_days INTEGER NOT NULL,
            started_at TIMESTAMPTZ NOT NULL,
            ends_at TIMESTAMPTZ NOT NULL,
            daily_requirement JSONB NOT NULL,
            zero_tolerance BOOLEAN NOT NULL DEFAULT true,
            status VARCHAR(16) NOT NULL DEFAULT 'active'
                CHECK (status IN ('active', 'completed', 'failed', 'abandoned')),
            days_completed INTEGER NOT NULL DEFAULT 0,
            days_missed INTEGER NOT NULL DEFAULT 0,
            progress_on DATE,
            progress_count INTEGER NOT NULL DEFAULT 0,
            xp_reward INTEGER NOT NULL DEFAULT 0,
            title_reward VARCHAR(64),
            is_exclusive BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_discipline_challenges_user_id ON discipline_challenges(user_id)")
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_discipline_challenges_status
        ON discipline_challenges(status)
    """)

    # --- Titles ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_titles (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            title_name VARCHAR(64) NOT NULL,
            title_description TEXT,
            earned_from VARCHAR(32),
            source_id VARCHAR(64),
            can_be_lost BOOLEAN NOT NULL DEFAULT false,
            is_active BOOLEAN NOT NULL DEFAULT true,
            earned_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_user_titles_user_id ON user_titles(user_id)")

    # --- Append-only logs ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS task_completions (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            task_id BIGINT REFERENCES discipline_tasks(id) ON DELETE SET NULL,
            duration_minutes INTEGER,
            reflection_text TEXT,
            proof_url TEXT,
            effort_score DOUBLE PRECISION,
            xp_awarded INTEGER NOT NULL DEFAULT 0,
            is_valid BOOLEAN NOT NULL DEFAULT true,
            completed_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_task_completions_user_id ON task_completions(user_id)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS exploit_detections (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            detection_type VARCHAR(32) NOT NULL,
            penalty_type VARCHAR(32),
            penalty_value DOUBLE PRECISION,
            details JSONB,
            detected_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_exploit_detections_user_id ON exploit_detections(user_id)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS discipline_activity_log (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            activity_type VARCHAR(32) NOT NULL,
            activity_data JSONB,
            duration_seconds INTEGER,
            input_length INTEGER,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_discipline_activity_log_user_id
        ON discipline_activity_log(user_id)
    """)

    # --- Notifications ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS notifications (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            type VARCHAR(32) NOT NULL DEFAULT 'discipline',
            subtype VARCHAR(32) NOT NULL,
            title VARCHAR(128) NOT NULL,
            description TEXT,
            action_url VARCHAR(256),
            action_label VARCHAR(64),
            payload JSONB,
            is_read BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_notifications_user_id ON notifications(user_id)")

    # --- Seasons ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS discipline_seasons (
            id BIGSERIAL PRIMARY KEY,
            season_number INTEGER UNIQUE NOT NULL,
            name VARCHAR(64) NOT NULL,
            theme VARCHAR(64),
            survival_xp_threshold INTEGER NOT NULL DEFAULT 0,
            rank_retention_threshold VARCHAR(16) NOT NULL DEFAULT 'Iron',
            is_active BOOLEAN NOT NULL DEFAULT false,
            started_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            ends_at TIMESTAMPTZ
        )
    """)


def downgrade() -> None:
    for table in [
        "discipline_seasons",
        "notifications",
        "discipline_activity_log",
        "exploit_detections",
        "task_completions",
        "user_titles",
        "discipline_challenges",
        "discipline_tasks",
        "discipline_profiles",
    ]:
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")  # noqa: S608
