"""
Migration: longest streak and deferred achievement evaluation.

- study_profiles: add longest_streak (INTEGER, backfilled from current_streak).
- study_profiles: add achievements_dirty (BOOLEAN) so failed evaluations are retried.
- practice_sessions: partial unique index, one running attempt per (user, week).
"""

import sqlite3
import os


def _add_column(cursor, table: str, column: str, ddl: str) -> bool:
    try:
        cursor.execute(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}")
        print(f"{table}: added {column}")
        return True
    except sqlite3.OperationalError as e:
        if "duplicate column" in str(e).lower():
            print(f"{table}.{column} already exists. Skipping.")
            return False
        raise


def run_migration():
    db_path = os.getenv("DATABASE_URL", "sqlite:///./deoglory.db").replace("sqlite:///", "")
    conn = None
    try:
        conn = sqlite3.connect(db_path)
        cursor = conn.cursor()

        cursor.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='study_profiles'"
        )
        if cursor.fetchone():
            if _add_column(cursor, "study_profiles", "longest_streak", "INTEGER NOT NULL DEFAULT 0"):
                cursor.execute("UPDATE study_profiles SET longest_streak = current_streak")
            _add_column(cursor, "study_profiles", "achievements_dirty", "BOOLEAN NOT NULL DEFAULT 0")
        else:
            print("study_profiles table not found. Skipping column add.")

        cursor.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='practice_sessions'"
        )
        if cursor.fetchone():
            cursor.execute(
                "CREATE UNIQUE INDEX IF NOT EXISTS uq_practice_running "
                "ON practice_sessions (user_id, week_id) WHERE status = 'RUNNING'"
            )
            print("practice_sessions: ensured uq_practice_running")
        else:
            print("practice_sessions table not found. Skipping index.")

        conn.commit()
        print("✓ Migration add_streak_and_achievement_flags completed successfully!")

    except sqlite3.Error as e:
        print(f"Error during migration: {e}")
        if conn:
            conn.rollback()
    finally:
        if conn:
            conn.close()


if __name__ == "__main__":
    run_migration()
