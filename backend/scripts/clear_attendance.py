#!/usr/bin/env python3
"""
Completely clear attendance tables (attendees, dinner_groups). Fast (TRUNCATE, PostgreSQL).
The restaurants catalog is untouched.
Run: cd backend && poetry run python scripts/clear_attendance.py
"""
import sys
from pathlib import Path

# backend/scripts/ -> backend/
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import text

from app.db.session import engine
from app.db.tables import ATTENDANCE_TABLE_NAMES


def main():
    tables = ", ".join(ATTENDANCE_TABLE_NAMES)
    print(f"Connecting to DB and truncating {tables} ...")
    with engine.connect() as conn:
        conn.execute(text(f"TRUNCATE TABLE {tables} RESTART IDENTITY CASCADE"))
        conn.commit()
    print("Done. Nobody is attending any dinner group.")


if __name__ == "__main__":
    main()
