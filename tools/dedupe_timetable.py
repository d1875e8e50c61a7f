import os
import sys
import sqlite3

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
sys.path.insert(0, BASE_DIR)
from app import DB_PATH


def dedupe():
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    c = conn.cursor()

    # Keep the newest row per class/date/period
    c.execute(
        """
        DELETE FROM timetable
        WHERE rowid NOT IN (
            SELECT MAX(rowid) FROM timetable
            GROUP BY class_instance_id, class_date, period_number
        )
        """
    )
    removed_dups = c.rowcount

    c.execute(
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_timetable_slot "
        "ON timetable(class_instance_id, class_date, period_number)"
    )

    conn.commit()
    print("Removed {0} duplicate assignment(s); unique index ensured".format(removed_dups))
    conn.close()


if __name__ == "__main__":
    dedupe()
