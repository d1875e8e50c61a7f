import os
import sys
import sqlite3

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))


def setup_db(tmp_path):
    import app
    app.DB_PATH = str(tmp_path / 'test.db')
    app.init_db()
    conn = sqlite3.connect(app.DB_PATH)
    conn.row_factory = sqlite3.Row
    return conn


def test_new_database_is_seeded(tmp_path):
    conn = setup_db(tmp_path)
    classes = conn.execute("SELECT * FROM class_instances WHERE school_code='SCH001'").fetchall()
    assert len(classes) == 2
    subjects = conn.execute("SELECT subject_name FROM subjects WHERE school_code='SCH001'").fetchall()
    assert {r['subject_name'] for r in subjects} == {'Math', 'English', 'Science', 'History'}
    conn.close()


def test_cleared_tables_not_reseeded(tmp_path):
    import app
    conn = setup_db(tmp_path)
    conn.execute('DELETE FROM subjects')
    conn.commit()
    conn.close()

    # simulate application restart
    app.init_db()

    conn = sqlite3.connect(app.DB_PATH)
    assert conn.execute('SELECT COUNT(*) FROM subjects').fetchone()[0] == 0
    conn.close()


def test_legacy_timetable_is_migrated(tmp_path):
    import app
    app.DB_PATH = str(tmp_path / 'test.db')
    conn = sqlite3.connect(app.DB_PATH)
    cur = conn.cursor()
    # timetable table from before tenant tagging, with a duplicated slot
    cur.execute('''CREATE TABLE timetable (
        id INTEGER PRIMARY KEY,
        class_instance_id INTEGER,
        class_date TEXT,
        period_number INTEGER,
        subject_id INTEGER,
        admin_id INTEGER,
        start_time TEXT,
        end_time TEXT
    )''')
    rows = [
        (1, '2025-01-06', 1, 1, 1, '08:00:00', '08:45:00'),
        (1, '2025-01-06', 1, 2, 2, '08:00:00', '08:45:00'),
        (1, '2025-01-06', 2, 3, 3, '08:45:00', '09:30:00'),
    ]
    cur.executemany(
        'INSERT INTO timetable (class_instance_id, class_date, period_number, subject_id, admin_id, '
        'start_time, end_time) VALUES (?, ?, ?, ?, ?, ?, ?)',
        rows,
    )
    conn.commit()
    conn.close()

    app.init_db()

    conn = sqlite3.connect(app.DB_PATH)
    conn.row_factory = sqlite3.Row
    cols = [r[1] for r in conn.execute('PRAGMA table_info(timetable)')]
    assert 'school_code' in cols and 'created_by' in cols
    kept = conn.execute(
        'SELECT period_number, subject_id FROM timetable ORDER BY period_number'
    ).fetchall()
    # newest duplicate wins
    assert [(r['period_number'], r['subject_id']) for r in kept] == [(1, 2), (2, 3)]
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(
            "INSERT INTO timetable (class_instance_id, class_date, period_number) VALUES (1, '2025-01-06', 2)"
        )
    conn.close()


def test_missing_assignment_times_filled_from_periods(tmp_path):
    import app
    conn = setup_db(tmp_path)
    conn.execute(
        "INSERT INTO periods (class_instance_id, period_number, start_time, end_time) "
        "VALUES (1, 1, '08:00:00', '08:45:00')"
    )
    conn.execute(
        "INSERT INTO timetable (class_instance_id, class_date, period_number, subject_id, admin_id) "
        "VALUES (1, '2025-01-06', 1, 1, 1)"
    )
    conn.execute(
        "INSERT INTO timetable (class_instance_id, class_date, period_number, subject_id, admin_id) "
        "VALUES (1, '2025-01-06', 4, 1, 1)"
    )
    conn.commit()
    conn.close()

    app.init_db()

    conn = sqlite3.connect(app.DB_PATH)
    conn.row_factory = sqlite3.Row
    rows = conn.execute(
        'SELECT period_number, start_time, end_time FROM timetable ORDER BY period_number'
    ).fetchall()
    assert (rows[0]['start_time'], rows[0]['end_time']) == ('08:00:00', '08:45:00')
    # no period 4 defined, so it stays empty
    assert rows[1]['start_time'] is None
    conn.close()
