import os
import sys
import sqlite3

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
sys.path.insert(0, BASE_DIR)
from app import DB_PATH

conn = sqlite3.connect(DB_PATH)
conn.row_factory = sqlite3.Row
c = conn.cursor()

print('DB:', DB_PATH)
total = c.execute('SELECT COUNT(*) AS c FROM timetable').fetchone()['c']
print('Total timetable rows:', total)
dups = c.execute('''
    SELECT class_instance_id, class_date, period_number, COUNT(*) AS cnt
    FROM timetable
    GROUP BY class_instance_id, class_date, period_number
    HAVING COUNT(*) > 1
    ORDER BY cnt DESC
''').fetchall()
print('Duplicate slots:', len(dups))
for r in dups[:10]:
    print(dict(r))

# Assignments pointing at a period number the class no longer defines
orphans = c.execute('''
    SELECT t.class_instance_id, t.class_date, t.period_number
    FROM timetable t
    LEFT JOIN periods p
      ON p.class_instance_id = t.class_instance_id
     AND p.period_number = t.period_number
    WHERE p.id IS NULL
    ORDER BY t.class_date
''').fetchall()
print('Assignments without a matching period:', len(orphans))
for r in orphans[:10]:
    print(dict(r))

conn.close()
