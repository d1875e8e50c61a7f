import os
import sys
import sqlite3
from datetime import time

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from scheduling import NotFoundError, PeriodCatalog, ValidationError
from scheduling.timekeeping import derive_end_time, parse_time


def setup_store(tmp_path):
    import app
    app.DB_PATH = str(tmp_path / 'test.db')
    app.init_db()
    return app.get_store()


def count_periods(class_instance_id):
    import app
    conn = sqlite3.connect(app.DB_PATH)
    n = conn.execute(
        'SELECT COUNT(*) FROM periods WHERE class_instance_id=?', (class_instance_id,)
    ).fetchone()[0]
    conn.close()
    return n


def test_consecutive_adds_are_numbered_from_one(tmp_path):
    store = setup_store(tmp_path)
    catalog = PeriodCatalog(store)
    plan = [('08:00', 45), ('08:45', 45), ('09:40', 50), ('10:30', 30), ('11:00', 60)]
    for start, duration in plan:
        catalog.add_period(1, start, duration)

    periods = catalog.list_periods(1)
    assert [p.period_number for p in periods] == [1, 2, 3, 4, 5]
    for period, (start, duration) in zip(periods, plan):
        assert period.start_time == parse_time(start)
        assert period.end_time == derive_end_time(start, duration)
        assert period.end_time > period.start_time
    store.close()


def test_first_period_on_empty_class(tmp_path):
    store = setup_store(tmp_path)
    catalog = PeriodCatalog(store)
    assert catalog.list_periods(1) == []

    period = catalog.add_period(1, '09:00', 45)
    assert period.period_number == 1
    assert period.end_time == time(9, 45)

    import app
    conn = sqlite3.connect(app.DB_PATH)
    conn.row_factory = sqlite3.Row
    row = conn.execute('SELECT * FROM periods WHERE class_instance_id=1').fetchone()
    assert row['period_number'] == 1
    assert row['start_time'] == '09:00:00'
    assert row['end_time'] == '09:45:00'
    conn.close()
    store.close()


@pytest.mark.parametrize('duration', [0, -10])
def test_bad_duration_adds_nothing(tmp_path, duration):
    store = setup_store(tmp_path)
    with pytest.raises(ValidationError):
        PeriodCatalog(store).add_period(1, '09:00', duration)
    assert count_periods(1) == 0
    store.close()


@pytest.mark.parametrize('class_id', [None, '', 0])
def test_class_is_required(tmp_path, class_id):
    store = setup_store(tmp_path)
    with pytest.raises(ValidationError):
        PeriodCatalog(store).add_period(class_id, '09:00', 45)
    store.close()


def test_unnumbered_rows_fall_back_to_one(tmp_path):
    store = setup_store(tmp_path)
    store.insert('periods', [
        {'class_instance_id': 1, 'period_number': None, 'start_time': '08:00:00', 'end_time': '08:30:00'},
    ])
    period = PeriodCatalog(store).add_period(1, '09:00', 30)
    assert period.period_number == 1
    store.close()


def test_numbering_continues_after_highest(tmp_path):
    store = setup_store(tmp_path)
    store.insert('periods', [
        {'class_instance_id': 1, 'period_number': 1, 'start_time': '08:00:00', 'end_time': '08:30:00'},
        {'class_instance_id': 1, 'period_number': 3, 'start_time': '09:00:00', 'end_time': '09:30:00'},
    ])
    period = PeriodCatalog(store).add_period(1, '10:00', 30)
    assert period.period_number == 4
    store.close()


def test_each_class_has_its_own_numbering(tmp_path):
    store = setup_store(tmp_path)
    catalog = PeriodCatalog(store)
    catalog.add_period(1, '08:00', 40)
    catalog.add_period(1, '08:40', 40)
    other = catalog.add_period(2, '08:00', 40)
    assert other.period_number == 1
    assert [p.period_number for p in catalog.list_periods(2)] == [1]
    store.close()


def test_get_period_missing(tmp_path):
    store = setup_store(tmp_path)
    catalog = PeriodCatalog(store)
    catalog.add_period(1, '08:00', 40)
    assert catalog.get_period(1, 1).end_time == time(8, 40)
    with pytest.raises(NotFoundError):
        catalog.get_period(1, 2)
    store.close()
