"""Flask console for managing class timetables.

School administrators pick a class and a date, define the class periods
(start time plus duration), assign a subject and teacher to each period and
copy a finished day onto another date.  A month view shows which dates
already have a timetable.

The routes here only translate form fields and flash messages.  The actual
rules live in the ``scheduling`` package, which works against a small
select/insert/delete layer over the SQLite database stored in ``data/``.
The signed-in user's school and identity arrive in the Flask session from the
school's sign-in flow and are passed explicitly into every write.
"""

from flask import Flask, render_template, request, redirect, url_for, flash, session
import calendar
import logging
import os
import sqlite3
from datetime import date

from scheduling import (
    ADMIN_ROLES,
    DURATION_CHOICES,
    AssignmentStore,
    AuthorizationError,
    DataStore,
    Identity,
    PeriodCatalog,
    ReferenceData,
    StoreError,
    TimetableError,
    ValidationError,
    ViewProjector,
    format_date,
    format_time,
    month_bounds,
    parse_date,
)
from scheduling.periods import coerce_id

app = Flask(__name__)
app.secret_key = os.environ.get('SECRET_KEY', 'dev')

# The SQLite database lives in a dedicated ``data`` directory next to the
# application so the code directory itself can stay read-only.
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.path.join(BASE_DIR, "data")
os.makedirs(DATA_DIR, exist_ok=True)
DB_PATH = os.path.join(DATA_DIR, "timetable.db")

DEFAULT_DURATION = 45


def get_db():
    """Return a connection to the SQLite database.

    Setting ``row_factory`` lets rows behave like dictionaries.
    """
    dir_ = os.path.dirname(DB_PATH)
    if dir_:
        os.makedirs(dir_, exist_ok=True)
    conn = sqlite3.connect(DB_PATH, timeout=5.0)
    conn.row_factory = sqlite3.Row
    return conn


def get_store():
    """Return a :class:`DataStore` bound to a fresh connection."""
    return DataStore(get_db())


def init_db():
    """Create the SQLite tables and populate sample rows.

    Safe to call on every start-up: existing databases are migrated in place
    (tenant columns added, duplicate assignments removed, unique index
    ensured) and sample data is only inserted into a brand new file.
    """
    db_exists = os.path.exists(DB_PATH)
    conn = get_db()
    c = conn.cursor()

    def table_exists(name):
        c.execute("SELECT name FROM sqlite_master WHERE type='table' AND name=?", (name,))
        return c.fetchone() is not None

    def column_exists(table, column):
        c.execute(f"PRAGMA table_info({table})")
        return column in [row[1] for row in c.fetchall()]

    # Reference tables are owned by the other admin screens; they are created
    # here so a fresh install has something to schedule against.
    if not table_exists('class_instances'):
        c.execute('''CREATE TABLE class_instances (
            id INTEGER PRIMARY KEY,
            grade TEXT NOT NULL,
            section TEXT NOT NULL,
            school_code TEXT NOT NULL
        )''')
    if not table_exists('subjects'):
        c.execute('''CREATE TABLE subjects (
            id INTEGER PRIMARY KEY,
            subject_name TEXT NOT NULL,
            school_code TEXT NOT NULL
        )''')
    if not table_exists('admin'):
        c.execute('''CREATE TABLE admin (
            id INTEGER PRIMARY KEY,
            full_name TEXT NOT NULL,
            school_code TEXT NOT NULL
        )''')

    if not table_exists('periods'):
        c.execute('''CREATE TABLE periods (
            id INTEGER PRIMARY KEY,
            class_instance_id INTEGER NOT NULL,
            period_number INTEGER,
            start_time TEXT NOT NULL,
            end_time TEXT NOT NULL
        )''')
    c.execute(
        'CREATE INDEX IF NOT EXISTS idx_periods_class '
        'ON periods(class_instance_id, period_number)'
    )

    if not table_exists('timetable'):
        c.execute('''CREATE TABLE timetable (
            id INTEGER PRIMARY KEY,
            class_instance_id INTEGER NOT NULL,
            class_date TEXT NOT NULL,
            period_number INTEGER NOT NULL,
            subject_id INTEGER,
            admin_id INTEGER,
            school_code TEXT,
            start_time TEXT,
            end_time TEXT,
            created_by TEXT
        )''')
    else:
        # Older databases predate tenant tagging.
        for column in ('school_code', 'created_by'):
            if not column_exists('timetable', column):
                c.execute(f'ALTER TABLE timetable ADD COLUMN {column} TEXT')

    # Older rows may lack times; take them from the class's period definition.
    c.execute(
        '''UPDATE timetable SET
               start_time = (SELECT p.start_time FROM periods p
                             WHERE p.class_instance_id = timetable.class_instance_id
                               AND p.period_number = timetable.period_number),
               end_time = (SELECT p.end_time FROM periods p
                           WHERE p.class_instance_id = timetable.class_instance_id
                             AND p.period_number = timetable.period_number)
           WHERE (start_time IS NULL OR end_time IS NULL)
             AND EXISTS (SELECT 1 FROM periods p
                         WHERE p.class_instance_id = timetable.class_instance_id
                           AND p.period_number = timetable.period_number)'''
    )
    if c.rowcount > 0:
        logging.warning('Filled period times on %d timetable assignments', c.rowcount)

    # Keep only the newest row per class/date/period before enforcing the key.
    c.execute(
        '''DELETE FROM timetable WHERE rowid NOT IN (
               SELECT MAX(rowid) FROM timetable
               GROUP BY class_instance_id, class_date, period_number
           )'''
    )
    if c.rowcount > 0:
        logging.warning('Removed %d duplicate timetable assignments', c.rowcount)
    c.execute(
        'CREATE UNIQUE INDEX IF NOT EXISTS idx_timetable_slot '
        'ON timetable(class_instance_id, class_date, period_number)'
    )
    conn.commit()

    # Only insert sample data when creating a brand new database file.  If the
    # file already exists, assume any empty tables were intentionally cleared.
    if not db_exists:
        c.executemany(
            'INSERT INTO class_instances (grade, section, school_code) VALUES (?, ?, ?)',
            [('10', 'A', 'SCH001'), ('10', 'B', 'SCH001'), ('9', 'A', 'SCH002')],
        )
        c.executemany(
            'INSERT INTO subjects (subject_name, school_code) VALUES (?, ?)',
            [
                ('Math', 'SCH001'),
                ('English', 'SCH001'),
                ('Science', 'SCH001'),
                ('History', 'SCH001'),
                ('Math', 'SCH002'),
            ],
        )
        c.executemany(
            'INSERT INTO admin (full_name, school_code) VALUES (?, ?)',
            [
                ('Teacher A', 'SCH001'),
                ('Teacher B', 'SCH001'),
                ('Teacher C', 'SCH001'),
                ('Teacher D', 'SCH002'),
            ],
        )
    conn.commit()
    conn.close()


def current_identity():
    """Return the signed-in caller built from the session claims."""
    return Identity.from_claims(session)


@app.errorhandler(AuthorizationError)
def forbidden(exc):
    return render_template('forbidden.html', message=str(exc)), 403


def _report(exc):
    """Flash a failed operation; store failures are also logged."""
    if isinstance(exc, StoreError):
        app.logger.error('Timetable store failure during %s: %s', exc.step, exc.message)
    flash(str(exc), 'error')


def _form_duration(raw):
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError('Choose a period duration in minutes.') from None


@app.route('/')
def index():
    return redirect(url_for('timetable'))


@app.route('/timetable')
def timetable():
    """Render the day grid for one class.

    Without a ``class_instance_id`` the first class of the school is shown.
    The page also carries the forms for adding periods, assigning a period
    and copying the day.
    """
    identity = current_identity()
    raw_date = request.args.get('date') or date.today().isoformat()
    class_id = request.args.get('class_instance_id')
    store = get_store()
    try:
        reference = ReferenceData(store)
        catalog = PeriodCatalog(store)
        assignments = AssignmentStore(store, catalog)
        projector = ViewProjector(catalog, assignments, reference)

        classes = []
        subjects = []
        teachers = []
        selected = None
        rows = []
        try:
            day = parse_date(raw_date)
        except ValidationError as exc:
            _report(exc)
            day = date.today()
        try:
            classes = reference.class_instances(identity.school_code)
            subjects = reference.subjects(identity.school_code)
            teachers = reference.teachers(identity.school_code)
            if class_id:
                selected = reference.class_instance(identity.school_code, coerce_id(class_id, 'Class'))
            elif classes:
                selected = classes[0]
            if selected is not None:
                rows = projector.project_day(selected.id, day)
        except TimetableError as exc:
            _report(exc)
    finally:
        store.close()

    can_edit = identity.role in ADMIN_ROLES
    return render_template(
        'timetable.html',
        classes=classes,
        subjects=subjects,
        teachers=teachers,
        selected=selected,
        rows=rows,
        date=format_date(day),
        month=day.strftime('%Y-%m'),
        durations=DURATION_CHOICES,
        default_duration=DEFAULT_DURATION,
        can_edit=can_edit,
        format_time=format_time,
    )


@app.route('/timetable/month')
def timetable_month():
    """Show how many periods are assigned on each date of a month."""
    identity = current_identity()
    class_id = request.args.get('class_instance_id')
    month = request.args.get('month') or date.today().strftime('%Y-%m')
    store = get_store()
    selected = None
    counts = {}
    weeks = []
    try:
        reference = ReferenceData(store)
        catalog = PeriodCatalog(store)
        projector = ViewProjector(catalog, AssignmentStore(store, catalog), reference)
        try:
            first, _ = month_bounds(month)
            selected = reference.class_instance(identity.school_code, coerce_id(class_id, 'Class'))
            counts = projector.project_month(selected.id, first)
            weeks = calendar.Calendar().monthdatescalendar(first.year, first.month)
        except TimetableError as exc:
            _report(exc)
            return redirect(url_for('timetable'))
    finally:
        store.close()
    return render_template(
        'month.html',
        selected=selected,
        month=first.strftime('%Y-%m'),
        month_label=first.strftime('%B %Y'),
        counts=counts,
        weeks=weeks,
        current_month=first.month,
        format_date=format_date,
    )


@app.route('/manage_timetables')
def manage_timetables():
    """List the dates that already have a timetable for a class."""
    identity = current_identity()
    class_id = request.args.get('class_instance_id')
    store = get_store()
    try:
        reference = ReferenceData(store)
        try:
            selected = reference.class_instance(identity.school_code, coerce_id(class_id, 'Class'))
            dates = AssignmentStore(store).dates_with_assignments(selected.id)
        except TimetableError as exc:
            _report(exc)
            return redirect(url_for('timetable'))
    finally:
        store.close()
    return render_template(
        'manage_timetables.html',
        selected=selected,
        dates=[format_date(d) for d in dates],
    )


@app.route('/periods/add', methods=['POST'])
def add_period():
    """Append a period to a class.

    The period number and the end time are worked out from the existing
    periods and the chosen duration.
    """
    identity = current_identity().require_role(*ADMIN_ROLES)
    class_id = request.form.get('class_instance_id')
    target_date = request.form.get('date')
    store = get_store()
    try:
        cls = ReferenceData(store).class_instance(identity.school_code, coerce_id(class_id, 'Class'))
        duration = _form_duration(request.form.get('duration'))
        period = PeriodCatalog(store).add_period(cls.id, request.form.get('start_time'), duration)
        flash(
            f'Period {period.period_number} added '
            f'({period.start_time:%H:%M}-{period.end_time:%H:%M}).',
            'info',
        )
    except TimetableError as exc:
        _report(exc)
    finally:
        store.close()
    return redirect(url_for('timetable', class_instance_id=class_id, date=target_date))


@app.route('/timetable/assign', methods=['POST'])
def assign_period():
    """Set the subject and teacher of one period on one date."""
    identity = current_identity().require_role(*ADMIN_ROLES)
    class_id = request.form.get('class_instance_id')
    target_date = request.form.get('date')
    store = get_store()
    try:
        reference = ReferenceData(store)
        cls = reference.class_instance(identity.school_code, coerce_id(class_id, 'Class'))
        subject = reference.subject(
            identity.school_code, coerce_id(request.form.get('subject_id'), 'Subject')
        )
        teacher = reference.teacher(
            identity.school_code, coerce_id(request.form.get('teacher_id'), 'Teacher')
        )
        assignment = AssignmentStore(store).assign(
            cls.id,
            target_date,
            request.form.get('period_number'),
            subject.id,
            teacher.id,
            identity.school_code,
            identity.created_by,
        )
        flash(f'Period {assignment.period_number} saved.', 'info')
    except TimetableError as exc:
        _report(exc)
    finally:
        store.close()
    return redirect(url_for('timetable', class_instance_id=class_id, date=target_date))


@app.route('/timetable/copy', methods=['POST'])
def copy_timetable():
    """Copy every period of one date onto another.

    The target date is overwritten completely.  If it already has a
    timetable the user must tick the confirmation box first.
    """
    identity = current_identity().require_role(*ADMIN_ROLES)
    class_id = request.form.get('class_instance_id')
    source_date = request.form.get('source_date')
    target_date = request.form.get('target_date')
    redirect_date = source_date
    store = get_store()
    try:
        cls = ReferenceData(store).class_instance(identity.school_code, coerce_id(class_id, 'Class'))
        assignments = AssignmentStore(store)
        if assignments.get_assignments(cls.id, target_date) and not request.form.get('confirm'):
            flash('Timetable already exists for that date.', 'error')
        else:
            count = assignments.copy_day(
                cls.id,
                source_date,
                target_date,
                identity.school_code,
                identity.created_by,
            )
            flash(f'Copied {count} period(s) to {format_date(target_date)}.', 'info')
            redirect_date = target_date
    except TimetableError as exc:
        _report(exc)
    finally:
        store.close()
    return redirect(url_for('timetable', class_instance_id=class_id, date=redirect_date))


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    init_db()
    app.run(debug=True)
