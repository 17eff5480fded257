import itertools

import pytest

from studio import create_app, db, bcrypt
from studio.entities import CustomTeacher, HistoricRecord, ScheduledClass, TeacherRoster
from studio.models import HistoricClass, Location, Teacher, User
from studio.rules import DEFAULT_RULES

FLAGSHIP = 'Supreme HQ, Bandra'
KEMPS = 'Kwality House, Kemps Corner'
KENKERE = 'Kenkere House'


def historic(location, day, time, class_format, teacher, participants, revenue=0.0, times=1):
    return [HistoricRecord(location, day, time, class_format, teacher, participants, revenue)] * times


@pytest.fixture
def records():
    """A small, hand-checkable history across all three locations"""
    return (
        historic(FLAGSHIP, 'Monday', '09:00', 'PowerCycle', 'Asha Rao', 10, 5000, times=3)
        + historic(FLAGSHIP, 'Monday', '09:00', 'Barre 57', 'Priya Menon', 9, 4000, times=2)
        + historic(FLAGSHIP, 'Monday', '09:00', 'HIIT', 'Priya Menon', 14, 6000, times=2)
        + historic(KEMPS, 'Monday', '07:00', 'Barre 57', 'Priya Menon', 8, 3000, times=2)
        + historic(KEMPS, 'Monday', '07:00', 'PowerCycle', 'Asha Rao', 12, 3000, times=2)
        + historic(KENKERE, 'Tuesday', '18:00', 'Strength Lab', 'Rohan Dahima', 7, 2500, times=2)
        + historic(KENKERE, 'Tuesday', '18:00', 'Hosted Class', 'Rohan Dahima', 20, 0, times=2)
        + historic(KENKERE, 'Wednesday', '08:00', 'Mat 57', 'Rohan Dahima', 3, 1000, times=4)
    )


@pytest.fixture
def roster(records):
    return TeacherRoster.from_sources(records)


@pytest.fixture
def make_entry():
    """Factory for ScheduledClass entries with unique ids"""
    counter = itertools.count(1)

    def _make(day='Monday', time='09:00', location=FLAGSHIP, class_format='Barre 57', teacher_id='T001',
              first_name='Asha', last_name='Rao', duration=None, participants=8.0, is_private=False, id=None):
        return ScheduledClass(
            id=id or f"test-{next(counter):04d}",
            day=day,
            time=time,
            location=location,
            class_format=class_format,
            teacher_id=teacher_id,
            teacher_first_name=first_name,
            teacher_last_name=last_name,
            duration=1.0 if duration is None else duration,
            participants=participants,
            revenue=0.0,
            is_top_performer=participants > 6,
            is_private=is_private,
        )
    return _make


# ==================== APP FIXTURES ====================

@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def seeded(app, records):
    for rule in DEFAULT_RULES.locations:
        db.session.add(Location(
            name=rule.name,
            max_parallel_classes=rule.max_parallel_classes,
            blocked_formats=', '.join(rule.blocked_formats),
            is_flagship=rule.is_flagship
        ))

    db.session.add(User(username='admin', password=bcrypt.generate_password_hash('admin').decode('utf-8'),
                        permissions=1))

    for record in records:
        db.session.add(HistoricClass(
            location=record.location,
            day_of_week=record.day_of_week,
            class_time=record.class_time,
            cleaned_class=record.cleaned_class,
            teacher_name=record.teacher_name,
            participants=record.participants,
            total_revenue=record.total_revenue,
        ))
    db.session.commit()
    return app


@pytest.fixture
def auth_client(seeded, client):
    response = client.post('/auth/login', json={'username': 'admin', 'password': 'admin'})
    assert response.status_code == 200
    return client


@pytest.fixture
def custom_teachers():
    return [
        CustomTeacher('Anisha', 'Shah', specialties=('Barre 57',)),
        CustomTeacher('Nia', 'Kapoor', is_new=True),
    ]


@pytest.fixture
def db_teacher(app):
    teacher = Teacher(first_name='Anisha', last_name='Shah')
    db.session.add(teacher)
    db.session.commit()
    return teacher
