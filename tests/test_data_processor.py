import io
from datetime import date

import pytest

from conftest import KEMPS
from studio import db
from studio.data_processor import (StudioDataProcessor, entry_from_row, filter_available, load_historic_csv,
                                   load_roster, load_roster_csv, load_rules, row_from_entry, week_bounds)
from studio.entities import TeacherAvailability, TeacherRoster, Teacher
from studio.models import Location, Schedule, Teacher as TeacherRow, TeacherLeave, TeacherUnavailableDate
from studio.rules import DEFAULT_RULES


def test_week_bounds():
    assert week_bounds(date(2026, 10, 21)) == (date(2026, 10, 19), date(2026, 10, 25))
    monday, sunday = week_bounds()
    assert monday.weekday() == 0
    assert monday > date.today()
    assert (sunday - monday).days == 6


def test_filter_available():
    roster = TeacherRoster([Teacher(1, 'Asha', 'Rao'), Teacher(2, 'Priya', 'Menon'), Teacher(3, 'Rohan', '')])
    availability = {
        1: TeacherAvailability(is_on_leave=True, leave_start=date(2026, 10, 15), leave_end=date(2026, 10, 20)),
        2: TeacherAvailability(unavailable_dates=(date(2026, 11, 2),)),
    }

    available = filter_available(roster, availability, date(2026, 10, 19), date(2026, 10, 25))

    assert available.ids() == [2, 3]


def test_open_ended_leave_blocks_every_week():
    assert not TeacherAvailability(is_on_leave=True).is_available_during(date(2026, 10, 19), date(2026, 10, 25))
    assert TeacherAvailability(is_on_leave=False).is_available_during(date(2026, 10, 19), date(2026, 10, 25))


def test_rules_fall_back_to_defaults(app):
    assert load_rules() is DEFAULT_RULES

    db.session.add(Location(name='Pop-up', max_parallel_classes=1, blocked_formats='barre, hiit'))
    db.session.commit()

    rules = load_rules()
    assert rules.location_names == ['Pop-up']
    assert rules.location('Pop-up').blocked_formats == ('barre', 'hiit')


def test_load_creates_teachers_for_history(seeded):
    data = StudioDataProcessor(['Asha']).load_and_process_data(date(2026, 10, 19))

    names = sorted(t.full_name for t in data['roster'])
    assert names == ['Asha Rao', 'Priya Menon', 'Rohan Dahima']
    assert TeacherRow.query.count() == 3
    assert len(data['records']) == 19
    assert data['rules'].location_names == DEFAULT_RULES.location_names
    assert data['week_start'] == date(2026, 10, 19)
    assert data['priority_teachers'] == ['Asha']

    # A second load reuses the same rows and ids
    again = StudioDataProcessor().load_and_process_data(date(2026, 10, 19))
    assert TeacherRow.query.count() == 3
    assert again['roster'].ids() == data['roster'].ids()


def test_teachers_on_leave_are_dropped(seeded):
    StudioDataProcessor().load_and_process_data()
    asha = TeacherRow.query.filter_by(first_name='Asha').first()
    priya = TeacherRow.query.filter_by(first_name='Priya').first()
    asha.leave = TeacherLeave(is_on_leave=True, leave_start=date(2026, 10, 1), leave_end=date(2026, 10, 31))
    priya.unavailable_dates.append(TeacherUnavailableDate(date=date(2026, 10, 22)))
    db.session.commit()

    data = StudioDataProcessor().load_and_process_data(date(2026, 10, 19))

    assert [t.full_name for t in data['roster']] == ['Rohan Dahima']
    assert len(data['full_roster']) == 3
    assert asha.id in data['availability']
    assert len(load_roster()) == 3


def test_historic_csv_loading(app):
    csv = io.StringIO(
        "location,day_of_week,class_time,cleaned_class,teacher_name,participants,total_revenue\n"
        f"\"{KEMPS}\",Monday,07:00,Barre 57,Priya   Menon,8,3000\n"
        f"\"{KEMPS}\",Monday,07:00,Barre 57,Priya Menon,10,\n"
    )

    assert load_historic_csv(csv) == 2

    data = StudioDataProcessor().load_and_process_data()
    assert {r.teacher_name for r in data['records']} == {'Priya Menon'}
    assert sorted(r.total_revenue for r in data['records']) == [0.0, 3000.0]


def test_historic_csv_missing_columns(app):
    with pytest.raises(ValueError, match='Missing required columns'):
        load_historic_csv(io.StringIO("location,day_of_week\nKenkere House,Monday\n"))


def test_roster_csv_loading(app):
    csv = io.StringIO(
        "first_name,last_name,is_new,specialties\n"
        "Anisha,Shah,no,Barre 57; Mat 57\n"
        "Nia,Kapoor,yes,\n"
    )

    assert load_roster_csv(csv) == 2

    roster = load_roster()
    anisha = roster.find('Anisha')
    assert anisha.specialties == ('Barre 57', 'Mat 57')
    assert not anisha.is_new
    assert roster.find('Nia').is_new


def test_schedule_entry_rows(app, make_entry):
    teacher = TeacherRow(first_name='Asha', last_name='Rao')
    schedule = Schedule()
    db.session.add_all([teacher, schedule])
    db.session.flush()

    entry = make_entry(teacher_id=teacher.id, id='gen-0-0001')
    row = row_from_entry(entry, schedule.id, locked=True)
    db.session.add(row)
    db.session.commit()

    assert row.locked
    assert entry_from_row(row) == entry
