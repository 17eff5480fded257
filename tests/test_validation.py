from conftest import FLAGSHIP, KEMPS
from studio.entities import TeacherRoster, Teacher
from studio.validation import (calculate_teacher_hours, class_counts, class_variety_score, under_target_teachers,
                               validate_addition)


def test_addition_over_ceiling_is_rejected(make_entry):
    schedule = [make_entry(duration=14.6)]

    result = validate_addition(schedule, make_entry(time='18:00', duration=1.0))

    assert not result.ok
    assert result.error == ("This would exceed Asha Rao's 15-hour weekly limit "
                            "(currently 14.6h, would be 15.6h)")
    assert result.warning is None


def test_addition_near_ceiling_warns(make_entry):
    schedule = [make_entry(duration=12.5)]

    result = validate_addition(schedule, make_entry(time='18:00', class_format='Recovery', duration=0.5))

    assert result.ok
    assert result.error is None
    assert '13.0h' in result.warning


def test_addition_well_under_ceiling(make_entry):
    schedule = [make_entry(duration=3), make_entry(teacher_id='T002', duration=14.5)]

    result = validate_addition(schedule, make_entry(time='18:00'))

    assert result.ok
    assert result.to_dict() == {'ok': True}


def test_landing_exactly_on_ceiling_is_allowed(make_entry):
    result = validate_addition([make_entry(duration=14.25)], make_entry(duration=0.75))

    assert result.ok
    assert result.warning


def test_only_the_same_teacher_counts(make_entry):
    schedule = [make_entry(teacher_id='T002', first_name='Priya', duration=14.9)]

    assert validate_addition(schedule, make_entry()).to_dict() == {'ok': True}


def test_calculate_teacher_hours(make_entry):
    schedule = [make_entry(), make_entry(class_format='Recovery', duration=0.5),
                make_entry(teacher_id='T002', location=KEMPS, duration=0.75)]

    ledger = calculate_teacher_hours(schedule)

    assert ledger.as_dict() == {'T001': 1.5, 'T002': 0.75}


def test_under_target_teachers_reports_only(make_entry):
    roster = TeacherRoster([Teacher('T001', 'Asha', 'Rao'), Teacher('T002', 'Priya', 'Menon')])
    schedule = [make_entry(duration=10), make_entry(teacher_id='T002', duration=4)]

    report = under_target_teachers(schedule, roster)

    assert report == [{'teacher_id': 'T002', 'teacher': 'Priya Menon', 'hours': 4.0}]
    assert len(schedule) == 2


def test_class_counts(make_entry):
    schedule = [make_entry(), make_entry(time='18:00'), make_entry(class_format='Mat 57', location=KEMPS)]

    counts = class_counts(schedule)

    assert counts[FLAGSHIP]['Monday'] == {'Barre 57': 2}
    assert counts[KEMPS]['Monday'] == {'Mat 57': 1}
    assert counts[KEMPS]['Sunday'] == {}
    assert set(counts[FLAGSHIP]) == {'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday'}


def test_class_variety_score(make_entry):
    schedule = [make_entry(), make_entry(time='18:00'), make_entry(time='19:00', class_format='HIIT'),
                make_entry(time='10:00', class_format='Mat 57')]

    assert class_variety_score(schedule, 'Monday', FLAGSHIP) == 0.75
    assert class_variety_score(schedule, 'Tuesday', FLAGSHIP) == 1.0
