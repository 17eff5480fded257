import pytest

from conftest import FLAGSHIP, KEMPS, KENKERE
from studio.entities import ClassCandidate, Teacher
from studio.rules import (DEFAULT_RULES, LocationRule, StudioRules, can_teacher_take_shift_class, class_duration,
                          format_in_slot, has_teacher_conflict, has_time_slot_capacity, hour_ceiling,
                          is_allowed_at_location, is_allowed_for_teacher, is_morning_shift, is_restricted_time,
                          is_valid_evening_time, max_parallel_classes, normalize_time, parse_minutes,
                          would_create_back_to_back_same_format, within_hour_ceiling)


@pytest.mark.parametrize('class_format, hours', [
    ('Barre 57 Express', 0.75),
    ('Recovery', 0.5),
    ('Sweat In 30', 0.5),
    ('PowerCycle', 1.0),
    ('', 1.0),
])
def test_class_duration(class_format, hours):
    assert class_duration(class_format) == hours


def test_hiit_never_allowed_at_flagship():
    assert not is_allowed_at_location('HIIT', FLAGSHIP)
    assert not is_allowed_at_location('Amped Up!', FLAGSHIP)
    assert not is_allowed_at_location('Studio HIIT Express', FLAGSHIP)


def test_cycling_only_at_flagship():
    assert is_allowed_at_location('PowerCycle', FLAGSHIP)
    assert not is_allowed_at_location('PowerCycle', KEMPS)
    assert not is_allowed_at_location('Power Cycle Express', KENKERE)
    assert is_allowed_at_location('HIIT', KEMPS)


def test_unknown_location_is_not_allowed():
    assert not is_allowed_at_location('Barre 57', 'Nowhere')
    assert max_parallel_classes('Nowhere') == 0


def test_custom_rules_drive_location_checks():
    rules = StudioRules(locations=(LocationRule('Pop-up', 1, ('barre',)),))
    assert not is_allowed_at_location('Barre 57', 'Pop-up', rules)
    assert is_allowed_at_location('Mat 57', 'Pop-up', rules)
    assert max_parallel_classes('Pop-up', rules) == 1
    assert not is_allowed_at_location('Mat 57', FLAGSHIP, rules)


def test_max_parallel_classes():
    assert max_parallel_classes(FLAGSHIP) == 3
    assert max_parallel_classes(KEMPS) == 2
    assert max_parallel_classes(KENKERE) == 2


@pytest.mark.parametrize('time, restricted', [
    ('11:59', False),
    ('12:00', True),
    ('13:00', True),
    ('15:30', True),
    ('15:31', False),
    ('17:00', False),
    ('lunch', True),
])
def test_is_restricted_time(time, restricted):
    assert is_restricted_time(time) is restricted


@pytest.mark.parametrize('time, day, valid', [
    ('17:00', 'Monday', True),
    ('16:30', 'Monday', False),
    ('16:00', 'Saturday', True),
    ('16:00', 'Sunday', True),
    ('15:30', 'Sunday', False),
    ('not a time', 'Saturday', False),
])
def test_is_valid_evening_time(time, day, valid):
    assert is_valid_evening_time(time, day) is valid


def test_time_parsing():
    assert parse_minutes('09:30') == 570
    assert parse_minutes('9:05:00') == 545
    assert parse_minutes('25:00') is None
    assert parse_minutes(None) is None
    assert normalize_time('7:00:00') == '07:00'
    assert is_morning_shift('13:30') is True
    assert is_morning_shift('14:00') is False
    assert is_morning_shift('??') is None


def test_slot_capacity_and_variety(make_entry):
    schedule = [make_entry(location=KEMPS, class_format='Barre 57'),
                make_entry(location=KEMPS, class_format='Mat 57')]

    assert not has_time_slot_capacity(schedule, 'Monday', '09:00', KEMPS)
    assert has_time_slot_capacity(schedule, 'Monday', '09:00', FLAGSHIP)
    assert has_time_slot_capacity(schedule, 'Tuesday', '09:00', KEMPS)
    assert format_in_slot(schedule, 'Monday', '09:00', KEMPS, 'Barre 57')
    assert not format_in_slot(schedule, 'Monday', '09:00', KEMPS, 'Strength Lab')


def test_back_to_back_same_format(make_entry):
    schedule = [make_entry(location=KEMPS, time='09:00', class_format='Barre 57')]

    def candidate(time, class_format='Barre 57', location=KEMPS, day='Monday'):
        return ClassCandidate(class_format, location, day, time)

    assert would_create_back_to_back_same_format(schedule, candidate('09:30'))
    assert would_create_back_to_back_same_format(schedule, candidate('08:30'))
    assert not would_create_back_to_back_same_format(schedule, candidate('10:00'))
    assert not would_create_back_to_back_same_format(schedule, candidate('09:30', class_format='Mat 57'))
    assert not would_create_back_to_back_same_format(schedule, candidate('09:30', location=FLAGSHIP))
    assert not would_create_back_to_back_same_format(schedule, candidate('09:30', day='Tuesday'))
    assert would_create_back_to_back_same_format(schedule, candidate('bad'))


def test_shift_class_cap(make_entry):
    schedule = [make_entry(time=time, teacher_id='T001') for time in ('06:00', '07:00', '08:00', '09:00')]

    assert not can_teacher_take_shift_class(schedule, 'T001', 'Monday', '10:00')
    assert can_teacher_take_shift_class(schedule, 'T001', 'Monday', '18:00')
    assert can_teacher_take_shift_class(schedule, 'T001', 'Tuesday', '10:00')
    assert can_teacher_take_shift_class(schedule, 'T002', 'Monday', '10:00')
    assert not can_teacher_take_shift_class(schedule, 'T001', 'Monday', 'whenever')


def test_teacher_conflict(make_entry):
    schedule = [make_entry(time='09:00', teacher_id='T001', location=KEMPS)]

    assert has_teacher_conflict(schedule, 'T001', 'Monday', '09:30', 1.0)
    assert has_teacher_conflict(schedule, 'T001', 'Monday', '08:30', 1.0)
    assert not has_teacher_conflict(schedule, 'T001', 'Monday', '08:00', 1.0)
    assert not has_teacher_conflict(schedule, 'T001', 'Monday', '10:00', 1.0)
    assert not has_teacher_conflict(schedule, 'T002', 'Monday', '09:00', 1.0)


def test_new_teacher_formats_and_ceiling():
    new_teacher = Teacher('T010', 'Nia', 'Kapoor', is_new=True)
    regular = Teacher('T011', 'Asha', 'Rao')

    assert is_allowed_for_teacher('Barre 57', new_teacher)
    assert is_allowed_for_teacher('PowerCycle', new_teacher)
    assert not is_allowed_for_teacher('Strength Lab', new_teacher)
    assert is_allowed_for_teacher('Strength Lab', regular)

    assert hour_ceiling(new_teacher) == 12.0
    assert hour_ceiling(regular) == 15.0


def test_within_hour_ceiling():
    assert within_hour_ceiling(14.25, 0.75, 15.0)
    assert within_hour_ceiling(14.0, 1.0, 15.0)
    assert not within_hour_ceiling(14.5, 1.0, 15.0)


def test_default_rules_slot_grid():
    assert '06:00' in DEFAULT_RULES.morning_slots
    assert not any(is_restricted_time(t) for t in DEFAULT_RULES.morning_slots)
    assert DEFAULT_RULES.location_names == [KEMPS, FLAGSHIP, KENKERE]
