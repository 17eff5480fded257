from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from studio.entities import ScheduledClass, TeacherHourLedger, TeacherRoster
from studio.rules import DEFAULT_RULES, WEEKLY_HOUR_CEILING, StudioRules

HOURS_WARNING_THRESHOLD = 12.0
MINIMUM_WEEKLY_HOURS = 9.0


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    warning: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self):
        result = {'ok': self.ok}
        if self.warning:
            result['warning'] = self.warning
        if self.error:
            result['error'] = self.error
        return result


def validate_addition(schedule: Iterable[ScheduledClass], entry: ScheduledClass,
                      ceiling: float = WEEKLY_HOUR_CEILING,
                      warning_threshold: float = HOURS_WARNING_THRESHOLD) -> ValidationResult:
    """Check a manual addition against the teacher's weekly hours before committing it."""
    teacher_name = entry.teacher_name
    current_hours = round(sum(e.duration for e in schedule if e.teacher_id == entry.teacher_id), 2)
    new_total = round(current_hours + entry.duration, 2)

    if new_total > ceiling:
        return ValidationResult(
            ok=False,
            error=(f"This would exceed {teacher_name}'s {ceiling:g}-hour weekly limit "
                   f"(currently {current_hours:.1f}h, would be {new_total:.1f}h)")
        )
    if new_total > warning_threshold:
        return ValidationResult(
            ok=True,
            warning=f"{teacher_name} would have {new_total:.1f}h this week (approaching {ceiling:g}h limit)"
        )
    return ValidationResult(ok=True)


def calculate_teacher_hours(schedule: Iterable[ScheduledClass]) -> TeacherHourLedger:
    return TeacherHourLedger.from_schedule(schedule)


def under_target_teachers(schedule: Iterable[ScheduledClass], roster: TeacherRoster,
                          min_hours: float = MINIMUM_WEEKLY_HOURS) -> List[dict]:
    """
    Teachers below the weekly minimum. Reporting only: nothing is added to the
    schedule to close the gap.
    """
    ledger = calculate_teacher_hours(schedule)
    return [
        {'teacher_id': teacher.id, 'teacher': teacher.full_name, 'hours': ledger.hours(teacher.id)}
        for teacher in roster
        if ledger.hours(teacher.id) < min_hours
    ]


def class_counts(schedule: Iterable[ScheduledClass], rules: StudioRules = DEFAULT_RULES) -> Dict[str, Dict[str, Dict[str, int]]]:
    """location -> day -> class format -> number of classes"""
    counts = {location: {day: {} for day in rules.days} for location in rules.location_names}
    for entry in schedule:
        day_counts = counts.setdefault(entry.location, {day: {} for day in rules.days}).setdefault(entry.day, {})
        day_counts[entry.class_format] = day_counts.get(entry.class_format, 0) + 1
    return counts


def class_variety_score(schedule: Iterable[ScheduledClass], day: str, location: str) -> float:
    """Distinct formats over classes for one day at one location; 1.0 when nothing is scheduled"""
    day_classes = [e for e in schedule if e.day == day and e.location == location]
    if not day_classes:
        return 1.0
    return len({e.class_format for e in day_classes}) / len(day_classes)
