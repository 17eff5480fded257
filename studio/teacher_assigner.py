import logging
from typing import Hashable, List, Optional

from studio.entities import ClassCandidate, ScheduledClass, Teacher, TeacherHourLedger, TeacherRoster
from studio.rules import (DEFAULT_RULES, NEW_TEACHER_HOUR_CEILING, SHIFT_CLASS_CAP, WEEKLY_HOUR_CEILING,
                          StudioRules, can_teacher_take_shift_class, class_duration, has_teacher_conflict,
                          hour_ceiling, is_allowed_for_teacher, is_morning_shift, teacher_shift_classes,
                          within_hour_ceiling)

logger = logging.getLogger(__name__)


class TeacherAssigner:
    """
    Chooses a teacher for a candidate class against the live schedule and ledger.

    Both ``schedule`` and ``ledger`` belong to the current run and are mutated
    by ``commit``; nothing here is shared between runs.
    """

    def __init__(self, roster: TeacherRoster, schedule: List[ScheduledClass], ledger: TeacherHourLedger,
                 rules: StudioRules = DEFAULT_RULES,
                 weekly_ceiling: float = WEEKLY_HOUR_CEILING,
                 new_teacher_ceiling: float = NEW_TEACHER_HOUR_CEILING,
                 shift_class_cap: int = SHIFT_CLASS_CAP):
        self.roster = roster
        self.schedule = schedule
        self.ledger = ledger
        self.rules = rules
        self.weekly_ceiling = weekly_ceiling
        self.new_teacher_ceiling = new_teacher_ceiling
        self.shift_class_cap = shift_class_cap

    def ceiling_for(self, teacher: Teacher) -> float:
        return hour_ceiling(teacher, self.weekly_ceiling, self.new_teacher_ceiling)

    def fits_schedule(self, teacher: Teacher, class_format: str, day: str, time: str) -> bool:
        """Shift cap, overlap and new-teacher formats; hours are not checked here."""
        return (can_teacher_take_shift_class(self.schedule, teacher.id, day, time, self.shift_class_cap)
                and not has_teacher_conflict(self.schedule, teacher.id, day, time, class_duration(class_format))
                and is_allowed_for_teacher(class_format, teacher, self.rules))

    def is_eligible(self, teacher: Teacher, class_format: str, day: str, time: str) -> bool:
        duration = class_duration(class_format)
        return (within_hour_ceiling(self.ledger.hours(teacher.id), duration, self.ceiling_for(teacher))
                and self.fits_schedule(teacher, class_format, day, time))

    def eligible_teachers(self, candidate: ClassCandidate) -> List[Teacher]:
        return [t for t in self.roster
                if self.is_eligible(t, candidate.class_format, candidate.day, candidate.time)]

    def choose(self, candidate: ClassCandidate) -> Optional[Teacher]:
        """Best eligible teacher, or None when nobody can take the class."""
        eligible = self.eligible_teachers(candidate)
        if not eligible:
            return None

        if candidate.preferred_teacher_id is not None:
            for teacher in eligible:
                if teacher.id == candidate.preferred_teacher_id:
                    return teacher

        # Keep the shift's headcount low: reuse teachers already working it at this location
        is_morning = is_morning_shift(candidate.time)
        in_shift = [t for t in eligible
                    if teacher_shift_classes(self.schedule, t.id, candidate.day, is_morning, candidate.location)]
        pool = in_shift or eligible

        # sorted() is stable, so exact ties keep roster order
        return sorted(pool, key=lambda t: self.ledger.hours(t.id))[0]

    def commit(self, candidate: ClassCandidate, teacher: Teacher, entry_id: str) -> ScheduledClass:
        duration = class_duration(candidate.class_format)
        entry = ScheduledClass(
            id=entry_id,
            day=candidate.day,
            time=candidate.time,
            location=candidate.location,
            class_format=candidate.class_format,
            teacher_id=teacher.id,
            teacher_first_name=teacher.first_name,
            teacher_last_name=teacher.last_name,
            duration=duration,
            participants=candidate.participants,
            revenue=candidate.revenue,
            is_top_performer=candidate.is_top_performer,
            is_private=candidate.is_private,
        )
        self.schedule.append(entry)
        self.ledger.add(teacher.id, duration)
        return entry

    def assign(self, candidate: ClassCandidate, entry_id: str) -> Optional[ScheduledClass]:
        teacher = self.choose(candidate)
        if teacher is None:
            logger.debug(f"    No eligible teacher for {candidate.class_format} at "
                         f"{candidate.location} {candidate.day} {candidate.time}")
            return None
        return self.commit(candidate, teacher, entry_id)

    def hours(self, teacher_id: Hashable) -> float:
        return self.ledger.hours(teacher_id)
