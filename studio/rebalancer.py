import logging
from typing import Iterable, List, Optional

from studio.entities import HistoricRecord, ScheduledClass, TeacherHourLedger
from studio.rules import WEEKLY_HOUR_CEILING

logger = logging.getLogger(__name__)


def rebalance_schedule(schedule: Iterable[ScheduledClass],
                       historic_records: Optional[Iterable[HistoricRecord]] = None,
                       locked_entries: Iterable[str] = (),
                       locked_teachers: Iterable = (),
                       ceiling: float = WEEKLY_HOUR_CEILING) -> List[ScheduledClass]:
    """
    Remove entries from teachers above the weekly ceiling.

    Non-top-performer entries go first. Locked entries and every entry of a
    locked teacher are left alone, even if that keeps the teacher over the
    ceiling. The input is not modified and an already compliant schedule comes
    back unchanged, so running this twice is the same as running it once.

    ``historic_records`` is accepted for callers that pass the full run context;
    removal does not depend on it.
    """
    rebalanced = list(schedule)
    locked_entries = set(locked_entries)
    locked_teachers = set(locked_teachers)

    ledger = TeacherHourLedger.from_schedule(rebalanced)
    overloaded = ledger.teachers_over(ceiling)
    if not overloaded:
        return rebalanced

    removed_ids = set()
    for teacher_id, hours in overloaded:
        if teacher_id in locked_teachers:
            logger.info(f"Teacher {teacher_id} is over the ceiling ({hours}h) but locked; leaving as is")
            continue

        removable = [e for e in rebalanced if e.teacher_id == teacher_id and e.id not in locked_entries]
        # Stable sort: non-top-performers first, original order otherwise
        removable.sort(key=lambda e: 1 if e.is_top_performer else 0)

        current_hours = hours
        logger.info(f"Teacher {teacher_id} has {hours}h; removing down to {ceiling}h")
        for entry in removable:
            if round(current_hours, 2) <= ceiling:
                break
            removed_ids.add(entry.id)
            current_hours -= entry.duration
            logger.info(f"  Removed {entry.class_format} {entry.location} {entry.day} {entry.time} ({entry.id})")

        if round(current_hours, 2) > ceiling:
            logger.warning(f"  Teacher {teacher_id} still at {current_hours:.2f}h; remaining entries are locked")

    return [e for e in rebalanced if e.id not in removed_ids]
