import logging
from datetime import date, timedelta
from typing import Dict, List, Optional

import pandas as pd

from studio import db
from studio.entities import CustomTeacher, HistoricRecord, ScheduledClass, TeacherAvailability, TeacherRoster, \
                            normalize_name, split_full_name
from studio.models import HistoricClass, Location, ScheduleEntry, Teacher, TeacherSpecialty
from studio.rules import DEFAULT_RULES, LocationRule, StudioRules

logger = logging.getLogger(__name__)

HISTORIC_COLUMNS = ['location', 'day_of_week', 'class_time', 'cleaned_class', 'teacher_name', 'participants']


def week_bounds(week_start: Optional[date] = None):
    """Monday..Sunday of the week containing ``week_start`` (default: next week)."""
    if week_start is None:
        today = date.today()
        week_start = today + timedelta(days=7 - today.weekday())
    monday = week_start - timedelta(days=week_start.weekday())
    return monday, monday + timedelta(days=6)


def filter_available(roster: TeacherRoster, availability: Dict[object, TeacherAvailability],
                     week_start: date, week_end: date) -> TeacherRoster:
    unavailable = [teacher_id for teacher_id, entry in availability.items()
                   if not entry.is_available_during(week_start, week_end)]
    if unavailable:
        logger.info(f"  Excluding {len(unavailable)} teacher(s) unavailable {week_start} - {week_end}")
    return roster.without(unavailable)


class StudioDataProcessor:
    """
    Loads everything the scheduling engine needs from the database
    """

    def __init__(self, priority_teachers=()):
        self.priority_teachers = list(priority_teachers)

    def load_and_process_data(self, week_start: Optional[date] = None) -> dict:
        logger.info("Loading scheduling data from database...")

        self.records = load_historic_records()
        self._ensure_historic_teachers()
        self.rules = load_rules()
        custom_teachers, availability = self._load_roster()

        roster = TeacherRoster.from_sources(custom_teachers=custom_teachers)
        week_start, week_end = week_bounds(week_start)
        available_roster = filter_available(roster, availability, week_start, week_end)

        logger.info(f"  Loaded {len(self.records)} historic records")
        logger.info(f"  Loaded {len(roster)} teachers ({len(available_roster)} available)")
        logger.info(f"  Locations: {self.rules.location_names}")

        return {
            'records': self.records,
            'roster': available_roster,
            'full_roster': roster,
            'rules': self.rules,
            'availability': availability,
            'priority_teachers': self.priority_teachers,
            'week_start': week_start,
            'week_end': week_end,
        }

    def _ensure_historic_teachers(self):
        """Every teacher seen in the history gets a roster row, so every teacher has a stable id"""
        known = {normalize_name(t.full_name) for t in Teacher.query.all()}
        created = 0
        for name in sorted({r.teacher_name for r in self.records if r.teacher_name}):
            if normalize_name(name) in known:
                continue
            first, last = split_full_name(name)
            db.session.add(Teacher(first_name=first, last_name=last))
            known.add(normalize_name(name))
            created += 1

        if created:
            db.session.commit()
            logger.info(f"  Added {created} historic teacher(s) to the roster")

    def _load_roster(self):
        custom_teachers = []
        availability = {}
        for teacher in Teacher.query.order_by(Teacher.id).all():
            custom_teachers.append(CustomTeacher(
                first_name=teacher.first_name,
                last_name=teacher.last_name,
                specialties=tuple(s.class_format for s in teacher.specialties),
                is_new=teacher.is_new,
                id=teacher.id,
            ))

            if teacher.leave or teacher.unavailable_dates:
                availability[teacher.id] = TeacherAvailability(
                    is_on_leave=bool(teacher.leave and teacher.leave.is_on_leave),
                    leave_start=teacher.leave.leave_start if teacher.leave else None,
                    leave_end=teacher.leave.leave_end if teacher.leave else None,
                    unavailable_dates=tuple(d.date for d in teacher.unavailable_dates),
                )
        return custom_teachers, availability


def load_database_driven(priority_teachers=(), week_start=None) -> dict:
    processor = StudioDataProcessor(priority_teachers)
    return processor.load_and_process_data(week_start)


def load_historic_records() -> List[HistoricRecord]:
    return [
        HistoricRecord(
            location=row.location,
            day_of_week=row.day_of_week,
            class_time=row.class_time,
            cleaned_class=row.cleaned_class,
            teacher_name=row.teacher_name,
            participants=row.participants,
            total_revenue=row.total_revenue,
            checked_in=row.checked_in,
            late_cancelled=row.late_cancelled,
            comps=row.comps,
        )
        for row in HistoricClass.query.all()
    ]


def load_rules() -> StudioRules:
    locations = Location.query.order_by(Location.id).all()
    if not locations:
        logger.info("  No locations configured, using default studio rules")
        return DEFAULT_RULES

    return StudioRules(locations=tuple(
        LocationRule(
            name=location.name,
            max_parallel_classes=location.max_parallel_classes,
            blocked_formats=tuple(location.blocked_format_list),
            is_flagship=location.is_flagship,
        )
        for location in locations
    ))


def load_roster() -> TeacherRoster:
    """Every teacher row, leave included"""
    custom_teachers, _ = StudioDataProcessor()._load_roster()
    return TeacherRoster.from_sources(custom_teachers=custom_teachers)


# ==================== SCHEDULE <-> DATABASE ====================

def entry_from_row(row: ScheduleEntry) -> ScheduledClass:
    return ScheduledClass(
        id=row.uid,
        day=row.day,
        time=row.time,
        location=row.location,
        class_format=row.class_format,
        teacher_id=row.teacher_id,
        teacher_first_name=row.teacher.first_name if row.teacher else '',
        teacher_last_name=row.teacher.last_name if row.teacher else '',
        duration=row.duration,
        participants=row.participants,
        revenue=row.revenue,
        is_top_performer=row.is_top_performer,
        is_private=row.is_private,
    )


def row_from_entry(entry: ScheduledClass, schedule_id: int, locked: bool = False) -> ScheduleEntry:
    return ScheduleEntry(
        uid=entry.id,
        schedule_id=schedule_id,
        teacher_id=entry.teacher_id,
        day=entry.day,
        time=entry.time,
        location=entry.location,
        class_format=entry.class_format,
        duration=entry.duration,
        participants=entry.participants,
        revenue=entry.revenue,
        is_top_performer=entry.is_top_performer,
        is_private=entry.is_private,
        locked=locked,
    )


# ==================== FILE SEEDING ====================

def load_historic_csv(file) -> int:
    """Insert an already-normalized historic CSV (one row per past class)"""
    df = pd.read_csv(file)
    if df.empty:
        raise ValueError("CSV file is empty")

    missing_columns = [col for col in HISTORIC_COLUMNS if col not in df.columns]
    if missing_columns:
        raise ValueError(f"Missing required columns: {', '.join(missing_columns)}")

    df = df.fillna({'total_revenue': 0, 'checked_in': 0, 'late_cancelled': 0, 'comps': 0})
    processed_count = 0
    for row in df.to_dict('records'):
        db.session.add(HistoricClass(
            location=str(row['location']).strip(),
            day_of_week=str(row['day_of_week']).strip(),
            class_time=str(row['class_time']).strip(),
            cleaned_class=str(row['cleaned_class']).strip(),
            teacher_name=' '.join(str(row['teacher_name']).split()),
            participants=float(row['participants']),
            total_revenue=float(row.get('total_revenue', 0)),
            checked_in=int(row.get('checked_in', 0)),
            late_cancelled=int(row.get('late_cancelled', 0)),
            comps=int(row.get('comps', 0)),
        ))
        processed_count += 1

    db.session.commit()
    logger.info(f"Processed {processed_count} historic class records")
    return processed_count


def load_roster_csv(file) -> int:
    """Insert roster rows: first_name, last_name, is_new, specialties (';' separated)"""
    df = pd.read_csv(file)
    if df.empty:
        raise ValueError("CSV file is empty")

    missing_columns = [col for col in ['first_name', 'last_name'] if col not in df.columns]
    if missing_columns:
        raise ValueError(f"Missing required columns: {', '.join(missing_columns)}")

    processed_count = 0
    for row in df.fillna('').to_dict('records'):
        teacher = Teacher(
            first_name=str(row['first_name']).strip(),
            last_name=str(row['last_name']).strip(),
            is_new=str(row.get('is_new', '')).strip().lower() in ('1', 'true', 'yes'),
        )
        for class_format in str(row.get('specialties', '')).split(';'):
            if class_format.strip():
                teacher.specialties.append(TeacherSpecialty(class_format=class_format.strip()))
        db.session.add(teacher)
        processed_count += 1

    db.session.commit()
    logger.info(f"Processed {processed_count} roster records")
    return processed_count
