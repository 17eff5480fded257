import logging
from dataclasses import asdict, dataclass
from functools import cmp_to_key
from typing import Dict, Iterable, List, Optional, Set

import pandas as pd

from studio.entities import HistoricRecord
from studio.rules import DEFAULT_RULES, StudioRules, is_allowed_at_location, is_hosted_class, normalize_time

logger = logging.getLogger(__name__)

RECORD_COLUMNS = ['location', 'day_of_week', 'class_time', 'cleaned_class', 'teacher_name',
                  'participants', 'total_revenue', 'checked_in', 'late_cancelled', 'comps']

MIN_FREQUENCY = 2
SPECIALTY_LIMIT = 5


@dataclass(frozen=True)
class ClassPerformance:
    class_format: str
    avg_participants: float
    avg_revenue: float
    frequency: int


@dataclass(frozen=True)
class TeacherPerformance:
    teacher: str
    avg_participants: float
    classes_count: int


@dataclass(frozen=True)
class TopPerformingClass:
    class_format: str
    location: str
    day: str
    time: str
    teacher: str
    avg_participants: float
    avg_revenue: float
    frequency: int

    @property
    def is_top_performer(self):
        return self.avg_participants > 6


@dataclass(frozen=True)
class Specialty:
    class_format: str
    avg_participants: float
    class_count: int


def records_to_frame(records: Iterable[HistoricRecord]) -> pd.DataFrame:
    """Historic records as a DataFrame with times normalized to HH:MM (malformed times dropped)"""
    df = pd.DataFrame([asdict(r) for r in records], columns=RECORD_COLUMNS)
    if df.empty:
        return df

    df['class_time'] = df['class_time'].map(normalize_time)
    df = df[df['class_time'].notna()].copy()
    df['participants'] = pd.to_numeric(df['participants'], errors='coerce').fillna(0.0)
    df['total_revenue'] = pd.to_numeric(df['total_revenue'], errors='coerce').fillna(0.0)
    return df


def _without_hosted(df: pd.DataFrame) -> pd.DataFrame:
    if df.empty:
        return df
    return df[~df['cleaned_class'].map(is_hosted_class)]


def class_performance(records: Iterable[HistoricRecord]) -> List[ClassPerformance]:
    df = records_to_frame(records)
    if df.empty:
        return []

    grouped = df.groupby('cleaned_class', sort=False).agg(
        avg_participants=('participants', 'mean'),
        avg_revenue=('total_revenue', 'mean'),
        frequency=('participants', 'count'),
    ).reset_index()
    grouped = grouped.sort_values('avg_participants', ascending=False, kind='stable')

    return [
        ClassPerformance(
            class_format=row.cleaned_class,
            avg_participants=float(row.avg_participants),
            avg_revenue=float(row.avg_revenue),
            frequency=int(row.frequency),
        )
        for row in grouped.itertuples(index=False)
    ]


def teacher_performance(records: Iterable[HistoricRecord]) -> List[TeacherPerformance]:
    df = records_to_frame(records)
    if df.empty:
        return []

    grouped = df.groupby('teacher_name', sort=False).agg(
        avg_participants=('participants', 'mean'),
        classes_count=('participants', 'count'),
    ).reset_index()
    grouped = grouped.sort_values('avg_participants', ascending=False, kind='stable')

    return [
        TeacherPerformance(
            teacher=row.teacher_name,
            avg_participants=float(row.avg_participants),
            classes_count=int(row.classes_count),
        )
        for row in grouped.itertuples(index=False)
    ]


def _compare_top_classes(a: TopPerformingClass, b: TopPerformingClass) -> int:
    # Averages within one participant count as a tie, broken by how often the class ran
    participant_diff = b.avg_participants - a.avg_participants
    if abs(participant_diff) > 1:
        return 1 if participant_diff > 0 else -1
    return b.frequency - a.frequency


def top_performing_classes(records: Iterable[HistoricRecord], min_average: float = 6,
                           include_teacher: bool = True,
                           rules: StudioRules = DEFAULT_RULES) -> List[TopPerformingClass]:
    """
    Rank (format, location, day, time[, teacher]) groups by attendance.

    Hosted classes and formats not allowed at their location are excluded.
    Groups need at least two occurrences and an average of ``min_average``.
    """
    df = _without_hosted(records_to_frame(records))
    if df.empty:
        return []

    allowed = [is_allowed_at_location(fmt, loc, rules) for fmt, loc in zip(df['cleaned_class'], df['location'])]
    df = df[allowed]
    if df.empty:
        return []

    keys = ['cleaned_class', 'location', 'day_of_week', 'class_time']
    if include_teacher:
        keys.append('teacher_name')

    grouped = df.groupby(keys, sort=False).agg(
        total_participants=('participants', 'sum'),
        total_revenue=('total_revenue', 'sum'),
        frequency=('participants', 'count'),
    ).reset_index()

    top_classes = []
    for row in grouped.to_dict('records'):
        frequency = int(row['frequency'])
        avg_participants = round(row['total_participants'] / frequency, 1)
        if frequency < MIN_FREQUENCY or avg_participants < min_average:
            continue
        top_classes.append(TopPerformingClass(
            class_format=row['cleaned_class'],
            location=row['location'],
            day=row['day_of_week'],
            time=row['class_time'],
            teacher=row['teacher_name'] if include_teacher else '',
            avg_participants=float(avg_participants),
            avg_revenue=float(round(row['total_revenue'] / frequency, 1)),
            frequency=frequency,
        ))

    return sorted(top_classes, key=cmp_to_key(_compare_top_classes))


def teacher_specialties(records: Iterable[HistoricRecord]) -> Dict[str, List[Specialty]]:
    """Top formats per teacher; experience (class count) outweighs a lucky average."""
    df = _without_hosted(records_to_frame(records))
    if df.empty:
        return {}

    grouped = df.groupby(['teacher_name', 'cleaned_class'], sort=False).agg(
        avg_participants=('participants', 'mean'),
        class_count=('participants', 'count'),
    ).reset_index()
    grouped['avg_participants'] = grouped['avg_participants'].round(1)
    grouped = grouped.sort_values(['class_count', 'avg_participants'], ascending=[False, False], kind='stable')

    specialties = {}
    for teacher, group in grouped.groupby('teacher_name', sort=False):
        specialties[teacher] = [
            Specialty(row.cleaned_class, float(row.avg_participants), int(row.class_count))
            for row in group.head(SPECIALTY_LIMIT).itertuples(index=False)
        ]
    return specialties


def _slot_frame(records, class_format, location, day, time) -> pd.DataFrame:
    df = _without_hosted(records_to_frame(records))
    slot_time = normalize_time(time)
    if df.empty or slot_time is None:
        return df.iloc[0:0]
    return df[(df['cleaned_class'] == class_format) &
              (df['location'] == location) &
              (df['day_of_week'] == day) &
              (df['class_time'] == slot_time)]


def best_teacher_for_slot(records: Iterable[HistoricRecord], class_format: str, location: str,
                          day: str, time: str) -> Optional[str]:
    df = _slot_frame(records, class_format, location, day, time)
    if df.empty:
        return None

    averages = df.groupby('teacher_name', sort=False)['participants'].mean()
    averages = averages.sort_values(ascending=False, kind='stable')
    return str(averages.index[0])


def class_average_for_slot(records: Iterable[HistoricRecord], class_format: str, location: str,
                           day: str, time: str, teacher_name: Optional[str] = None) -> dict:
    df = _slot_frame(records, class_format, location, day, time)
    if teacher_name and not df.empty:
        df = df[df['teacher_name'] == teacher_name]
    if df.empty:
        return {'average': 0.0, 'count': 0}
    return {'average': round(float(df['participants'].mean()), 1), 'count': int(len(df))}


def location_average(records: Iterable[HistoricRecord], location: str) -> float:
    df = _without_hosted(records_to_frame(records))
    if df.empty:
        return 0.0
    df = df[df['location'] == location]
    return float(df['participants'].mean()) if not df.empty else 0.0


def time_slots_with_data(records: Iterable[HistoricRecord], location: str) -> Set[str]:
    df = _without_hosted(records_to_frame(records))
    if df.empty:
        return set()
    return set(df.loc[df['location'] == location, 'class_time'])


def unique_teachers(records: Iterable[HistoricRecord], custom_teachers: Iterable = ()) -> List[str]:
    names = {r.teacher_name for r in records if r.teacher_name}
    names.update(t.full_name for t in custom_teachers)
    return sorted(names)


class HistoricAnalysis:
    """Rankings computed once at the start of a generation run."""

    def __init__(self, records: Iterable[HistoricRecord], min_average: float = 6,
                 rules: StudioRules = DEFAULT_RULES):
        self.records = list(records)
        self.min_average = min_average
        self.rules = rules

        self.top_classes = top_performing_classes(self.records, min_average, True, rules)
        self.specialties = teacher_specialties(self.records)
        self._by_slot = {}
        for top_class in self.top_classes:
            key = (top_class.location, top_class.day, top_class.time)
            self._by_slot.setdefault(key, []).append(top_class)

        logger.info(f"Historic analysis: {len(self.records)} records, "
                    f"{len(self.top_classes)} top-performing groups, "
                    f"{len(self.specialties)} teachers with specialties")

    def classes_for_slot(self, location: str, day: str, time: str) -> List[TopPerformingClass]:
        return list(self._by_slot.get((location, day, normalize_time(time)), []))

    def specialties_for(self, teacher_name: str) -> List[Specialty]:
        return list(self.specialties.get(teacher_name, []))
