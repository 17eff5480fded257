from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Hashable, Iterable, List, Optional, Tuple


def normalize_name(name: str) -> str:
    """Lookup key for a person's name: collapsed whitespace, case-folded."""
    return ' '.join(str(name or '').split()).casefold()


def split_full_name(full_name: str) -> Tuple[str, str]:
    parts = ' '.join(str(full_name or '').split()).split(' ')
    return parts[0], ' '.join(parts[1:])


# =============================================================
# ======================= Input records =======================
# =============================================================

@dataclass(frozen=True)
class HistoricRecord:
    """One observed past class occurrence."""
    location: str
    day_of_week: str
    class_time: str
    cleaned_class: str
    teacher_name: str
    participants: float
    total_revenue: float = 0.0
    checked_in: int = 0
    late_cancelled: int = 0
    comps: int = 0


@dataclass(frozen=True)
class CustomTeacher:
    first_name: str
    last_name: str
    specialties: Tuple[str, ...] = ()
    is_new: bool = False
    id: Optional[Hashable] = None

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class TeacherAvailability:
    """Leave window and single unavailable dates for one teacher"""
    is_on_leave: bool = False
    leave_start: Optional[date] = None
    leave_end: Optional[date] = None
    unavailable_dates: Tuple[date, ...] = ()

    def is_available_during(self, week_start: date, week_end: date) -> bool:
        if self.is_on_leave:
            # An open-ended leave with no dates blocks every week
            if self.leave_start is None and self.leave_end is None:
                return False
            start = self.leave_start or date.min
            end = self.leave_end or date.max
            if start <= week_end and end >= week_start:
                return False
        return not any(week_start <= d <= week_end for d in self.unavailable_dates)


# =============================================================
# ====================== Schedule entries =====================
# =============================================================

@dataclass(frozen=True)
class ScheduledClass:
    id: str
    day: str
    time: str
    location: str
    class_format: str
    teacher_id: Hashable
    teacher_first_name: str
    teacher_last_name: str
    duration: float
    participants: float = 0.0
    revenue: float = 0.0
    is_top_performer: bool = False
    is_private: bool = False

    @property
    def teacher_name(self):
        return f"{self.teacher_first_name} {self.teacher_last_name}".strip()

    def to_dict(self):
        return {
            'id': self.id,
            'day': self.day,
            'time': self.time,
            'location': self.location,
            'classFormat': self.class_format,
            'teacherId': self.teacher_id,
            'teacherFirstName': self.teacher_first_name,
            'teacherLastName': self.teacher_last_name,
            'duration': self.duration,
            'participants': self.participants,
            'revenue': self.revenue,
            'isTopPerformer': self.is_top_performer,
            'isPrivate': self.is_private,
        }


@dataclass
class ClassCandidate:
    """A class the builder would like to place at a specific slot."""
    class_format: str
    location: str
    day: str
    time: str
    participants: float = 0.0
    revenue: float = 0.0
    is_private: bool = False
    preferred_teacher_id: Optional[Hashable] = None
    source: str = 'historic'

    @property
    def is_top_performer(self):
        return self.participants > 6


# =============================================================
# ========================== Teachers =========================
# =============================================================

@dataclass(frozen=True)
class Teacher:
    id: Hashable
    first_name: str
    last_name: str
    specialties: Tuple[str, ...] = ()
    is_new: bool = False

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()


class TeacherRoster:
    """
    Ordered collection of teachers with stable identifiers.

    Names are only used to resolve a teacher once, at the boundary; everything
    downstream (ledger, shift counts, schedule entries) is keyed by ``Teacher.id``.
    """

    def __init__(self, teachers: Iterable[Teacher] = ()):
        self._teachers: Dict[Hashable, Teacher] = {}
        self._by_name: Dict[str, Hashable] = {}
        for teacher in teachers:
            self.add(teacher)

    @classmethod
    def from_sources(cls, records: Iterable[HistoricRecord] = (), custom_teachers: Iterable[CustomTeacher] = ()):
        """Build a roster from custom teachers plus every teacher seen in the history."""
        roster = cls()
        pending = []
        for custom in custom_teachers:
            if custom.id is None:
                pending.append((custom.full_name, custom))
                continue
            roster.add(Teacher(custom.id, custom.first_name, custom.last_name,
                               tuple(custom.specialties), bool(custom.is_new)))

        for custom_name, custom in pending:
            if roster.resolve(custom_name) is None:
                roster.add(Teacher(roster._next_id(), custom.first_name, custom.last_name,
                                   tuple(custom.specialties), bool(custom.is_new)))

        historic_names = sorted({r.teacher_name for r in records if r.teacher_name}, key=normalize_name)
        for name in historic_names:
            if roster.resolve(name) is None:
                first, last = split_full_name(name)
                roster.add(Teacher(roster._next_id(), first, last))
        return roster

    def _next_id(self):
        n = len(self._teachers) + 1
        while f"T{n:03d}" in self._teachers:
            n += 1
        return f"T{n:03d}"

    def add(self, teacher: Teacher):
        self._teachers[teacher.id] = teacher
        self._by_name.setdefault(normalize_name(teacher.full_name), teacher.id)

    def __iter__(self):
        return iter(self._teachers.values())

    def __len__(self):
        return len(self._teachers)

    def __contains__(self, teacher_id):
        return teacher_id in self._teachers

    def get(self, teacher_id) -> Optional[Teacher]:
        return self._teachers.get(teacher_id)

    def ids(self) -> List[Hashable]:
        return list(self._teachers.keys())

    def resolve(self, name: str) -> Optional[Hashable]:
        return self._by_name.get(normalize_name(name))

    def find(self, name_or_id) -> Optional[Teacher]:
        """Exact id, then exact name, then first name, then substring of the full name."""
        if name_or_id in self._teachers:
            return self._teachers[name_or_id]
        key = normalize_name(name_or_id)
        if not key:
            return None
        if key in self._by_name:
            return self._teachers[self._by_name[key]]
        for teacher in self._teachers.values():
            if normalize_name(teacher.first_name) == key:
                return teacher
        for teacher in self._teachers.values():
            if key in normalize_name(teacher.full_name):
                return teacher
        return None

    def without(self, teacher_ids: Iterable[Hashable]) -> 'TeacherRoster':
        excluded = set(teacher_ids)
        return TeacherRoster(t for t in self._teachers.values() if t.id not in excluded)


# =============================================================
# ========================= Hour ledger =======================
# =============================================================

@dataclass
class TeacherHourLedger:
    """Accumulated weekly hours per teacher id, scoped to a single run."""
    hours_by_teacher: Dict[Hashable, float] = field(default_factory=dict)

    @classmethod
    def from_schedule(cls, schedule: Iterable[ScheduledClass]):
        ledger = cls()
        for entry in schedule:
            ledger.add(entry.teacher_id, entry.duration)
        return ledger

    def hours(self, teacher_id) -> float:
        return self.hours_by_teacher.get(teacher_id, 0.0)

    def add(self, teacher_id, hours: float):
        self.hours_by_teacher[teacher_id] = round(self.hours(teacher_id) + float(hours), 2)

    def remove(self, teacher_id, hours: float):
        self.hours_by_teacher[teacher_id] = round(self.hours(teacher_id) - float(hours), 2)

    def teachers_over(self, ceiling: float) -> List[Tuple[Hashable, float]]:
        return [(t, h) for t, h in self.hours_by_teacher.items() if h > ceiling]

    def as_dict(self) -> Dict[Hashable, float]:
        return dict(self.hours_by_teacher)
