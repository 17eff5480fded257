"""
Hard scheduling rules for the studio.

Every predicate here is pure and never raises: malformed times or unknown
locations are treated as "not allowed". Location literals and format lists are
carried by a ``StudioRules`` object so callers can load them from the database;
``DEFAULT_RULES`` mirrors the three studio locations.
"""
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

WEEKLY_HOUR_CEILING = 15.0
NEW_TEACHER_HOUR_CEILING = 12.0
SHIFT_CLASS_CAP = 4
MORNING_SHIFT_END_HOUR = 14  # Morning shift = start hour before 14:00

RESTRICTED_START = 12 * 60        # 12:00
RESTRICTED_END = 15 * 60 + 30     # 15:30
SLOT_MINUTES = 30

_TIME_PATTERN = re.compile(r'^\s*(\d{1,2}):(\d{2})')

DAYS = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']
WEEKEND_DAYS = ('Saturday', 'Sunday')

MORNING_SLOTS = ['06:00', '06:30', '07:00', '07:30', '08:00', '08:30',
                 '09:00', '09:30', '10:00', '10:30', '11:00', '11:30']
EVENING_SLOTS = ['15:30', '16:00', '16:30', '17:00', '17:30', '18:00',
                 '18:30', '19:00', '19:30', '20:00', '20:30']


@dataclass(frozen=True)
class LocationRule:
    name: str
    max_parallel_classes: int = 2
    blocked_formats: Tuple[str, ...] = ()  # Lowercase keywords matched as substrings
    is_flagship: bool = False

    def allows(self, class_format: str) -> bool:
        lower_format = str(class_format or '').lower()
        if not lower_format:
            return False
        return not any(keyword in lower_format for keyword in self.blocked_formats)


@dataclass(frozen=True)
class StudioRules:
    locations: Tuple[LocationRule, ...]
    new_teacher_formats: Tuple[str, ...] = ('barre 57', 'foundations', 'recovery', 'power cycle', 'powercycle')
    morning_slots: Tuple[str, ...] = tuple(MORNING_SLOTS)
    evening_slots: Tuple[str, ...] = tuple(EVENING_SLOTS)
    days: Tuple[str, ...] = tuple(DAYS)
    weekend_days: Tuple[str, ...] = WEEKEND_DAYS
    _by_name: Dict[str, LocationRule] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, '_by_name', {rule.name: rule for rule in self.locations})

    @property
    def location_names(self) -> List[str]:
        return [rule.name for rule in self.locations]

    @property
    def all_slots(self) -> List[str]:
        return list(self.morning_slots) + list(self.evening_slots)

    def location(self, name: str) -> Optional[LocationRule]:
        return self._by_name.get(name)

    def is_weekend(self, day: str) -> bool:
        return day in self.weekend_days


DEFAULT_LOCATIONS = (
    LocationRule('Kwality House, Kemps Corner', 2, ('powercycle', 'power cycle')),
    LocationRule('Supreme HQ, Bandra', 3, ('amped up', 'hiit'), is_flagship=True),
    LocationRule('Kenkere House', 2, ('powercycle', 'power cycle')),
)

DEFAULT_RULES = StudioRules(locations=DEFAULT_LOCATIONS)


# ==================== TIME HELPERS ====================

def parse_minutes(time: str) -> Optional[int]:
    """Minutes since midnight for 'HH:MM' (seconds ignored), or None when malformed."""
    match = _TIME_PATTERN.match(str(time or ''))
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return hour * 60 + minute


def normalize_time(time: str) -> Optional[str]:
    minutes = parse_minutes(time)
    if minutes is None:
        return None
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


# ==================== PURE PREDICATES ====================

def class_duration(class_format: str) -> float:
    lower_format = str(class_format or '').lower()
    if 'express' in lower_format:
        return 0.75
    if 'recovery' in lower_format or 'sweat in 30' in lower_format:
        return 0.5
    return 1.0


def is_hosted_class(class_format: str) -> bool:
    return 'hosted' in str(class_format or '').lower()


def is_allowed_at_location(class_format: str, location: str, rules: StudioRules = DEFAULT_RULES) -> bool:
    location_rule = rules.location(location)
    if location_rule is None:
        return False
    return location_rule.allows(class_format)


def is_allowed_for_teacher(class_format: str, teacher, rules: StudioRules = DEFAULT_RULES) -> bool:
    """New teachers may only take the introductory formats."""
    if teacher is None or not getattr(teacher, 'is_new', False):
        return True
    lower_format = str(class_format or '').lower()
    return any(allowed in lower_format for allowed in rules.new_teacher_formats)


def is_restricted_time(time: str) -> bool:
    minutes = parse_minutes(time)
    if minutes is None:
        return True
    return RESTRICTED_START <= minutes <= RESTRICTED_END


def is_valid_evening_time(time: str, day: str, rules: StudioRules = DEFAULT_RULES) -> bool:
    minutes = parse_minutes(time)
    if minutes is None:
        return False
    hour = minutes // 60
    if hour >= 17:
        return True
    return rules.is_weekend(day) and hour >= 16


def is_morning_shift(time: str) -> Optional[bool]:
    minutes = parse_minutes(time)
    if minutes is None:
        return None
    return minutes // 60 < MORNING_SHIFT_END_HOUR


def max_parallel_classes(location: str, rules: StudioRules = DEFAULT_RULES) -> int:
    location_rule = rules.location(location)
    return location_rule.max_parallel_classes if location_rule else 0


# ==================== SCHEDULE PREDICATES ====================

def classes_at_time_slot(schedule: Iterable, day: str, time: str, location: str) -> list:
    slot_minutes = parse_minutes(time)
    if slot_minutes is None:
        return []
    return [cls for cls in schedule
            if cls.day == day and cls.location == location and parse_minutes(cls.time) == slot_minutes]


def has_time_slot_capacity(schedule: Iterable, day: str, time: str, location: str,
                           rules: StudioRules = DEFAULT_RULES) -> bool:
    if parse_minutes(time) is None:
        return False
    return len(classes_at_time_slot(schedule, day, time, location)) < max_parallel_classes(location, rules)


def format_in_slot(schedule: Iterable, day: str, time: str, location: str, class_format: str) -> bool:
    return any(cls.class_format == class_format for cls in classes_at_time_slot(schedule, day, time, location))


def would_create_back_to_back_same_format(schedule: Iterable, candidate) -> bool:
    """True when the neighbouring 30-minute slot at the same day/location already runs this format."""
    minutes = parse_minutes(candidate.time)
    if minutes is None:
        return True

    neighbours = {minutes - SLOT_MINUTES, minutes + SLOT_MINUTES}
    for cls in schedule:
        if cls.day != candidate.day or cls.location != candidate.location:
            continue
        if cls.class_format == candidate.class_format and parse_minutes(cls.time) in neighbours:
            return True
    return False


def teacher_shift_classes(schedule: Iterable, teacher_id, day: str, is_morning: bool,
                          location: Optional[str] = None) -> list:
    return [cls for cls in schedule
            if cls.teacher_id == teacher_id
            and cls.day == day
            and is_morning_shift(cls.time) == is_morning
            and (location is None or cls.location == location)]


def can_teacher_take_shift_class(schedule: Iterable, teacher_id, day: str, time: str,
                                 cap: int = SHIFT_CLASS_CAP) -> bool:
    is_morning = is_morning_shift(time)
    if is_morning is None:
        return False
    return len(teacher_shift_classes(schedule, teacher_id, day, is_morning)) < cap


def has_teacher_conflict(schedule: Iterable, teacher_id, day: str, time: str, duration: float) -> bool:
    """True if the teacher already teaches something overlapping [time, time + duration)."""
    start = parse_minutes(time)
    if start is None:
        return True
    end = start + int(round(duration * 60))

    for cls in schedule:
        if cls.teacher_id != teacher_id or cls.day != day:
            continue
        other_start = parse_minutes(cls.time)
        if other_start is None:
            continue
        other_end = other_start + int(round(cls.duration * 60))
        if start < other_end and other_start < end:
            return True
    return False


def hour_ceiling(teacher, weekly_ceiling: float = WEEKLY_HOUR_CEILING,
                 new_teacher_ceiling: float = NEW_TEACHER_HOUR_CEILING) -> float:
    if teacher is not None and getattr(teacher, 'is_new', False):
        return new_teacher_ceiling
    return weekly_ceiling


def within_hour_ceiling(current_hours: float, duration: float, ceiling: float) -> bool:
    # Rounded so 14.25 + 0.75 lands on 15.0 exactly
    return round(current_hours + duration, 2) <= ceiling
