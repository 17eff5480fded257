import logging
import random
from collections import defaultdict
from typing import Dict, Hashable, Iterable, List, Optional

from studio.candidate_selector import CandidateSelector
from studio.entities import ClassCandidate, HistoricRecord, ScheduledClass, Teacher, TeacherHourLedger, TeacherRoster
from studio.historic_analyzer import HistoricAnalysis, Specialty
from studio.rules import (DEFAULT_RULES, StudioRules, format_in_slot, has_time_slot_capacity,
                          is_allowed_at_location, is_morning_shift, is_restricted_time, is_valid_evening_time,
                          normalize_time, parse_minutes, would_create_back_to_back_same_format)
from studio.teacher_assigner import TeacherAssigner

logger = logging.getLogger(__name__)


class ScheduleBuilder:
    """
    Greedy weekly schedule generator

    Algorithm Overview:
    1. Morning pass: every location/day/morning slot, best historic classes first
    2. Evening pass: same, restricted to valid evening start times
    3. Priority backfill: top up priority teachers with their specialties in leftover capacity

    There is no backtracking. A candidate that cannot be placed is dropped and the
    run carries on; an under-filled schedule is a valid result.
    """

    # ==================== EDITABLE CONFIGURATION ====================

    WEEKLY_HOUR_CEILING = 15.0       # Max weekly hours per teacher
    NEW_TEACHER_HOUR_CEILING = 12.0  # Max weekly hours for new teachers
    SHIFT_CLASS_CAP = 4              # Max classes per teacher per shift per day
    MIN_AVERAGE_PARTICIPANTS = 6     # Historic average needed to be a candidate

    PRIORITY_TARGET_HOURS = 15.0     # Backfill aims priority teachers at this many hours
    PRIORITY_TOLERANCE = 0.5         # Stop backfilling a teacher once this close to the target
    PRIORITY_SPECIALTIES = 3         # Number of top specialties tried during backfill

    RANDOMIZATION_SPREAD = 2.0       # Participant jitter applied to candidate ranking per iteration

    # ==================== END EDITABLE CONFIGURATION ====================

    def __init__(self, records: Iterable[HistoricRecord], roster: TeacherRoster,
                 rules: StudioRules = DEFAULT_RULES, priority_teachers: Iterable[str] = (),
                 settings: Optional[dict] = None):
        if settings:
            for key, value in settings.items():
                if value is not None and hasattr(self, key.upper()):
                    setattr(self, key.upper(), value)

        self.records = list(records)
        self.roster = roster
        self.rules = rules
        self.priority_teachers = list(priority_teachers)

        self.analysis = HistoricAnalysis(self.records, self.MIN_AVERAGE_PARTICIPANTS, rules)
        self.specialties_by_teacher = self._map_specialties()

        logger.info(f"Schedule builder ready: {len(self.roster)} teachers, "
                    f"{len(self.rules.locations)} locations, ceiling {self.WEEKLY_HOUR_CEILING}h "
                    f"({self.NEW_TEACHER_HOUR_CEILING}h for new teachers)")

    def _map_specialties(self) -> Dict[Hashable, List[Specialty]]:
        """Historic specialties keyed by roster id; declared specialties fill in for teachers without history."""
        mapped = {}
        for teacher_name, specialties in self.analysis.specialties.items():
            teacher_id = self.roster.resolve(teacher_name)
            if teacher_id is not None and teacher_id not in mapped:
                mapped[teacher_id] = specialties

        for teacher in self.roster:
            if teacher.id not in mapped and teacher.specialties:
                mapped[teacher.id] = [Specialty(fmt, 0.0, 0) for fmt in teacher.specialties]
        return mapped

    # ==================== RUN ====================

    def generate(self, iteration: int = 0, suggestions: Iterable = ()) -> dict:
        """Build one schedule. Each call owns a fresh schedule list and hour ledger."""
        logger.info(f"Generating schedule (iteration {iteration})")

        state = self.new_run_state(iteration)
        state['advisory'] = self._index_suggestions(suggestions)

        self._morning_pass(state)
        self._evening_pass(state)
        self._priority_backfill_pass(state)

        result = self._build_result(state)
        self._log_summary(result)
        return result

    def _index_suggestions(self, suggestions) -> Dict[tuple, List[ClassCandidate]]:
        """Advisory suggestions grouped by slot, highest priority first."""
        valid_slots = set(self.rules.all_slots)
        indexed = defaultdict(list)
        ordered = sorted(suggestions or [], key=lambda s: -getattr(s, 'priority', 0))

        for suggestion in ordered:
            slot_time = normalize_time(suggestion.time)
            is_private = bool(getattr(suggestion, 'is_private', False))
            # Private classes may sit off the slot grid, e.g. inside the midday window
            if slot_time not in valid_slots and not (is_private and slot_time is not None):
                logger.warning(f"Skipping advisory suggestion {suggestion.class_format} at "
                               f"{suggestion.location} {suggestion.day} {suggestion.time}: not a schedulable slot")
                continue
            teacher_name = getattr(suggestion, 'teacher', '') or ''
            indexed[(suggestion.location, suggestion.day, slot_time)].append(ClassCandidate(
                class_format=suggestion.class_format,
                location=suggestion.location,
                day=suggestion.day,
                time=slot_time,
                participants=float(suggestion.expected_participants),
                revenue=float(suggestion.expected_revenue),
                is_private=is_private,
                preferred_teacher_id=self.roster.resolve(teacher_name),
                source='advisory',
            ))
        return indexed

    def _next_entry_id(self, state) -> str:
        state['sequence'] += 1
        return f"gen-{state['iteration']}-{state['sequence']:04d}"

    # ==================== PLACEMENT ====================

    def slot_is_open(self, schedule: List[ScheduledClass], candidate: ClassCandidate) -> bool:
        """Every slot-level rule: location, time window, capacity and format variety."""
        if parse_minutes(candidate.time) is None:
            return False
        if not is_allowed_at_location(candidate.class_format, candidate.location, self.rules):
            return False
        if not candidate.is_private and is_restricted_time(candidate.time):
            return False

        hour = parse_minutes(candidate.time) // 60
        if hour >= 16 and not is_valid_evening_time(candidate.time, candidate.day, self.rules):
            return False

        if not has_time_slot_capacity(schedule, candidate.day, candidate.time, candidate.location, self.rules):
            return False
        if format_in_slot(schedule, candidate.day, candidate.time, candidate.location, candidate.class_format):
            return False
        if would_create_back_to_back_same_format(schedule, candidate):
            return False
        return True

    def place_candidate(self, state, candidate: ClassCandidate, teacher: Optional[Teacher] = None) -> Optional[ScheduledClass]:
        """Place a candidate if every rule allows it; returns the new entry or None."""
        if not self.slot_is_open(state['schedule'], candidate):
            state['dropped'][candidate.source] += 1
            return None

        assigner = state['assigner']
        if teacher is None:
            entry = assigner.assign(candidate, self._next_entry_id(state))
        elif assigner.is_eligible(teacher, candidate.class_format, candidate.day, candidate.time):
            entry = assigner.commit(candidate, teacher, self._next_entry_id(state))
        else:
            entry = None

        if entry is None:
            state['dropped'][candidate.source] += 1
        else:
            state['placed'][candidate.source] += 1
        return entry

    def new_run_state(self, iteration: int = 0, schedule: Optional[List[ScheduledClass]] = None) -> dict:
        """Run state seeded from an existing schedule, for placing candidates one at a time."""
        schedule = list(schedule or [])
        ledger = TeacherHourLedger.from_schedule(schedule)
        return {
            'iteration': iteration,
            'schedule': schedule,
            'ledger': ledger,
            'sequence': len(schedule),
            'placed': defaultdict(int),
            'dropped': defaultdict(int),
            'assigner': TeacherAssigner(self.roster, schedule, ledger, self.rules, self.WEEKLY_HOUR_CEILING,
                                        self.NEW_TEACHER_HOUR_CEILING, self.SHIFT_CLASS_CAP),
            'selector': CandidateSelector(self.analysis, random.Random(iteration), self.rules,
                                          self.RANDOMIZATION_SPREAD),
            'advisory': {},
        }

    # ==================== PASSES ====================

    def _fill_slot(self, state, location: str, day: str, time: str):
        advisory = state['advisory'].get((location, day, time), [])
        for candidate in state['selector'].select(location, day, time, advisory):
            self.place_candidate(state, candidate)

    def _advisory_times(self, state, location: str, day: str, morning: bool) -> List[str]:
        """Off-grid advisory times for one location and day in the given shift"""
        grid = set(self.rules.all_slots)
        return [time for (loc, slot_day, time) in state['advisory']
                if loc == location and slot_day == day and time not in grid and is_morning_shift(time) == morning]

    def _slot_times(self, grid: Iterable[str], extra: Iterable[str]) -> List[str]:
        return sorted(set(grid) | set(extra), key=parse_minutes)

    def _morning_pass(self, state):
        logger.info("Pass 1: Morning classes")
        before = len(state['schedule'])
        for location in self.rules.location_names:
            for day in self.rules.days:
                extra = self._advisory_times(state, location, day, morning=True)
                for time in self._slot_times(self.rules.morning_slots, extra):
                    self._fill_slot(state, location, day, time)
        logger.info(f"  Pass 1 Complete: {len(state['schedule']) - before} classes placed")

    def _evening_pass(self, state):
        logger.info("Pass 2: Evening classes")
        before = len(state['schedule'])
        for location in self.rules.location_names:
            for day in self.rules.days:
                extra = self._advisory_times(state, location, day, morning=False)
                for time in self._slot_times(self.rules.evening_slots, extra):
                    if time not in extra and not is_valid_evening_time(time, day, self.rules):
                        continue
                    self._fill_slot(state, location, day, time)
        logger.info(f"  Pass 2 Complete: {len(state['schedule']) - before} classes placed")

    def _priority_backfill_pass(self, state):
        """Pass 3: Top up priority teachers toward the target with their specialties"""
        logger.info("Pass 3: Priority teacher backfill")
        ledger = state['ledger']
        before = len(state['schedule'])
        target = self.PRIORITY_TARGET_HOURS
        evening_slots = set(self.rules.evening_slots)

        for name in self.priority_teachers:
            teacher = self.roster.find(name)
            if teacher is None:
                logger.debug(f"  Priority teacher {name} not on the roster")
                continue
            if ledger.hours(teacher.id) >= target:
                continue

            specialties = self.specialties_by_teacher.get(teacher.id, [])[:self.PRIORITY_SPECIALTIES]
            for specialty in specialties:
                if ledger.hours(teacher.id) >= target - self.PRIORITY_TOLERANCE:
                    break
                self._backfill_specialty(state, teacher, specialty, evening_slots)

            logger.info(f"  {teacher.full_name}: {ledger.hours(teacher.id):.2f}h after backfill")

        logger.info(f"  Pass 3 Complete: {len(state['schedule']) - before} classes placed")

    def _backfill_specialty(self, state, teacher: Teacher, specialty: Specialty, evening_slots: set):
        ledger = state['ledger']
        target = self.PRIORITY_TARGET_HOURS

        for location in self.rules.location_names:
            if not is_allowed_at_location(specialty.class_format, location, self.rules):
                continue
            for day in self.rules.days:
                for time in self.rules.all_slots:
                    if time in evening_slots and not is_valid_evening_time(time, day, self.rules):
                        continue
                    candidate = ClassCandidate(
                        class_format=specialty.class_format,
                        location=location,
                        day=day,
                        time=time,
                        participants=float(specialty.avg_participants),
                        revenue=0.0,
                        source='backfill',
                    )
                    if not self.slot_is_open(state['schedule'], candidate):
                        continue
                    if not state['assigner'].is_eligible(teacher, candidate.class_format, day, time):
                        continue

                    self.place_candidate(state, candidate, teacher)
                    if ledger.hours(teacher.id) >= target - self.PRIORITY_TOLERANCE:
                        return
                    break  # One backfilled class per location and day

    # ==================== RESULT ====================

    def _build_result(self, state) -> dict:
        schedule = state['schedule']
        ledger = state['ledger']
        day_order = {day: i for i, day in enumerate(self.rules.days)}
        ordered = sorted(schedule, key=lambda e: (day_order.get(e.day, len(day_order)),
                                                  parse_minutes(e.time) or 0, e.location))

        location_classes = defaultdict(int)
        for entry in schedule:
            location_classes[entry.location] += 1

        return {
            'schedule': ordered,
            'ledger': ledger,
            'statistics': {
                'iteration': state['iteration'],
                'total_classes': len(schedule),
                'total_hours': round(sum(e.duration for e in schedule), 2),
                'teachers_used': len({e.teacher_id for e in schedule}),
                'top_performer_classes': len([e for e in schedule if e.is_top_performer]),
                'expected_participants': round(sum(e.participants for e in schedule), 1),
                'expected_revenue': round(sum(e.revenue for e in schedule), 1),
                'classes_by_location': dict(location_classes),
                'placed_by_source': dict(state['placed']),
                'dropped_by_source': dict(state['dropped']),
            },
            'success': True
        }

    def _log_summary(self, result):
        stats = result['statistics']
        logger.info("=" * 60)
        logger.info("SCHEDULING SUMMARY")
        logger.info(f"Total classes: {stats['total_classes']} ({stats['total_hours']}h), "
                    f"{stats['teachers_used']} teachers, {stats['top_performer_classes']} top performers")
        for location, count in sorted(stats['classes_by_location'].items()):
            logger.info(f"  {location}: {count} classes")

        for teacher_id, hours in sorted(result['ledger'].as_dict().items(), key=lambda x: -x[1]):
            teacher = self.roster.get(teacher_id)
            name = teacher.full_name if teacher else teacher_id
            logger.debug(f"  {name}: {hours}h")

        if stats['dropped_by_source']:
            logger.info(f"Unplaced candidates: {stats['dropped_by_source']}")
        logger.info("=" * 60)


def generate_schedule(records, roster, rules=DEFAULT_RULES, priority_teachers=(), iteration=0,
                      suggestions=(), settings=None) -> dict:
    """Run the schedule builder once"""
    builder = ScheduleBuilder(records, roster, rules, priority_teachers, settings)
    return builder.generate(iteration, suggestions)
