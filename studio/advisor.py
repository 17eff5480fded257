import logging
from dataclasses import dataclass
from typing import Iterable, List

from studio.entities import HistoricRecord, ScheduledClass
from studio.historic_analyzer import class_performance
from studio.rules import WEEKLY_HOUR_CEILING
from studio.validation import calculate_teacher_hours

logger = logging.getLogger(__name__)

MAX_RECOMMENDATIONS = 5
MAX_HINTS = 3


@dataclass(frozen=True)
class AdvisorySuggestion:
    """A ranked class suggestion for one slot, from a remote advisor or the local fallback."""
    location: str
    day: str
    time: str
    class_format: str
    teacher: str = 'Best Available'
    reasoning: str = ''
    confidence: float = 0.0
    expected_participants: float = 0.0
    expected_revenue: float = 0.0
    priority: int = 5
    is_private: bool = False

    def to_dict(self):
        return {
            'location': self.location,
            'day': self.day,
            'time': self.time,
            'classFormat': self.class_format,
            'teacher': self.teacher,
            'reasoning': self.reasoning,
            'confidence': self.confidence,
            'expectedParticipants': self.expected_participants,
            'expectedRevenue': self.expected_revenue,
            'priority': self.priority,
            'isPrivate': self.is_private,
        }


@dataclass(frozen=True)
class OptimizationHint:
    teacher_id: object
    teacher: str
    hours: float
    entry_id: str
    reason: str
    impact: str
    priority: int = 7


class LocalAdvisor:
    """Heuristic advisor used when no remote recommendation service is configured."""

    def __init__(self, ceiling: float = WEEKLY_HOUR_CEILING):
        self.ceiling = ceiling

    def recommendations(self, records: Iterable[HistoricRecord], location: str, day: str,
                        time: str) -> List[AdvisorySuggestion]:
        records = list(records)
        location_records = [r for r in records if r.location == location]
        stats = class_performance(location_records or records)

        suggestions = []
        for index, perf in enumerate(stats[:MAX_RECOMMENDATIONS]):
            suggestions.append(AdvisorySuggestion(
                location=location,
                day=day,
                time=time,
                class_format=perf.class_format,
                reasoning=(f"High-performing class with {perf.avg_participants:.1f} average participants "
                           f"(based on historical data)"),
                confidence=min(0.9, perf.frequency / 10),
                expected_participants=round(perf.avg_participants),
                expected_revenue=round(perf.avg_revenue),
                priority=10 - index * 2,
            ))
        return suggestions

    def optimization_hints(self, schedule: Iterable[ScheduledClass]) -> List[OptimizationHint]:
        schedule = list(schedule)
        ledger = calculate_teacher_hours(schedule)

        hints = []
        for teacher_id, hours in ledger.teachers_over(self.ceiling):
            entries = [e for e in schedule if e.teacher_id == teacher_id]
            if not entries:
                continue
            hints.append(OptimizationHint(
                teacher_id=teacher_id,
                teacher=entries[0].teacher_name,
                hours=hours,
                entry_id=entries[0].id,
                reason=f"{entries[0].teacher_name} is overloaded with {hours} hours. Consider redistributing classes.",
                impact='Better work-life balance and reduced teacher fatigue',
            ))

        if hints:
            logger.info(f"Local advisor: {len(hints)} overloaded teacher(s)")
        return hints[:MAX_HINTS]
