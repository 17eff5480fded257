import logging
import random
from typing import Iterable, List, Optional

from studio.entities import ClassCandidate
from studio.historic_analyzer import HistoricAnalysis
from studio.rules import DEFAULT_RULES, StudioRules, is_allowed_at_location, max_parallel_classes, normalize_time

logger = logging.getLogger(__name__)


class CandidateSelector:
    """
    Picks the classes to try at one (location, day, time) slot.

    Ordering is a jittered attendance ranking drawn from ``rng``; a selector
    built from the same iteration seed replays the same ordering.
    """

    def __init__(self, analysis: HistoricAnalysis, rng: random.Random,
                 rules: StudioRules = DEFAULT_RULES, randomization_spread: float = 2.0):
        self.analysis = analysis
        self.rng = rng
        self.rules = rules
        self.randomization_spread = randomization_spread

    @classmethod
    def for_iteration(cls, analysis: HistoricAnalysis, iteration: int, **kwargs):
        return cls(analysis, random.Random(iteration), **kwargs)

    def _shuffled(self, items: list, weight) -> list:
        # Draw one jitter value per item, in order, so the sequence only depends on the seed
        jittered = [(weight(item) + self.rng.uniform(-self.randomization_spread, self.randomization_spread), index, item)
                    for index, item in enumerate(items)]
        jittered.sort(key=lambda entry: (-entry[0], entry[1]))
        return [item for _, _, item in jittered]

    def select(self, location: str, day: str, time: str,
               advisory: Optional[Iterable[ClassCandidate]] = None) -> List[ClassCandidate]:
        slot_time = normalize_time(time)
        if slot_time is None:
            return []

        top_classes = [cls for cls in self.analysis.classes_for_slot(location, day, slot_time)
                       if is_allowed_at_location(cls.class_format, location, self.rules)]

        ordered = [
            ClassCandidate(
                class_format=cls.class_format,
                location=location,
                day=day,
                time=slot_time,
                participants=cls.avg_participants,
                revenue=cls.avg_revenue,
            )
            for cls in self._shuffled(top_classes, lambda c: c.avg_participants)
        ]

        # Advisory suggestions go first; the same variety and capacity rules apply to them
        if advisory:
            ordered = [c for c in advisory if is_allowed_at_location(c.class_format, location, self.rules)] + ordered

        max_parallel = max_parallel_classes(location, self.rules)
        selected = []
        used_formats = set()
        for candidate in ordered:
            if len(selected) >= max_parallel:
                break
            if candidate.class_format in used_formats:
                continue
            selected.append(candidate)
            used_formats.add(candidate.class_format)

        if selected:
            logger.debug(f"  {location} {day} {slot_time}: {len(selected)} candidate(s) "
                         f"{[c.class_format for c in selected]}")
        return selected
