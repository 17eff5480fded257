import random

from conftest import FLAGSHIP, KEMPS, historic
from studio.candidate_selector import CandidateSelector
from studio.entities import ClassCandidate
from studio.historic_analyzer import HistoricAnalysis


def busy_slot_records():
    records = []
    for index, class_format in enumerate(['Barre 57', 'Mat 57', 'Strength Lab', 'Cardio Barre', 'Fit']):
        records += historic(KEMPS, 'Monday', '07:00', class_format, 'Priya', 7 + index, times=2)
    # Same format with a second teacher: still one candidate
    records += historic(KEMPS, 'Monday', '07:00', 'Fit', 'Asha', 11, times=2)
    return records


def test_selection_respects_capacity_and_variety():
    selector = CandidateSelector.for_iteration(HistoricAnalysis(busy_slot_records()), 0)

    selected = selector.select(KEMPS, 'Monday', '07:00')

    assert len(selected) == 2
    assert len({c.class_format for c in selected}) == 2
    assert all(c.location == KEMPS and c.day == 'Monday' and c.time == '07:00' for c in selected)
    assert all(c.source == 'historic' for c in selected)


def test_same_iteration_same_order():
    analysis = HistoricAnalysis(busy_slot_records())

    first = CandidateSelector.for_iteration(analysis, 7).select(KEMPS, 'Monday', '07:00')
    second = CandidateSelector(analysis, random.Random(7)).select(KEMPS, 'Monday', '07:00')

    assert [c.class_format for c in first] == [c.class_format for c in second]


def test_zero_spread_follows_attendance_ranking():
    selector = CandidateSelector(HistoricAnalysis(busy_slot_records()), random.Random(3), randomization_spread=0)

    selected = selector.select(KEMPS, 'Monday', '07:00')

    assert [c.class_format for c in selected] == ['Fit', 'Cardio Barre']
    assert selected[0].participants == 11.0
    assert selected[0].is_top_performer


def test_empty_slot_and_bad_time():
    selector = CandidateSelector.for_iteration(HistoricAnalysis(busy_slot_records()), 0)

    assert selector.select(KEMPS, 'Tuesday', '07:00') == []
    assert selector.select(KEMPS, 'Monday', 'seven') == []


def test_advisory_candidates_go_first():
    selector = CandidateSelector(HistoricAnalysis(busy_slot_records()), random.Random(0), randomization_spread=0)
    advisory = [
        ClassCandidate('PowerCycle', KEMPS, 'Monday', '07:00', 9, source='advisory'),  # Not allowed at Kemps
        ClassCandidate('Recovery', KEMPS, 'Monday', '07:00', 5, source='advisory'),
    ]

    selected = selector.select(KEMPS, 'Monday', '07:00', advisory)

    assert [c.class_format for c in selected] == ['Recovery', 'Fit']
    assert selected[0].source == 'advisory'


def test_flagship_takes_three():
    records = []
    for class_format in ['Barre 57', 'Mat 57', 'PowerCycle', 'Strength Lab', 'HIIT']:
        records += historic(FLAGSHIP, 'Monday', '09:00', class_format, 'Priya', 9, times=2)
    selector = CandidateSelector.for_iteration(HistoricAnalysis(records), 1)

    selected = selector.select(FLAGSHIP, 'Monday', '09:00')

    assert len(selected) == 3
    assert 'HIIT' not in {c.class_format for c in selected}
