from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

from triage import scoring, sequencing


@dataclass
class Entry:
    name: str
    priority: int
    queue_number: int


NOW = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


def test_order_is_priority_desc_then_number_asc():
    entries = [Entry('a', 0, 1), Entry('b', 2, 4), Entry('c', 0, 2), Entry('d', 2, 3), Entry('e', 1, 5)]
    assert [e.name for e in sequencing.order_entries(entries)] == ['d', 'b', 'e', 'a', 'c']


def test_estimates_step_by_average_and_never_decrease():
    entries = [Entry('g1', 0, 1), Entry('g2', 0, 2), Entry('r', 2, 4), Entry('y', 1, 3)]
    estimates = sequencing.estimate_start_times(entries, NOW, 20)
    assert [e.name for e, _ in estimates] == ['r', 'y', 'g1', 'g2']
    times = [t for _, t in estimates]
    assert times[0] == NOW
    assert times == sorted(times)
    assert times[3] - times[0] == timedelta(minutes=60)


def test_estimates_default_to_fifteen_minutes():
    estimates = sequencing.estimate_start_times([Entry('a', 0, 1), Entry('b', 0, 2)], NOW, None)
    assert estimates[1][1] == NOW + timedelta(minutes=15)
    assert sequencing.estimate_start_times([Entry('a', 0, 1), Entry('b', 0, 2)], NOW, 0)[1][1] == NOW + timedelta(minutes=15)


def test_state_machine():
    assert sequencing.can_transition('WAITING', 'IN_PROGRESS')
    assert sequencing.can_transition('WAITING', 'CANCELLED')
    assert sequencing.can_transition('IN_PROGRESS', 'COMPLETED')
    assert not sequencing.can_transition('IN_PROGRESS', 'CANCELLED')
    assert not sequencing.can_transition('WAITING', 'COMPLETED')
    assert not sequencing.can_transition('COMPLETED', 'WAITING')
    assert not sequencing.can_transition('CANCELLED', 'IN_PROGRESS')
    assert sequencing.is_terminal('COMPLETED') and sequencing.is_terminal('CANCELLED')
    assert not sequencing.is_terminal('WAITING')


def test_category_priority():
    assert sequencing.priority_for_category(scoring.RED) == 2
    assert sequencing.priority_for_category(scoring.YELLOW) == 1
    assert sequencing.priority_for_category(scoring.GREEN) == 0
    assert sequencing.priority_for_category('???') == 0


def test_token_format():
    assert sequencing.format_token('opd', date(2026, 10, 19), 7) == 'OPD-20261019-007'
    assert sequencing.format_token('', date(2026, 1, 2), 123) == 'GEN-20260102-123'


def test_consultation_minutes():
    assert sequencing.consultation_minutes(NOW, NOW + timedelta(minutes=12, seconds=30)) == 12.5
    assert sequencing.consultation_minutes(None, NOW) is None
    assert sequencing.consultation_minutes(NOW, NOW - timedelta(minutes=1)) is None
