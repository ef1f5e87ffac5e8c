"""Tests for crediting events to matched schools and the submission bonus."""

import datetime as dt

import pytest

from simonev.models import DataKind, Event, EventType
from simonev.scoring import BonusPolicy, credit

EVENT = Event(id="e1", name="Sosialisasi A", date=dt.date(2024, 5, 10),
              type=EventType.SOCIALIZATION, weight=10)
POLICY = BonusPolicy(fast_bonus=5, normal_bonus=2, fast_window_days=0)


class TestCredit:
    def test_attendance_adds_weight_once(self, schools):
        result = credit(schools, EVENT, {"20101234"}, DataKind.ATTENDANCE, POLICY)
        s = result.schools[0]
        assert s.total_score == 10
        assert s.events_participated == 1
        assert s.participated_event_ids == ("e1",)
        assert result.credited_ids == ("20101234",)
        assert result.points == {"20101234": 10}

    def test_unmatched_schools_untouched(self, schools):
        result = credit(schools, EVENT, {"20101234"}, DataKind.ATTENDANCE, POLICY)
        assert result.schools[1] is schools[1]
        assert result.schools[2] is schools[2]

    def test_input_not_modified(self, schools):
        credit(schools, EVENT, {"20101234"}, DataKind.ATTENDANCE, POLICY)
        assert schools[0].total_score == 0
        assert schools[0].participated_event_ids == ()

    def test_second_credit_is_noop(self, schools):
        first = credit(schools, EVENT, {"20101234"}, DataKind.ATTENDANCE, POLICY)
        second = credit(first.schools, EVENT, {"20101234"}, DataKind.ATTENDANCE, POLICY)
        assert second.schools == first.schools
        assert second.credited_ids == ()
        assert second.skipped_ids == ("20101234",)

    def test_submission_adds_bonus(self, schools):
        result = credit(schools, EVENT, {"60118805"}, DataKind.SUBMISSION, POLICY)
        assert result.schools[1].total_score == 12

    def test_submission_fast_bonus(self, schools):
        result = credit(schools, EVENT, {"60118805"}, DataKind.SUBMISSION, POLICY,
                        submitted_on=dt.date(2024, 5, 9))
        assert result.schools[1].total_score == 15

    def test_unknown_ids_ignored(self, schools):
        result = credit(schools, EVENT, {"00000000"}, DataKind.ATTENDANCE, POLICY)
        assert result.schools == tuple(schools)
        assert result.credited_ids == ()

    def test_events_participated_matches_history(self, schools):
        ev2 = Event(id="e2", name="Permintaan Data", date=dt.date(2024, 6, 1),
                    type=EventType.DATA_REQUEST, weight=20)
        r1 = credit(schools, EVENT, {"20101234"}, DataKind.ATTENDANCE, POLICY)
        r2 = credit(r1.schools, ev2, {"20101234", "30104412"}, DataKind.SUBMISSION, POLICY)
        for s in r2.schools:
            assert s.events_participated == len(s.participated_event_ids)
        assert r2.schools[0].total_score == 10 + 22
        assert r2.schools[2].total_score == 22


class TestBonusPolicy:
    @pytest.mark.parametrize("submitted_on, expected", [
        (None, 2),
        (dt.date(2024, 5, 1), 5),
        (dt.date(2024, 5, 10), 5),
        (dt.date(2024, 5, 11), 2),
    ])
    def test_submission(self, submitted_on, expected):
        assert POLICY.bonus(DataKind.SUBMISSION, dt.date(2024, 5, 10), submitted_on) == expected

    def test_attendance_never_bonus(self):
        assert POLICY.bonus(DataKind.ATTENDANCE, dt.date(2024, 5, 10), dt.date(2024, 5, 1)) == 0

    def test_window_extends_fast_period(self):
        policy = BonusPolicy(fast_bonus=5, normal_bonus=2, fast_window_days=3)
        assert policy.bonus(DataKind.SUBMISSION, dt.date(2024, 5, 10), dt.date(2024, 5, 13)) == 5
        assert policy.bonus(DataKind.SUBMISSION, dt.date(2024, 5, 10), dt.date(2024, 5, 14)) == 2

    def test_accepts_plain_strings(self):
        assert POLICY.bonus("Submission", dt.date(2024, 5, 10)) == 2

    def test_from_rules(self):
        policy = BonusPolicy.from_rules({"bonus": {"fast": 7, "normal": 3, "fast_window_days": 2}})
        assert policy == BonusPolicy(fast_bonus=7, normal_bonus=3, fast_window_days=2)

    def test_from_rules_defaults(self):
        assert BonusPolicy.from_rules({}) == BonusPolicy()
