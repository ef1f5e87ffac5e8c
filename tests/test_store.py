"""Tests for the entity store: events, uploads and restore."""

import datetime as dt

import pytest

from simonev.aggregate import rank
from simonev.models import DataKind, EventType, School, SchoolType, Snapshot
from simonev.snapshot import SnapshotError
from simonev.store import EntityStore, EventValidationError, validate_event_payload


def _by_id(store, sid):
    return next(s for s in store.schools if s.id == sid)


class TestAddEvent:
    def test_creates_event_and_bumps_denominator(self, store, event_payload):
        ev = store.add_event(event_payload())
        assert ev.id == "e1"
        assert ev.date == dt.date(2024, 5, 10)
        assert ev.type is EventType.SOCIALIZATION
        assert store.events == (ev,)
        assert all(s.total_events_possible == 1 for s in store.schools)

    def test_denominator_tracks_event_count(self, store, event_payload):
        for i in range(4):
            store.add_event(event_payload(name=f"Kegiatan {i}"))
        assert len(store.events) == 4
        assert all(s.total_events_possible == 4 for s in store.schools)

    def test_id_collision_gets_suffix(self, schools, event_payload):
        store = EntityStore(Snapshot(schools=schools), id_factory=lambda: "e1")
        ids = [store.add_event(event_payload()).id for _ in range(3)]
        assert ids == ["e1", "e1-1", "e1-2"]

    def test_invalid_payload_leaves_state(self, store, event_payload):
        before = store.snapshot
        with pytest.raises(EventValidationError):
            store.add_event(event_payload(name="  "))
        assert store.snapshot is before


class TestValidateEventPayload:
    @pytest.mark.parametrize("overrides", [
        {"name": ""},
        {"date": ""},
        {"date": None},
        {"type": "Workshop"},
        {"type": None},
        {"weight": "abc"},
        {"weight": None},
        {"weight": -1},
        {"weight": True},
        {"weight": float("nan")},
    ])
    def test_rejected(self, event_payload, overrides):
        with pytest.raises(EventValidationError):
            validate_event_payload(event_payload(**overrides))

    def test_not_a_mapping(self):
        with pytest.raises(EventValidationError):
            validate_event_payload(["Sosialisasi"])

    def test_normalized(self, event_payload):
        out = validate_event_payload(event_payload(
            name="  Rapat Data ", date="15/06/2024", type=EventType.DATA_REQUEST, weight="12.5",
        ))
        assert out["name"] == "Rapat Data"
        assert out["date"] == dt.date(2024, 6, 15)
        assert out["type"] is EventType.DATA_REQUEST
        assert out["weight"] == 12.5

    def test_zero_weight_allowed(self, event_payload):
        assert validate_event_payload(event_payload(weight=0))["weight"] == 0


class TestUpload:
    def test_full_scenario(self, store, event_payload):
        ev = store.add_event(event_payload())
        roster = ["20101234", "smtk bethel jakarta", "Other text", ""]

        report = store.upload(ev.id, roster, DataKind.ATTENDANCE)
        assert report.event_found
        assert report.lines == 3
        assert set(report.credited_ids) == {"20101234", "60118805"}
        assert report.unmatched == ["Other text"]

        a = _by_id(store, "20101234")
        assert (a.total_score, a.events_participated, a.total_events_possible) == (10, 1, 1)
        assert a.participated_event_ids == (ev.id,)
        c = _by_id(store, "30104412")
        assert (c.total_score, c.events_participated) == (0, 0)

    def test_reupload_is_noop(self, store, event_payload):
        ev = store.add_event(event_payload())
        store.upload(ev.id, ["20101234"], DataKind.ATTENDANCE)
        before = store.snapshot

        report = store.upload(ev.id, ["20101234"], DataKind.ATTENDANCE)
        assert report.credited_ids == ()
        assert report.already_credited_ids == ("20101234",)
        assert store.snapshot is before

    def test_submission_bonus(self, store, event_payload):
        ev = store.add_event(event_payload(weight=20))
        store.upload(ev.id, ["30104412"], DataKind.SUBMISSION, submitted_on=dt.date(2024, 5, 10))
        store.upload(ev.id, ["60118805"], "Submission", submitted_on=dt.date(2024, 5, 12))
        assert _by_id(store, "30104412").total_score == 25
        assert _by_id(store, "60118805").total_score == 22

    def test_unknown_event_is_noop(self, store):
        before = store.snapshot
        report = store.upload("missing", ["20101234"], DataKind.ATTENDANCE)
        assert not report.event_found
        assert store.snapshot is before

    def test_credit_unknown_event(self, store):
        result = store.credit("missing", {"20101234"}, DataKind.ATTENDANCE)
        assert result.credited_ids == ()
        assert result.schools == store.schools

    def test_empty_roster(self, store, event_payload):
        ev = store.add_event(event_payload())
        before = store.snapshot
        report = store.upload(ev.id, [], DataKind.ATTENDANCE)
        assert report.matched_ids == ()
        assert store.snapshot is before


class TestRestore:
    def test_partial_restore_keeps_other_field(self, store, event_payload):
        store.add_event(event_payload())
        events_before = store.events
        store.restore({"schools": [{"id": "111", "name": "SMAK Baru", "type": "SMAK", "totalScore": 7}]})
        assert [s.id for s in store.schools] == ["111"]
        assert store.schools[0].total_score == 7
        assert store.events == events_before

    def test_restore_events_only(self, store, event_payload):
        store.add_event(event_payload())
        schools_before = store.schools
        store.restore({"events": []})
        assert store.events == ()
        assert store.schools == schools_before

    def test_counters_trusted_as_is(self, store):
        store.restore({"schools": [{
            "id": "111", "name": "SMAK Baru", "type": "SMAK",
            "eventsParticipated": 3, "totalEventsPossible": 9,
            "participatedEventIds": ["e1", "e1"],
        }]})
        s = store.schools[0]
        assert (s.events_participated, s.total_events_possible) == (3, 9)
        assert s.participated_event_ids == ("e1",)

    def test_non_finite_score_rejected_and_ranking_intact(self, store):
        good = {"schools": [
            {"id": "1", "name": "SMAK A", "type": "SMAK", "totalScore": 30},
            {"id": "3", "name": "SMAK C", "type": "SMAK", "totalScore": 50},
        ]}
        store.restore(good)
        before = store.snapshot

        bad = {"schools": good["schools"] + [{"id": "2", "name": "SMAK B", "type": "SMAK", "totalScore": "nan"}]}
        with pytest.raises(SnapshotError):
            store.restore(bad)
        assert store.snapshot is before
        assert rank(store.schools)[0].id == "3"

    @pytest.mark.parametrize("payload", [
        {},
        [],
        "text",
        {"schools": "not a list"},
        {"schools": [{"id": "1", "name": "X", "type": "SD"}]},
        {"events": [{"id": "e1", "date": "", "type": "Socialization"}]},
        {"schools": [{"id": "1", "name": "X", "type": "SMAK", "eventsParticipated": float("nan")}]},
        {"schools": [{"id": "1", "name": "X", "type": "SMAK", "totalEventsPossible": "1e400"}]},
    ])
    def test_malformed_leaves_state(self, store, payload):
        before = store.snapshot
        with pytest.raises(SnapshotError):
            store.restore(payload)
        assert store.snapshot is before


class TestOnChange:
    def test_called_with_each_new_state(self, schools, event_payload):
        seen = []
        store = EntityStore(Snapshot(schools=schools), on_change=seen.append, id_factory=lambda: "e1")
        ev = store.add_event(event_payload())
        store.upload(ev.id, ["20101234"], DataKind.ATTENDANCE)
        store.upload(ev.id, ["20101234"], DataKind.ATTENDANCE)
        assert len(seen) == 2
        assert seen[-1] is store.snapshot

    def test_replace_state(self):
        seen = []
        store = EntityStore(on_change=seen.append)
        snap = Snapshot(schools=(School(id="1", name="SMTK A", type=SchoolType.SMTK),))
        store.replace_state(snap)
        assert store.snapshot is snap
        assert seen == [snap]
