"""Tests for AlertManager and the single-slot projection."""

import logging

import pytest

from neurotrend.core.config import load_config
from neurotrend.logic.alert_manager import (
    AlertManager,
    project_alert_state,
    select_highest_priority,
)


@pytest.fixture
def manager():
    return AlertManager(load_config(overrides={
        "timing": {"hysteresis_clear_ms": 60000, "debounce_ms": 120000},
    }))


def _raise(manager, metric="face_symmetry", level="advisory", now=0, reason="threshold"):
    return manager.raise_alert(metric, level, now, deviation=0.2, baseline=0.08,
                               current=0.096, reason=reason)


class TestRaise:

    def test_alert_fields(self, manager):
        alert = _raise(manager, now=1000)
        assert alert["metric"] == "face_symmetry"
        assert alert["level"] == "advisory"
        assert alert["raised_at"] == 1000
        assert alert["acknowledged"] is False
        assert alert["acknowledged_at"] == 0
        assert manager.active == [alert]

    def test_ids_unique_per_raise(self, manager):
        a = _raise(manager, metric="a", now=1000)
        b = _raise(manager, metric="b", now=1000)
        assert a["id"] != b["id"]

    def test_debounce_same_metric_and_level(self, manager):
        assert _raise(manager, now=0) is not None
        assert _raise(manager, now=119999) is None
        assert len(manager.active) + len(manager.history) == 1

    def test_reraise_after_debounce_archives_previous(self, manager):
        first = _raise(manager, now=0)
        second = _raise(manager, now=120000)

        assert second is not None
        assert manager.active == [second]
        assert manager.history[0]["id"] == first["id"]
        assert manager.history[0]["cleared_reason"] == "reraised"

    def test_level_change_is_a_new_alert(self, manager):
        advisory = _raise(manager, level="advisory", now=0)
        critical = _raise(manager, level="critical", now=1000)

        assert critical is not None
        assert manager.active == [critical]
        assert manager.history[0]["id"] == advisory["id"]
        assert manager.history[0]["level"] == "advisory"
        assert manager.history[0]["cleared_reason"] == "superseded"

    def test_returning_level_inside_debounce_supersedes(self, manager):
        _raise(manager, level="critical", now=0)
        _raise(manager, level="advisory", now=1000)
        back = _raise(manager, level="critical", now=2000)

        assert back is not None
        assert manager.active == [back]
        assert [a["cleared_reason"] for a in manager.history] == ["superseded", "superseded"]
        # mesmo nível do ativo continua suprimido
        assert _raise(manager, level="critical", now=3000) is None

    def test_cleared_metric_still_debounced(self, manager):
        alert = _raise(manager, now=0)
        manager.acknowledge(alert["id"], 10)
        manager.update_clearance("face_symmetry", 10, 60010)
        assert manager.active == []
        assert _raise(manager, now=70000) is None

    def test_suppressed_raise_logged_at_debug(self, manager, caplog):
        caplog.set_level(logging.DEBUG, logger="neurotrend.logic.alert_manager")
        _raise(manager, now=0)
        _raise(manager, now=500)
        assert "Debounce" in caplog.text

    def test_other_metrics_untouched(self, manager):
        a = _raise(manager, metric="a", level="critical", now=0)
        b = _raise(manager, metric="b", level="advisory", now=10)
        assert manager.active == [a, b]


class TestAcknowledge:

    def test_unknown_id(self, manager):
        assert manager.acknowledge("nope", 0) is False

    def test_ack_keeps_alert_active(self, manager):
        alert = _raise(manager, now=1000)
        assert manager.acknowledge(alert["id"], 4000)
        assert manager.active[0]["acknowledged"] is True
        assert manager.active[0]["acknowledged_at"] == 4000
        assert manager.active[0]["time_to_ack"] == 3000

    def test_second_ack_keeps_first_timestamp(self, manager):
        alert = _raise(manager, now=0)
        manager.acknowledge(alert["id"], 100)
        assert manager.acknowledge(alert["id"], 900)
        assert manager.active[0]["time_to_ack"] == 100

    def test_archived_alert_cannot_be_acknowledged(self, manager):
        alert = _raise(manager, now=0)
        _raise(manager, level="critical", now=10)
        assert manager.acknowledge(alert["id"], 20) is False

    def test_acknowledge_all(self, manager):
        _raise(manager, metric="a", now=0)
        _raise(manager, metric="b", level="critical", now=500)
        ids = manager.acknowledge_all(1000)
        assert ids == [a["id"] for a in manager.active]
        assert all(a["acknowledged"] for a in manager.active)
        assert manager.average_time_to_ack() == pytest.approx((1000 + 500) / 2)


class TestClearance:

    def test_unacknowledged_never_clears(self, manager):
        _raise(manager, now=0)
        assert manager.update_clearance("face_symmetry", 1000, 10 ** 9) == []
        assert len(manager.active) == 1

    def test_clock_starts_after_ack(self, manager):
        alert = _raise(manager, now=0)
        manager.acknowledge(alert["id"], 50000)

        # abaixo do piso desde 10000, mas só conta depois do reconhecimento
        assert manager.update_clearance("face_symmetry", 10000, 109999) == []
        cleared = manager.update_clearance("face_symmetry", 10000, 110000)

        assert [c["id"] for c in cleared] == [alert["id"]]
        assert manager.active == []
        assert manager.history[-1]["cleared_reason"] == "cleared"
        assert manager.history[-1]["cleared_at"] == 110000

    def test_no_below_clock_no_clear(self, manager):
        alert = _raise(manager, now=0)
        manager.acknowledge(alert["id"], 1)
        assert manager.update_clearance("face_symmetry", None, 10 ** 9) == []

    def test_history_entries_are_copies(self, manager):
        alert = _raise(manager, now=0)
        _raise(manager, level="critical", now=1)
        alert["level"] = "tampered"
        assert manager.history[0]["level"] == "advisory"


class TestViews:

    def test_highest_priority_empty(self):
        assert select_highest_priority([]) is None

    def test_critical_beats_newer_advisory(self, manager):
        crit = _raise(manager, metric="a", level="critical", now=0)
        _raise(manager, metric="b", level="advisory", now=5000)
        assert select_highest_priority(manager.active) is crit

    def test_most_recent_within_level(self, manager):
        _raise(manager, metric="a", level="advisory", now=0)
        newer = _raise(manager, metric="b", level="advisory", now=5000)
        assert select_highest_priority(manager.active) is newer

    def test_projection(self, manager):
        state = project_alert_state(manager)
        assert state == {"level": "none", "raised_at": 0, "acknowledged_at": 0,
                         "last_raised_at_by_level": {}}

        _raise(manager, metric="a", level="advisory", now=100)
        crit = _raise(manager, metric="b", level="critical", now=200)
        manager.acknowledge(crit["id"], 300)

        state = project_alert_state(manager)
        assert state["level"] == "critical"
        assert state["raised_at"] == 200
        assert state["acknowledged_at"] == 300
        assert state["last_raised_at_by_level"] == {"advisory": 100, "critical": 200}
