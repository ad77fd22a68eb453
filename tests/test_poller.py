"""
Tests for the client-side prediction poller.
"""
import asyncio

import pytest

from headshots.config import get_settings
from headshots.worker.poller import PollingState, PredictionPoller, Resolved, Track, update


class TestPollingState:
    """Test the pure state transitions."""

    def test_track_adds_ids(self):
        state = update(PollingState(), Track(frozenset({"a", "b"})))
        assert state.active == {"a", "b"}
        assert state.retired == frozenset()

    def test_processing_keeps_id_active(self):
        state = PollingState(active=frozenset({"a"}))
        assert update(state, Resolved("a", "processing")) is state

    def test_terminal_status_retires_id(self):
        state = PollingState(active=frozenset({"a", "b"}))
        state = update(state, Resolved("a", "completed"))
        assert state.active == {"b"}
        assert state.retired == {"a"}

        state = update(state, Resolved("b", "failed"))
        assert state.active == frozenset()
        assert state.retired == {"a", "b"}

    def test_retired_ids_not_tracked_again(self):
        state = PollingState(retired=frozenset({"a"}))
        state = update(state, Track(frozenset({"a", "c"})))
        assert state.active == {"c"}

    def test_unknown_message(self):
        with pytest.raises(TypeError):
            update(PollingState(), "tick")


class ScriptedReconcile:
    """Async reconcile stub answering from a per-prediction script."""

    def __init__(self, scripts):
        self.scripts = {pid: list(steps) for pid, steps in scripts.items()}
        self.calls = []

    async def __call__(self, prediction_id):
        self.calls.append(prediction_id)
        step = self.scripts[prediction_id].pop(0)
        if isinstance(step, Exception):
            raise step
        return {"prediction_id": prediction_id, "status": step}


class TestPredictionPoller:
    """Test the polling loop lifecycle."""

    def test_polls_until_all_final(self):
        reconcile = ScriptedReconcile({
            "a": ["processing", "completed"],
            "b": ["failed"],
        })
        results = []

        async def scenario():
            poller = PredictionPoller(reconcile, interval=0.01, on_result=lambda pid, r: results.append((pid, r["status"])))
            poller.track(["a", "b"])
            assert poller.running
            await poller.wait()
            return poller

        poller = asyncio.run(scenario())

        assert not poller.running
        assert poller.state.active == frozenset()
        assert poller.state.retired == {"a", "b"}
        assert reconcile.calls.count("a") == 2
        assert reconcile.calls.count("b") == 1
        assert ("a", "completed") in results
        assert ("b", "failed") in results

    def test_interval_defaults_to_setting(self, monkeypatch):
        monkeypatch.setattr(get_settings(), "poll_interval_seconds", 2.5)
        assert PredictionPoller(ScriptedReconcile({})).interval == 2.5
        assert PredictionPoller(ScriptedReconcile({}), interval=0.01).interval == 0.01

    def test_no_timer_without_work(self):
        async def scenario():
            poller = PredictionPoller(ScriptedReconcile({}), interval=0.01)
            poller.track([])
            return poller.running

        assert asyncio.run(scenario()) is False

    def test_errors_keep_prediction_active(self):
        reconcile = ScriptedReconcile({"a": [RuntimeError("connection refused"), "completed"]})

        async def scenario():
            poller = PredictionPoller(reconcile, interval=0.01)
            poller.track(["a"])
            await poller.wait()
            return poller

        poller = asyncio.run(scenario())
        assert reconcile.calls == ["a", "a"]
        assert poller.state.retired == {"a"}

    def test_callback_error_does_not_stop_timer(self):
        reconcile = ScriptedReconcile({"a": ["processing", "processing", "completed"]})

        def broken_callback(prediction_id, result):
            raise RuntimeError("display closed")

        async def scenario():
            poller = PredictionPoller(reconcile, interval=0.01, on_result=broken_callback)
            poller.track(["a"])
            await asyncio.wait_for(poller.wait(), timeout=5)
            return poller

        poller = asyncio.run(scenario())
        assert reconcile.calls == ["a", "a", "a"]
        assert not poller.running
        assert poller.state.retired == {"a"}

    def test_track_restarts_idle_timer(self):
        reconcile = ScriptedReconcile({"a": ["completed"], "b": ["completed"]})

        async def scenario():
            poller = PredictionPoller(reconcile, interval=0.01)
            poller.track(["a"])
            await poller.wait()
            assert not poller.running

            poller.track(["b"])
            assert poller.running
            await poller.wait()
            return poller

        poller = asyncio.run(scenario())
        assert poller.state.retired == {"a", "b"}

    def test_stop_cancels_timer(self):
        reconcile = ScriptedReconcile({"a": ["completed"]})

        async def scenario():
            poller = PredictionPoller(reconcile, interval=60)
            poller.track(["a"])
            await poller.stop()
            return poller

        poller = asyncio.run(scenario())
        assert not poller.running
        assert reconcile.calls == []
        assert poller.state.active == {"a"}
