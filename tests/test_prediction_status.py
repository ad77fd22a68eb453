"""
Tests for prediction status transitions and conditional writes.
"""
import pytest
from sqlalchemy import update

from headshots.models.prediction import Prediction, PredictionStatus, can_transition, is_terminal, status_sources
from headshots.worker.jobs import write_status

PENDING = PredictionStatus.PENDING
PROCESSING = PredictionStatus.PROCESSING
COMPLETED = PredictionStatus.COMPLETED
FAILED = PredictionStatus.FAILED


class TestTransitions:
    """Test the status ordering rules."""

    @pytest.mark.parametrize("current,new,allowed", [
        (PENDING, PROCESSING, True),
        (PENDING, COMPLETED, True),
        (PENDING, FAILED, True),
        (PROCESSING, PROCESSING, True),
        (PROCESSING, COMPLETED, True),
        (PROCESSING, PENDING, False),
        (COMPLETED, FAILED, False),
        (COMPLETED, PROCESSING, False),
        (FAILED, COMPLETED, False),
        (COMPLETED, COMPLETED, False),
    ])
    def test_can_transition(self, current, new, allowed):
        assert can_transition(current, new) is allowed

    def test_status_sources(self):
        assert status_sources(PROCESSING) == ["pending", "processing"]
        assert status_sources(COMPLETED) == ["pending", "processing"]
        assert status_sources(PENDING) == ["pending"]

    def test_is_terminal_accepts_strings(self):
        assert is_terminal("completed")
        assert is_terminal("failed")
        assert not is_terminal("processing")


class TestWriteStatus:
    """Test conditional status persistence."""

    def test_write_processing(self, db, make_prediction):
        prediction = make_prediction(status="pending", external_id=None)
        assert write_status(db, prediction, PROCESSING, external_id="ext-1")
        assert prediction.status == "processing"
        assert prediction.external_id == "ext-1"
        assert prediction.completed_at is None

    def test_terminal_write_sets_completed_at(self, db, make_prediction):
        prediction = make_prediction()
        assert write_status(db, prediction, COMPLETED, result_url="http://testserver/media/a.png")
        assert prediction.status == "completed"
        assert prediction.completed_at is not None

    def test_terminal_state_is_final(self, db, make_prediction):
        prediction = make_prediction(status="completed", result_url="http://testserver/media/a.png")

        assert not write_status(db, prediction, PROCESSING)
        assert not write_status(db, prediction, FAILED, error_message="late failure")

        assert prediction.status == "completed"
        assert prediction.error_message is None
        assert prediction.result_url == "http://testserver/media/a.png"

    def test_failed_cannot_complete(self, db, make_prediction):
        prediction = make_prediction(status="failed", error_message="boom")
        assert not write_status(db, prediction, COMPLETED, result_url="http://testserver/media/b.png")
        assert prediction.status == "failed"
        assert prediction.result_url is None

    def test_write_checks_stored_status(self, db, make_prediction):
        """The row's stored status decides, not the caller's copy."""
        prediction = make_prediction()
        db.execute(
            update(Prediction)
            .where(Prediction.id == prediction.id)
            .values(status="failed", error_message="provider gave up")
            .execution_options(synchronize_session=False)
        )
        db.commit()

        assert not write_status(db, prediction, COMPLETED, result_url="http://testserver/media/c.png")
        assert prediction.status == "failed"
        assert prediction.result_url is None
