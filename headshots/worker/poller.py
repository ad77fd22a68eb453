"""
Prediction Polling Client

Client-side loop that keeps asking the API for the status of predictions
that are still processing, until each one reaches a final state.

State lives in an immutable `PollingState` changed only through
`update(state, message)`; the `PredictionPoller` owns one state value and a
single asyncio timer task that exists only while there is work to poll.
"""

import asyncio
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Iterable, Optional, Union

import httpx

from ..config import get_settings
from ..logging_config import get_logger, timed
from ..models.prediction import PredictionStatus

logger = get_logger("poller")


# ============================================================
# STATE + MESSAGES
# ============================================================

@dataclass(frozen=True)
class PollingState:
    """Predictions being polled, and those already finished this session"""
    active: FrozenSet[str] = frozenset()
    retired: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class Track:
    """Start polling these predictions"""
    prediction_ids: FrozenSet[str]


@dataclass(frozen=True)
class Resolved:
    """A reconciliation call answered with `status`"""
    prediction_id: str
    status: str


Message = Union[Track, Resolved]


def update(state: PollingState, message: Message) -> PollingState:
    """Pure state transition for the polling set."""
    if isinstance(message, Track):
        new_ids = message.prediction_ids - state.retired
        return replace(state, active=state.active | new_ids)

    if isinstance(message, Resolved):
        if message.status == PredictionStatus.PROCESSING.value:
            return state
        return PollingState(
            active=state.active - {message.prediction_id},
            retired=state.retired | {message.prediction_id},
        )

    raise TypeError(f"Unknown message: {message!r}")


# ============================================================
# POLLER
# ============================================================

ReconcileFunc = Callable[[str], Awaitable[Dict[str, Any]]]
ResultCallback = Callable[[str, Dict[str, Any]], None]


class PredictionPoller:
    """
    Poll processing predictions on a fixed interval.

    Each tick reconciles every active prediction concurrently. The timer
    task stops when nothing is left to poll and is only recreated when
    `track` brings in new work.
    """

    def __init__(
        self,
        reconcile: ReconcileFunc,
        interval: Optional[float] = None,
        on_result: Optional[ResultCallback] = None,
    ):
        self.reconcile = reconcile
        self.interval = interval if interval is not None else get_settings().poll_interval_seconds
        self.on_result = on_result
        self.state = PollingState()
        self._timer: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def dispatch(self, message: Message) -> PollingState:
        self.state = update(self.state, message)
        return self.state

    def track(self, prediction_ids: Iterable[str]):
        """Add predictions to the polling set and start the timer if idle.

        Must be called from within a running event loop.
        """
        self.dispatch(Track(frozenset(prediction_ids)))
        if self.state.active and not self.running:
            self._timer = asyncio.create_task(self._run())
            logger.debug("poller_started", active=len(self.state.active))

    async def _run(self):
        while self.state.active:
            await asyncio.sleep(self.interval)
            await self.tick()
        logger.debug("poller_idle", retired=len(self.state.retired))

    @timed(logger)
    async def tick(self):
        """Reconcile every active prediction once."""
        ids = sorted(self.state.active)
        await asyncio.gather(*(self._poll_one(prediction_id) for prediction_id in ids))

    async def _poll_one(self, prediction_id: str):
        try:
            result = await self.reconcile(prediction_id)
        except Exception as e:
            # Keep the prediction active; the next tick retries it
            logger.warning("poll_failed", prediction_id=prediction_id, error=str(e))
            return

        status = result.get("status", PredictionStatus.PROCESSING.value)
        self.dispatch(Resolved(prediction_id, status))
        if self.on_result:
            try:
                self.on_result(prediction_id, result)
            except Exception as e:
                logger.warning("poll_callback_failed", prediction_id=prediction_id, error=str(e))

    async def wait(self):
        """Wait until the polling set drains."""
        if self._timer is not None:
            await self._timer

    async def stop(self):
        """Cancel the timer (page/process teardown). Server state is untouched."""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
            try:
                await self._timer
            except asyncio.CancelledError:
                pass
        self._timer = None


# ============================================================
# HTTP BINDING
# ============================================================

class ApiReconcileClient:
    """Calls the reconciliation endpoint for predictions of one studio"""

    def __init__(self, base_url: str, studio_id: str, token: str, external_ids: Optional[Dict[str, str]] = None, timeout: float = 30.0):
        self.studio_id = studio_id
        self.external_ids = dict(external_ids or {})
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
        )

    async def __call__(self, prediction_id: str) -> Dict[str, Any]:
        response = await self.client.post(
            f"/api/studios/{self.studio_id}/shoot/result",
            json={
                "prediction_id": prediction_id,
                "external_id": self.external_ids.get(prediction_id),
            },
        )
        response.raise_for_status()
        return response.json()["data"]

    async def aclose(self):
        await self.client.aclose()
