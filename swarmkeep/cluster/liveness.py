"""LivenessMonitor: cancellable periodic heartbeat tied to one sub-task execution."""

from __future__ import annotations

import asyncio
import logging

from ..types import LivenessSignal, SwarmAgent

logger = logging.getLogger(__name__)


class LivenessMonitor:
    """
    Polls ``agent.heartbeat`` every ``interval`` seconds. A check that times
    out, raises, or answers MISSED counts as missed; ``max_missed`` consecutive
    misses or one STALLED answer sets ``stalled``.

    ``stop()`` is synchronous: once it returns no further check is started or
    counted, even if the polling task has not yet observed its cancellation.
    """

    def __init__(
        self,
        agent: SwarmAgent,
        subtask_id: str,
        interval: float = 5.0,
        timeout: float = 2.0,
        max_missed: int = 3,
    ) -> None:
        self.agent = agent
        self.subtask_id = subtask_id
        self.interval = interval
        self.timeout = timeout
        self.max_missed = max_missed
        self.missed = 0
        self.checks = 0
        self.stalled = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done() and not self._stopped

    def start(self) -> None:
        if self._task is not None:
            raise RuntimeError("monitor already started")
        self._task = asyncio.create_task(self._run(), name=f"liveness:{self.subtask_id}")

    def stop(self) -> None:
        self._stopped = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait_closed(self) -> None:
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while not self._stopped:
            await asyncio.sleep(self.interval)
            if self._stopped:
                return
            signal = await self._probe()
            if self._stopped:
                return
            self.checks += 1
            if signal is LivenessSignal.ALIVE:
                self.missed = 0
                continue
            if signal is LivenessSignal.STALLED:
                logger.warning("Agent %s reported stalled on %s", self.agent.id, self.subtask_id)
                self.stalled.set()
                return
            self.missed += 1
            logger.debug(
                "Liveness miss %d/%d for %s on %s",
                self.missed,
                self.max_missed,
                self.agent.id,
                self.subtask_id,
            )
            if self.missed >= self.max_missed:
                logger.warning(
                    "Agent %s missed %d liveness checks on %s",
                    self.agent.id,
                    self.missed,
                    self.subtask_id,
                )
                self.stalled.set()
                return

    async def _probe(self) -> LivenessSignal:
        try:
            signal = await asyncio.wait_for(self.agent.heartbeat(self.subtask_id), self.timeout)
        except asyncio.TimeoutError:
            return LivenessSignal.MISSED
        except Exception:
            logger.debug("Heartbeat from %s raised", self.agent.id, exc_info=True)
            return LivenessSignal.MISSED
        if signal is True:
            return LivenessSignal.ALIVE
        if isinstance(signal, str) and signal in set(LivenessSignal):
            return LivenessSignal(signal)
        return LivenessSignal.MISSED
