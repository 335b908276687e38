import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from client_sdk.client import SpecflowClient, SpecflowClientError

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({"succeeded", "failed"})

Fetch = Callable[[], Awaitable[Dict[str, Any]]]


class PollTimeoutError(TimeoutError):
    pass


class Poller:
    """
    Repeatedly fetches a job until it reaches a terminal status.

    Transport errors and 5xx responses are logged and retried on the next tick.
    A 4xx response (an unknown or evicted job) is raised at once.
    """

    def __init__(self, client: SpecflowClient, interval: float = 1.0, timeout: Optional[float] = None):
        self.client = client
        self.interval = interval
        self.timeout = timeout
        self._stop_event = asyncio.Event()

    def stop(self):
        self._stop_event.set()

    async def wait_for_test_run(self, project_id: str, run_id: str) -> Dict[str, Any]:
        return await self._poll(lambda: self.client.get_test_run(project_id, run_id), label=f"run {run_id}")

    async def wait_for_job(self, job_id: str) -> Dict[str, Any]:
        return await self._poll(lambda: self.client.get_job(job_id), label=f"job {job_id}")

    async def _poll(self, fetch: Fetch, label: str) -> Dict[str, Any]:
        self._stop_event.clear()
        deadline = time.monotonic() + self.timeout if self.timeout is not None else None
        last: Optional[Dict[str, Any]] = None

        while not self._stop_event.is_set():
            try:
                last = await fetch()
                if last.get("status") in TERMINAL_STATUSES:
                    logger.info("%s finished with status %s", label, last["status"])
                    return last
            except SpecflowClientError as e:
                if e.status_code is not None and 400 <= e.status_code < 500:
                    raise
                logger.warning("Polling %s failed: %s", label, e)

            if deadline is not None and time.monotonic() >= deadline:
                raise PollTimeoutError(f"{label} still pending after {self.timeout}s")
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

        raise PollTimeoutError(f"Polling {label} stopped before completion (last status: {last and last.get('status')})")
