import asyncio
import logging
from functools import partial
from pathlib import Path
from typing import Any, Callable, Coroutine, Optional, Sequence

from specflow.domain.errors import CompletionError, JobNotFoundError, SpecflowError
from specflow.domain.models import Job
from specflow.domain.states import JobKind, JobStatus
from specflow.jobs.registry import JobRegistry
from specflow.jobs.runner import ProcessRunner
from specflow.llm.client import RetryingCompletionClient

logger = logging.getLogger(__name__)

Outcome = tuple[JobStatus, str, Optional[str]]
PostProcess = Callable[[str], str]


class JobOrchestrator:
    """
    Starts background jobs and records their outcome in the JobRegistry.

    Each job runs as its own asyncio task. The task's done-callback is the only
    writer of the terminal state, and anything the task raises (or its
    cancellation) is turned into a FAILED record there, so a job can never be
    left PENDING by an unhandled error.
    """

    def __init__(
        self,
        registry: JobRegistry,
        runner: ProcessRunner,
        completion_client: RetryingCompletionClient,
    ):
        self.registry = registry
        self.runner = runner
        self.completion_client = completion_client
        self._tasks: dict[str, asyncio.Task] = {}

    # --- Starting jobs ---

    def start_test_run(
        self,
        working_dir: str | Path,
        program: str,
        args: Sequence[str] = (),
        extra_args: Sequence[str] = (),
        timeout: Optional[float] = None,
        meta: Optional[dict[str, Any]] = None,
    ) -> str:
        job_meta = {"command": [program, *args, *extra_args], "working_dir": str(working_dir)}
        job_meta.update(meta or {})
        job_id = self.registry.create(JobKind.TEST_RUN, meta=job_meta)
        self._spawn(job_id, self._execute_test_run(working_dir, program, args, extra_args, timeout))
        return job_id

    def start_generation(
        self,
        prompt: str,
        postprocess: Optional[PostProcess] = None,
        meta: Optional[dict[str, Any]] = None,
    ) -> str:
        job_id = self.registry.create(JobKind.GENERATION, meta=meta)
        self._spawn(job_id, self._execute_generation(prompt, postprocess))
        return job_id

    async def run_generation(
        self,
        prompt: str,
        postprocess: Optional[PostProcess] = None,
        meta: Optional[dict[str, Any]] = None,
    ) -> str:
        """Starts a generation job and waits for it; raises CompletionError if it failed."""
        job_id = self.start_generation(prompt, postprocess=postprocess, meta=meta)
        job = await self.wait(job_id)
        if job.status != JobStatus.SUCCEEDED:
            raise CompletionError(job.error or "Generation failed")
        return job.output

    # --- Reading jobs ---

    def get_job(self, job_id: str) -> Optional[Job]:
        return self.registry.get(job_id)

    async def wait(self, job_id: str, timeout: Optional[float] = None) -> Job:
        """Waits until the job's task settles (or `timeout` passes) and returns the record."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.wait({task}, timeout=timeout)
            job = self.registry.get(job_id)
            if task.done() and job is not None and not job.is_terminal:
                # Normally already applied by the done-callback; completion is idempotent.
                self._on_done(job_id, task)

        job = self.registry.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    @property
    def running_count(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    async def shutdown(self):
        tasks = [task for task in self._tasks.values() if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            logger.info("Cancelling %d running job(s)", len(tasks))
            await asyncio.gather(*tasks, return_exceptions=True)

    # --- Internals ---

    def _spawn(self, job_id: str, coro: Coroutine[Any, Any, Outcome]):
        task = asyncio.create_task(coro, name=f"job-{job_id}")
        self._tasks[job_id] = task
        task.add_done_callback(partial(self._on_done, job_id))

    def _on_done(self, job_id: str, task: asyncio.Task):
        self._tasks.pop(job_id, None)

        if task.cancelled():
            status, output, error = JobStatus.FAILED, "", "Job cancelled before completion"
        elif task.exception() is not None:
            e = task.exception()
            error = str(e) if isinstance(e, SpecflowError) else f"{type(e).__name__}: {e}"
            status, output = JobStatus.FAILED, ""
            logger.error("Job %s failed: %s", job_id, error, exc_info=e if not isinstance(e, SpecflowError) else None)
        else:
            status, output, error = task.result()

        if self.registry.complete(job_id, status, output, error):
            logger.info("Job %s finished with status %s", job_id, status)

    async def _execute_test_run(
        self,
        working_dir: str | Path,
        program: str,
        args: Sequence[str],
        extra_args: Sequence[str],
        timeout: Optional[float],
    ) -> Outcome:
        result = await self.runner.run(working_dir, program, args, extra_args, timeout=timeout)
        if result.succeeded:
            return JobStatus.SUCCEEDED, result.output, None
        return JobStatus.FAILED, result.output, result.error

    async def _execute_generation(self, prompt: str, postprocess: Optional[PostProcess]) -> Outcome:
        text = await self.completion_client.complete(prompt)
        if postprocess is not None:
            text = postprocess(text)
        return JobStatus.SUCCEEDED, text, None
