import asyncio
import sys
from pathlib import Path

import pytest

from specflow.domain.errors import CompletionError, JobNotFoundError
from specflow.domain.models import ProcessResult
from specflow.domain.states import JobKind, JobStatus
from specflow.jobs.orchestrator import JobOrchestrator
from specflow.jobs.registry import JobRegistry
from specflow.jobs.runner import ProcessRunner
from specflow.llm.prompts import strip_code_fences

from conftest import FakeGemini, gemini_ok, gemini_rate_limited


class GatedRunner:
    """Runner whose result is released by the test."""

    def __init__(self, result: ProcessResult):
        self.result = result
        self.release = asyncio.Event()
        self.calls = []

    async def run(self, working_dir, program, args=(), extra_args=(), timeout=None):
        self.calls.append((str(working_dir), program, list(args), list(extra_args), timeout))
        await self.release.wait()
        return self.result


class ExplodingRunner:
    async def run(self, *args, **kwargs):
        raise RuntimeError("boom")


def make_orchestrator(runner=None, client=None) -> JobOrchestrator:
    return JobOrchestrator(JobRegistry(), runner or ProcessRunner(), client or FakeGemini().client())


def test_test_run_is_pending_until_runner_settles(tmp_path: Path) -> None:
    async def scenario():
        runner = GatedRunner(ProcessResult(succeeded=True, output="5 passed", returncode=0))
        orchestrator = make_orchestrator(runner=runner)

        job_id = orchestrator.start_test_run(tmp_path, "npm", ["test"], extra_args=["a.spec.ts"], timeout=9)
        await asyncio.sleep(0)
        assert orchestrator.get_job(job_id).status == JobStatus.PENDING

        runner.release.set()
        job = await orchestrator.wait(job_id)
        return job, runner

    job, runner = asyncio.run(scenario())

    assert job.kind == JobKind.TEST_RUN
    assert job.status == JobStatus.SUCCEEDED
    assert job.output == "5 passed"
    assert job.meta["command"] == ["npm", "test", "a.spec.ts"]
    assert runner.calls == [(str(tmp_path), "npm", ["test"], ["a.spec.ts"], 9)]


def test_failed_process_records_output_and_error(tmp_path: Path) -> None:
    async def scenario():
        orchestrator = make_orchestrator()
        job_id = orchestrator.start_test_run(tmp_path, sys.executable, ["-c", "import sys; print('x'); sys.exit(2)"])
        return await orchestrator.wait(job_id)

    job = asyncio.run(scenario())

    assert job.status == JobStatus.FAILED
    assert "x" in job.output
    assert job.error == "Process exited with status 2"


def test_unexpected_exception_becomes_failed_job(tmp_path: Path) -> None:
    async def scenario():
        orchestrator = make_orchestrator(runner=ExplodingRunner())
        job_id = orchestrator.start_test_run(tmp_path, "npm")
        return await orchestrator.wait(job_id)

    job = asyncio.run(scenario())

    assert job.status == JobStatus.FAILED
    assert job.error == "RuntimeError: boom"


def test_generation_success_applies_postprocess(fake_gemini: FakeGemini) -> None:
    fake_gemini.queue(gemini_ok("```typescript\nit('works', () => {});\n```"))

    async def scenario():
        orchestrator = make_orchestrator(client=fake_gemini.client())
        job_id = orchestrator.start_generation("write tests", postprocess=strip_code_fences)
        return await orchestrator.wait(job_id)

    job = asyncio.run(scenario())

    assert job.kind == JobKind.GENERATION
    assert job.status == JobStatus.SUCCEEDED
    assert job.output == "it('works', () => {});"


def test_generation_rate_limit_exhaustion_is_failed_job(fake_gemini: FakeGemini) -> None:
    fake_gemini.queue(*[gemini_rate_limited() for _ in range(3)])

    async def scenario():
        orchestrator = make_orchestrator(client=fake_gemini.client(max_attempts=3))
        job_id = orchestrator.start_generation("p")
        return await orchestrator.wait(job_id)

    job = asyncio.run(scenario())

    assert job.status == JobStatus.FAILED
    assert "after 3 attempts" in job.error
    assert fake_gemini.delays == [5.0, 10.0]


def test_run_generation_returns_text_or_raises(fake_gemini: FakeGemini) -> None:
    fake_gemini.queue(gemini_ok("spec text"), gemini_rate_limited())

    async def scenario():
        orchestrator = make_orchestrator(client=fake_gemini.client(max_attempts=1))
        text = await orchestrator.run_generation("first")
        with pytest.raises(CompletionError, match="Rate limited"):
            await orchestrator.run_generation("second")
        return text

    assert asyncio.run(scenario()) == "spec text"


def test_jobs_complete_in_any_order(tmp_path: Path) -> None:
    async def scenario():
        slow = GatedRunner(ProcessResult(succeeded=True, output="slow"))
        fast = GatedRunner(ProcessResult(succeeded=False, output="fast", error="Process exited with status 1"))
        orchestrator = make_orchestrator(runner=slow)
        slow_id = orchestrator.start_test_run(tmp_path, "slow")
        orchestrator.runner = fast
        fast_id = orchestrator.start_test_run(tmp_path, "fast")

        fast.release.set()
        fast_job = await orchestrator.wait(fast_id)
        assert orchestrator.get_job(slow_id).status == JobStatus.PENDING

        slow.release.set()
        slow_job = await orchestrator.wait(slow_id)
        return fast_job, slow_job

    fast_job, slow_job = asyncio.run(scenario())

    assert fast_job.status == JobStatus.FAILED
    assert slow_job.status == JobStatus.SUCCEEDED


def test_terminal_state_never_reverts(tmp_path: Path) -> None:
    async def scenario():
        orchestrator = make_orchestrator(runner=GatedRunner(ProcessResult(succeeded=True)))
        orchestrator.runner.release.set()
        job_id = orchestrator.start_test_run(tmp_path, "npm")
        job = await orchestrator.wait(job_id)
        # a late duplicate completion is ignored
        orchestrator.registry.complete(job_id, JobStatus.FAILED, "", "duplicate")
        return job_id, job.status, orchestrator.get_job(job_id).status

    _, first, after = asyncio.run(scenario())

    assert first == after == JobStatus.SUCCEEDED


def test_shutdown_fails_running_jobs(tmp_path: Path) -> None:
    async def scenario():
        orchestrator = make_orchestrator(runner=GatedRunner(ProcessResult(succeeded=True)))
        job_id = orchestrator.start_test_run(tmp_path, "npm")
        await asyncio.sleep(0)
        await orchestrator.shutdown()
        await asyncio.sleep(0)
        return orchestrator.get_job(job_id), orchestrator.running_count

    job, running = asyncio.run(scenario())

    assert job.status == JobStatus.FAILED
    assert "cancelled" in job.error
    assert running == 0


def test_wait_on_unknown_job_raises() -> None:
    async def scenario():
        await make_orchestrator().wait("nope")

    with pytest.raises(JobNotFoundError):
        asyncio.run(scenario())
