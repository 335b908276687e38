from typing import Optional, Sequence

from specflow.jobs.orchestrator import JobOrchestrator, PostProcess
from specflow.llm.prompts import PromptStore, PromptType, strip_code_fences


class GenerationService:
    """Renders prompt templates and runs them as generation jobs, awaiting the result."""

    def __init__(self, orchestrator: JobOrchestrator, prompts: PromptStore):
        self.orchestrator = orchestrator
        self.prompts = prompts

    async def _generate(
        self,
        prompt_type: PromptType,
        postprocess: Optional[PostProcess] = None,
        **variables: Optional[str],
    ) -> str:
        prompt = self.prompts.render(prompt_type, **variables)
        return await self.orchestrator.run_generation(
            prompt,
            postprocess=postprocess,
            meta={"operation": str(prompt_type)},
        )

    async def structure_use_case(
        self,
        description: str,
        title: Optional[str] = None,
        current_spec: Optional[str] = None,
    ) -> str:
        return await self._generate(
            PromptType.STRUCTURE_USE_CASE,
            description=description,
            title=title,
            currentSpec=current_spec,
        )

    async def revise_use_case(self, current_spec: str, instructions: str) -> str:
        return await self._generate(
            PromptType.REVISE_USE_CASE,
            currentSpec=current_spec,
            instructions=instructions,
        )

    async def generate_tests(self, spec: str, test_type: str = "unit") -> str:
        return await self._generate(
            PromptType.GENERATE_TESTS,
            postprocess=strip_code_fences,
            spec=spec,
            type=test_type,
        )

    async def revise_tests(self, current_tests: str, instructions: str) -> str:
        return await self._generate(
            PromptType.REVISE_TESTS,
            postprocess=strip_code_fences,
            currentTests=current_tests,
            instructions=instructions,
        )

    async def update_tests_from_spec(self, current_tests: str, new_spec: str) -> str:
        return await self._generate(
            PromptType.UPDATE_TESTS_FROM_SPEC,
            postprocess=strip_code_fences,
            currentTests=current_tests,
            newSpec=new_spec,
        )

    async def generate_agent_instructions(self, spec: str, test_paths: Sequence[str]) -> str:
        return await self._generate(
            PromptType.GENERATE_AGENT_INSTRUCTIONS,
            spec=spec,
            testPaths=", ".join(test_paths),
        )
