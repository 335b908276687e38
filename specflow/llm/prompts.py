import json
import logging
import re
from enum import StrEnum
from pathlib import Path
from typing import Mapping, Optional

from specflow.domain.errors import NotFoundError

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")
_LEADING_FENCE = re.compile(r"^\s*```[\w+-]*[ \t]*\n")
_TRAILING_FENCE = re.compile(r"\n```\s*$")


class PromptType(StrEnum):
    STRUCTURE_USE_CASE = "structureUseCase"
    REVISE_USE_CASE = "reviseUseCase"
    GENERATE_TESTS = "generateTests"
    REVISE_TESTS = "reviseTests"
    UPDATE_TESTS_FROM_SPEC = "updateTestsFromSpec"
    GENERATE_AGENT_INSTRUCTIONS = "generateAgentInstructions"


DEFAULT_TEMPLATES: dict[str, str] = {
    PromptType.STRUCTURE_USE_CASE: """\
You are an expert software architect.
Please convert the following raw use case description into a structured Markdown specification.
The specification should include:
- Title
- Description
- Actors
- Preconditions
- Main Flow (numbered list)
- Alternative Flows
- Postconditions

Title:
{{title}}

Raw Description:
{{description}}

Existing Specification (keep what still applies):
{{currentSpec}}
""",
    PromptType.REVISE_USE_CASE: """\
You are an expert software architect helping to refine use case specifications.
Please revise the following use case specification based on the instructions provided.
Return ONLY the updated Markdown specification, maintaining the same structure.

Current Spec:
{{currentSpec}}

Instructions:
{{instructions}}
""",
    PromptType.GENERATE_TESTS: """\
You are an expert QA engineer and developer.
Based on the following use case specification, generate {{type}} tests in TypeScript.
Return ONLY the code for the tests. Do not include markdown formatting like ```typescript.

Specification:
{{spec}}
""",
    PromptType.REVISE_TESTS: """\
You are an expert developer.
Please revise the following test code based on the instructions.
Return ONLY the updated code.

Current Tests:
{{currentTests}}

Instructions:
{{instructions}}
""",
    PromptType.UPDATE_TESTS_FROM_SPEC: """\
You are an expert developer.
The specification below has changed. Update the existing tests so they cover the new specification,
keeping tests that still apply and removing tests for behaviour that no longer exists.
Return ONLY the updated code.

Current Tests:
{{currentTests}}

New Specification:
{{newSpec}}
""",
    PromptType.GENERATE_AGENT_INSTRUCTIONS: """\
You are a technical lead.
Generate a clear set of instructions for an AI coding agent to implement the features described in the spec.
Include references to the test files that need to pass.

Spec:
{{spec}}

Test Files:
{{testPaths}}
""",
}


def interpolate(template: str, variables: Mapping[str, Optional[str]]) -> str:
    """Replaces ``{{name}}`` placeholders; unknown or empty variables become ''."""
    return _PLACEHOLDER.sub(lambda m: variables.get(m.group(1)) or "", template)


def strip_code_fences(text: str) -> str:
    """Drops a leading ```lang line and a trailing ``` line around generated code."""
    text = _LEADING_FENCE.sub("", text, count=1)
    return _TRAILING_FENCE.sub("", text, count=1)


class PromptStore:
    """
    Prompt templates keyed by operation name, stored as one JSON object.

    Keys missing from the file fall back to DEFAULT_TEMPLATES.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error("Failed to load prompts from %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.error("Prompts file %s does not contain an object", self.path)
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def list_templates(self) -> dict[str, str]:
        templates = {str(k): v for k, v in DEFAULT_TEMPLATES.items()}
        templates.update(self._load())
        return templates

    def get_template(self, name: str) -> str:
        template = self._load().get(name) or DEFAULT_TEMPLATES.get(name)
        if template is None:
            raise NotFoundError(f"Unknown prompt template {name}")
        return template

    def save_template(self, name: str, template: str) -> None:
        if name not in DEFAULT_TEMPLATES:
            raise NotFoundError(f"Unknown prompt template {name}")
        prompts = self._load()
        prompts[name] = template
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(prompts, indent=2), encoding="utf-8")
        logger.info("Saved prompt template %s", name)

    def render(self, name: str, **variables: Optional[str]) -> str:
        return interpolate(self.get_template(name), variables)
