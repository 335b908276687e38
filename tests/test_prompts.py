from pathlib import Path

import pytest

from specflow.domain.errors import NotFoundError
from specflow.llm.prompts import DEFAULT_TEMPLATES, PromptStore, PromptType, interpolate, strip_code_fences


def test_interpolate_replaces_known_and_blanks_unknown() -> None:
    template = "Spec: {{spec}} / Type: {{type}} / Missing: {{nothing}} / Literal: { {x} }"

    assert interpolate(template, {"spec": "S", "type": None}) == "Spec: S / Type:  / Missing:  / Literal: { {x} }"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("```typescript\ncode();\n```", "code();"),
        ("```\ncode();\n```\n", "code();"),
        ("```ts\nline1\nline2\n```", "line1\nline2"),
        ("plain code();", "plain code();"),
        ("before\n```js\ninner\n```", "before\n```js\ninner"),
    ],
)
def test_strip_code_fences(raw: str, expected: str) -> None:
    assert strip_code_fences(raw) == expected


def test_defaults_cover_every_operation(tmp_path: Path) -> None:
    store = PromptStore(tmp_path / "prompts.json")

    assert set(store.list_templates()) == {t.value for t in PromptType}
    assert store.get_template(PromptType.REVISE_TESTS) == DEFAULT_TEMPLATES[PromptType.REVISE_TESTS]


def test_saved_template_overrides_default(tmp_path: Path) -> None:
    store = PromptStore(tmp_path / "nested" / "prompts.json")

    store.save_template("generateTests", "Tests for {{spec}}")

    assert store.get_template("generateTests") == "Tests for {{spec}}"
    assert store.render("generateTests", spec="login") == "Tests for login"
    assert store.get_template("reviseTests") == DEFAULT_TEMPLATES[PromptType.REVISE_TESTS]


def test_unknown_template(tmp_path: Path) -> None:
    store = PromptStore(tmp_path / "prompts.json")

    with pytest.raises(NotFoundError):
        store.get_template("deployToProd")
    with pytest.raises(NotFoundError):
        store.save_template("deployToProd", "x")


def test_corrupt_prompt_file_falls_back_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "prompts.json"
    path.write_text("{not json", encoding="utf-8")

    assert PromptStore(path).get_template("reviseUseCase") == DEFAULT_TEMPLATES[PromptType.REVISE_USE_CASE]
