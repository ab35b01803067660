"""Prompt construction for AI capability providers.

Each builder is a pure function of ``(text, language, instruction)`` that
returns a ``PromptBundle``. Providers translate the bundle into their native
request shape.
"""

from __future__ import annotations

import dataclasses


@dataclasses.dataclass(frozen=True, slots=True)
class PromptBundle:
    """A system instruction plus one user prompt."""

    system: str
    user: str
    max_tokens: int = 1024
    expects_json: bool = False

    def __post_init__(self) -> None:
        """Reject empty user prompts."""
        if not self.user.strip():
            raise ValueError("user: must be a non-empty prompt")

    @property
    def text(self) -> str:
        """Both parts joined, for token estimation."""
        return f"{self.system}\n{self.user}"


def _code_block(text: str, language: str) -> str:
    return f"Code:\n```{language}\n{text}\n```"


def explain_prompt(text: str, language: str, instruction: str) -> PromptBundle:
    focus = f" {instruction.strip()}" if instruction.strip() else ""
    return PromptBundle(
        system=(
            f"You are an expert {language} programmer. "
            "Provide a detailed, structured explanation."
        ),
        user=(
            f"Explain the following code.{focus}\n\n{_code_block(text, language)}\n\n"
            'Structure your response with clear sections for: "Summary:", '
            '"Line-by-Line:", "Time Complexity:", "Space Complexity:", and '
            '"Suggestions for Improvement:". In the Line-by-Line section use one '
            'bullet per item in the form "- [Lines 1-3]: explanation".'
        ),
        max_tokens=4096,
    )


def diagram_prompt(text: str, language: str, instruction: str) -> PromptBundle:  # noqa: ARG001
    return PromptBundle(
        system="You are an expert in generating Mermaid JS flowcharts.",
        user=(
            f"Generate a Mermaid JS flowchart (graph TD) for the following {language} "
            "code. Focus on control flow. Do not include any explanation, just the "
            f"Mermaid code block.\n{_code_block(text, language)}"
        ),
        max_tokens=1024,
    )


def security_prompt(text: str, language: str, instruction: str) -> PromptBundle:  # noqa: ARG001
    return PromptBundle(
        system="You are an expert security analyst. Identify vulnerabilities in code.",
        user=(
            f"Perform a security analysis on the following {language} code. For each "
            "potential vulnerability give an id, description, severity (CRITICAL, "
            "HIGH, MEDIUM, LOW, INFO), cweId if applicable, owaspCategory, "
            "suggestedFix and affected lines. Respond ONLY with a JSON array of "
            "objects with those keys, or [] when nothing is found.\n"
            f"{_code_block(text, language)}"
        ),
        max_tokens=2048,
        expects_json=True,
    )


def documentation_prompt(text: str, language: str, instruction: str) -> PromptBundle:  # noqa: ARG001
    return PromptBundle(
        system="You are an expert technical writer. Generate documentation.",
        user=(
            "Generate comprehensive documentation (JSDoc/TSDoc for JS/TS, docstrings "
            f"for Python, Markdown otherwise) for the following {language} code. "
            "Return a JSON object with 'format' and 'content' keys.\n"
            f"{_code_block(text, language)}"
        ),
        max_tokens=4096,
        expects_json=True,
    )


def tests_prompt(text: str, language: str, instruction: str) -> PromptBundle:  # noqa: ARG001
    return PromptBundle(
        system="You are an expert in generating unit tests for code.",
        user=(
            f"Generate a small set of unit tests for the following {language} code "
            "using the most common testing framework for that language. Respond "
            "with a JSON array of objects with keys description, code, framework, "
            "type (unit, integration or e2e) and linesCovered.\n"
            f"{_code_block(text, language)}"
        ),
        max_tokens=2048,
        expects_json=True,
    )

