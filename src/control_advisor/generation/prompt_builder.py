"""Prompt building for implementation text generation.

Builds a deterministic prompt from the control id, title, family and
description, optionally with example implementations from documented
controls as tone guidance.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Sequence

import structlog
import yaml

from control_advisor.models.controls import Control, ExistingControl

logger = structlog.get_logger(__name__)

PROMPT_FILE = Path(__file__).parent / "prompts" / "implementation_description.yaml"

MAX_STYLE_EXAMPLES = 25
MIN_EXAMPLE_LENGTH = 50
CONCISE_AVERAGE_LENGTH = 200
TARGET_MAX_CHARS = 250

_SENTENCE_SPLIT = re.compile(r"[.!?]+")


@dataclass
class StyleAnalysis:
    """Writing style extracted from documented implementations."""
    examples: list[str]
    avg_length: int
    notes: list[str] = field(default_factory=list)
    common_phrases: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class GenerationPrompt:
    system: str
    user: str


def analyze_writing_style(existing_controls: Sequence[ExistingControl]) -> Optional[StyleAnalysis]:
    """Collect up to 25 example implementations and summarize their style."""
    examples = [
        c.implementation.strip()
        for c in existing_controls
        if c.implementation and len(c.implementation) > MIN_EXAMPLE_LENGTH
    ][:MAX_STYLE_EXAMPLES]
    if not examples:
        return None

    avg_length = sum(len(e) for e in examples) / len(examples)
    notes = ["concise sentences"] if avg_length < CONCISE_AVERAGE_LENGTH else []

    phrases: list[str] = []
    for example in examples:
        for sentence in _SENTENCE_SPLIT.split(example):
            opener = " ".join(sentence.split()[:5])
            if len(opener) > 10:
                phrases.append(opener)

    return StyleAnalysis(
        examples=examples,
        avg_length=round(avg_length),
        notes=notes,
        common_phrases=phrases[:3],
    )


class PromptBuilder:
    """Builds prompts for provider calls from the YAML template."""

    def __init__(self, prompt_file: Path = PROMPT_FILE):
        self.prompt_file = prompt_file
        self._config: dict[str, Any] | None = None

    @property
    def config(self) -> dict[str, Any]:
        if self._config is None:
            with open(self.prompt_file, "r", encoding="utf-8") as f:
                self._config = yaml.safe_load(f)
            logger.debug("prompt_template_loaded", path=str(self.prompt_file))
        return self._config

    @property
    def version(self) -> str:
        return str(self.config.get("version", ""))

    def build_system_prompt(self) -> str:
        return self.config["system"]

    def build_style_guidance(self, style: Optional[StyleAnalysis]) -> str:
        if style is None:
            return ""
        examples = "\n".join(f'{idx}. "{ex}"' for idx, ex in enumerate(style.examples, 1))
        style_notes = f"\nPrefer {', '.join(style.notes)}." if style.notes else ""
        return self.config["style_guidance_template"].format(
            examples=examples,
            style_notes=style_notes,
        )

    def build_user_message(
        self,
        control: Control,
        existing_controls: Sequence[ExistingControl] = (),
    ) -> str:
        style = analyze_writing_style(existing_controls)
        cfg = self.config
        return cfg["user_message_template"].format(
            control_id=control.id or "Unknown",
            control_title=control.clean_title,
            control_family=control.family,
            control_description=control.description_text("\n\n") or "No description available",
            style_guidance=self.build_style_guidance(style),
            max_chars=TARGET_MAX_CHARS,
            style_requirement=(
                cfg["style_requirement_with_examples"] if style else cfg["style_requirement_default"]
            ),
            format_example="" if style else cfg["format_example"],
        )

    def build(
        self,
        control: Control,
        existing_controls: Sequence[ExistingControl] = (),
    ) -> GenerationPrompt:
        return GenerationPrompt(
            system=self.build_system_prompt(),
            user=self.build_user_message(control, existing_controls),
        )
