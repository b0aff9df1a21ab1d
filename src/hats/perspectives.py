"""Deterministic per-hat reply templates.

Each perspective is a small strategy object with a single :meth:`reply`
method. They share no state and never fail; an empty prompt yields the
perspective's request-for-input line instead of a templated reply.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator

from .models import Perspective


@dataclass(frozen=True)
class PerspectiveStrategy:
    perspective: Perspective
    template: str
    empty_prompt: str

    def reply(self, text: str) -> str:
        trimmed = (text or "").strip()
        if not trimmed:
            return self.empty_prompt
        return self.template.format(text=trimmed)


STRATEGIES: Dict[Perspective, PerspectiveStrategy] = {
    s.perspective: s
    for s in (
        PerspectiveStrategy(
            Perspective.WHITE,
            "Facts / data related to your prompt:\n\n- {text}\n\n"
            "(As an assistant, I present what is explicit or verifiable.)",
            "Please provide a prompt for factual analysis.",
        ),
        PerspectiveStrategy(
            Perspective.BLACK,
            'Risks & cautions:\n\n- Potential pitfalls with "{text}" might include ...\n'
            "- Consider fallback plans and testing.",
            "Please provide a prompt to analyze risk.",
        ),
        PerspectiveStrategy(
            Perspective.BLUE,
            'Plan / structure:\n\n1. Define the objective for "{text}".\n'
            "2. Assign steps and deadlines.\n3. Monitor and review progress.",
            "Provide a prompt to produce a plan.",
        ),
        PerspectiveStrategy(
            Perspective.RED,
            'Emotional response / intuition:\n\nI feel that "{text}" might be exciting '
            "and a bit risky — there's a gut-level concern about ...",
            "Provide a prompt to express an intuition.",
        ),
        PerspectiveStrategy(
            Perspective.YELLOW,
            'Benefits and positives:\n\n- "{text}" could bring advantages such as '
            "increased engagement, novelty, and potential ROI.",
            "Provide a prompt to highlight positives.",
        ),
        PerspectiveStrategy(
            Perspective.GREEN,
            "Creative ideas and alternatives:\n\n- Try variant A: {text} + twist.\n"
            "- Try variant B: combine with something unexpected.",
            "Provide a prompt to generate creative ideas.",
        ),
    )
}


def canonical_order() -> Iterator[Perspective]:
    """Yield perspectives in the order a full round replies."""
    return iter(Perspective)


def perspective_reply(perspective: Perspective, text: str) -> str:
    return STRATEGIES[Perspective(perspective)].reply(text)
