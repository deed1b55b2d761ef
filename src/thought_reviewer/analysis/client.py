"""Gemini client that comments on project ideas."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Final, List, Sequence

import requests
from loguru import logger

from ..review.adapters import AdapterError


DEFAULT_GEMINI_ENDPOINT: Final[str] = (
    "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash:generateContent"
)

PROMPT_TEMPLATE: Final[str] = """Below is a list of ideas I wrote down recently. Each one may be a hobby
project, a product concept, a startup idea or an experiment. Analyse every idea separately.

First judge what kind of idea it is and at what scale, then include only the
sections that make sense for it:
- What makes it interesting
- Technical approach and likely stack
- What I would learn building it
- Market and competitors (business ideas only)
- Rough effort estimate
- Risks and open questions
- Similar projects worth looking at
- Concrete next steps

Say so when you are unsure. Start each idea with a heading of the form
"=== IDEA #<n>: <short description> ===".

IDEAS:

{ideas}
"""


class AnalysisError(AdapterError):
    """Raised when the analysis endpoint fails or returns no text."""
    pass


@dataclass(frozen=True)
class AnalyzerConfig:
    """Configuration for the Gemini analyzer."""
    api_key: str
    endpoint: str = DEFAULT_GEMINI_ENDPOINT
    timeout_seconds: int = 60

    def __post_init__(self) -> None:
        if not self.api_key.strip():
            raise ValueError("API key cannot be empty")
        if not self.endpoint.startswith(("http://", "https://")):
            raise ValueError("Endpoint must be an http(s) URL")
        if self.timeout_seconds <= 0:
            raise ValueError("Timeout must be positive")


def build_prompt(ideas: Sequence[str]) -> str:
    """Number the ideas and place them into the analysis prompt."""
    numbered: str = "\n".join(f"{i}. {idea.strip()}" for i, idea in enumerate(ideas, 1))
    return PROMPT_TEMPLATE.format(ideas=numbered)


class GeminiAnalyzer:
    """Analyzer adapter backed by the Gemini ``generateContent`` API."""

    def __init__(self, config: AnalyzerConfig) -> None:
        self.config: AnalyzerConfig = config

    def summarize(self, ideas: Sequence[str]) -> str:
        """Send the ideas to Gemini and return its commentary.

        Args:
            ideas: Thought bodies, in the order they were captured.

        Returns:
            The model's text response.

        Raises:
            ValueError: If no ideas are given.
            AnalysisError: If the request fails or the response has no text.
        """
        if not ideas:
            raise ValueError("At least one idea is required for analysis")

        payload: Dict[str, Any] = {"contents": [{"parts": [{"text": build_prompt(ideas)}]}]}
        logger.info(f"Requesting analysis of {len(ideas)} ideas")

        try:
            response: requests.Response = requests.post(
                self.config.endpoint,
                headers={"x-goog-api-key": self.config.api_key},
                json=payload,
                timeout=self.config.timeout_seconds
            )
            response.raise_for_status()
            body: Dict[str, Any] = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Analysis request failed: {e}")
            raise AnalysisError(f"Analysis request failed: {e}") from e
        except ValueError as e:
            logger.error(f"Analysis response is not JSON: {e}")
            raise AnalysisError(f"Analysis response is not JSON: {e}") from e

        return self._extract_text(body)

    @staticmethod
    def _extract_text(body: Dict[str, Any]) -> str:
        try:
            parts: List[Dict[str, Any]] = body["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as e:
            feedback: Any = body.get("promptFeedback") if isinstance(body, dict) else None
            logger.error(f"Analysis response has no candidates (feedback: {feedback})")
            raise AnalysisError(f"Analysis response has no candidates: {feedback or e}") from e

        text: str = "".join(str(part.get("text", "")) for part in parts).strip()
        if not text:
            raise AnalysisError("Analysis response contained no text")
        return text
