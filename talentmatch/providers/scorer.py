"""
Language-model scorer: pairwise scoring (neural rank), batch scoring with
explanations (post-rank), and job query expansion.

Parsing helpers are module-level so they can be exercised without a
client.
"""

import json
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from openai import AsyncOpenAI

from ..config import MAX_BATCH_SIZE, Settings
from ..errors import ParseError, ValidationError
from ..logger import get_logger
from ..models import EXPLANATION_UNAVAILABLE, BatchScore, CandidateText
from ..schema import validate_batch_item
from ..similarity import clamp
from .openai_client import build_client, call_with_backoff

logger = get_logger()

_FENCED_JSON_RE = re.compile(r"```(?:json)?\s*(\{[\s\S]*\})\s*```")
_NUMBER_RE = re.compile(r"^[-+]?\d*\.?\d+(?:[eE][-+]?\d+)?")

PAIR_SYSTEM_PROMPT = "You are a semantic ranking model. Return only a numeric score between 0 and 1."
BATCH_SYSTEM_PROMPT = (
    "You are an AI recruiting assistant. Return ONLY valid JSON. "
    "Do not include any text before or after the JSON."
)
EXPAND_SYSTEM_PROMPT = (
    "You are a job query expansion system. "
    "Return only valid JSON with the exact structure specified."
)


def parse_score(content: Optional[str]) -> float:
    """Parse a bare numeric reply such as '0.82'. Raises ParseError otherwise."""
    text = (content or "").strip()
    match = _NUMBER_RE.match(text)
    if not match:
        raise ParseError(f"Failed to parse score: {text!r} is not a valid number", content=text)
    return float(match.group(0))


def parse_json_content(content: Optional[str]) -> Dict[str, Any]:
    """
    Parse a JSON object reply, recovering from a fenced ```json block.

    Raises:
        ParseError: if neither the raw text nor a fenced block is a JSON object
    """
    text = (content or "").strip()
    if not text:
        raise ParseError("No response content from provider")

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        match = _FENCED_JSON_RE.search(text)
        if not match:
            raise ParseError("Failed to parse JSON response", content=text)
        try:
            data = json.loads(match.group(1))
        except json.JSONDecodeError as e:
            raise ParseError(f"Failed to parse fenced JSON response: {e}", content=text) from e

    if not isinstance(data, dict):
        raise ParseError("Expected a JSON object", content=text)
    return data


def parse_batch_results(content: Optional[str]) -> List[BatchScore]:
    """
    Parse a batch scoring reply of the form {"results": [...]}.

    Malformed items are skipped; a reply without a results list is a ParseError.
    """
    data = parse_json_content(content)
    results = data.get("results")
    if not isinstance(results, list):
        raise ParseError("Invalid response format: missing results array", content=content or "")

    scores: List[BatchScore] = []
    for item in results:
        errors = validate_batch_item(item)
        if errors:
            logger.warning("Skipping malformed batch item", errors=errors)
            continue
        explanation = item.get("explanation")
        if not explanation or not explanation.strip():
            explanation = EXPLANATION_UNAVAILABLE
        scores.append(BatchScore(
            candidate_id=str(item["candidate_id"]),
            llm_score=clamp(float(item["llm_score"])),
            explanation=explanation.strip(),
        ))
    return scores


def build_pair_prompt(text_a: str, text_b: str) -> str:
    return (
        "You are a semantic ranking model.\n"
        "Compare the following job description and candidate resume.\n"
        "Return a single float number between 0 and 1 based on functional similarity.\n\n"
        f"Job:\n\n{text_a.strip()}\n\n"
        f"Resume:\n\n{text_b.strip()}\n\n"
        "Return ONLY the number."
    )


def build_batch_prompt(anchor_text: str, candidates: Sequence[CandidateText]) -> str:
    candidate_list = "\n\n---\n\n".join(
        f"Candidate {i} (ID: {c.candidate_id}):\n{c.text}"
        for i, c in enumerate(candidates, start=1)
    )
    return f"""You are an AI recruiting assistant.
Evaluate the match between the following job description and multiple candidate resumes.

For each candidate, provide:
1. llm_score: A float number from 0 to 1 based on:
   - functional responsibility overlap
   - relevant experience depth
   - industry/domain match
   - growth/leadership indicators
   - seniority alignment
   - similarity of metrics and achievements

2. explanation: A short 1-2 sentence explanation focusing on:
   - functional experience
   - relevant achievements
   - industry match
   - role seniority
   Do NOT include weaknesses.

Job Description:

{anchor_text.strip()}

Candidates:

{candidate_list}

Return ONLY valid JSON in this exact format:
{{
  "results": [
    {{
      "candidate_id": "id",
      "llm_score": 0.85,
      "explanation": "1-2 sentence text"
    }}
  ]
}}"""


def build_expand_prompt(text: str) -> str:
    return f"""You are a job query expansion system. Analyze the following job description and extract structured information to improve candidate matching.

Job Description:

{text.strip()}

Extract and return JSON with this exact structure:
{{
  "primary_title": "Normalized job title (e.g., 'Software Engineer', 'Marketing Manager')",
  "alternate_titles": ["Alternative titles that mean the same role"],
  "core_responsibilities": ["Main responsibility in one sentence"],
  "skill_groups": ["Group 1: related technical skills", "Group 2: tools", "Group 3: domain skills"],
  "industry": "Industry category (e.g., 'Software / SaaS', 'FinTech', 'EdTech')",
  "expanded_keywords": ["keyword1", "keyword2"]
}}

Rules:
- primary_title: Use standard job title format
- alternate_titles: Include 3-5 alternative titles that candidates might use
- core_responsibilities: Exactly 5 bullet points, each one sentence
- skill_groups: Exactly 3 groups, each containing related skills
- industry: Use standardized industry name
- expanded_keywords: 10-15 keywords that capture the essence of the role

Return ONLY valid JSON, no additional text."""


class LanguageModelScorer(ABC):
    """Abstract base class for language-model scorers."""

    @abstractmethod
    async def score_pair(self, text_a: str, text_b: str) -> float:
        """Functional similarity of two texts in [0, 1]."""
        raise NotImplementedError

    @abstractmethod
    async def score_batch(
        self,
        anchor_text: str,
        candidates: Sequence[CandidateText],
        max_batch: int = MAX_BATCH_SIZE,
    ) -> List[BatchScore]:
        """Score up to max_batch candidate texts against one anchor text in one call."""
        raise NotImplementedError

    @abstractmethod
    async def expand(self, text: str) -> Dict[str, Any]:
        """Structured expansion of a job description as a raw dict."""
        raise NotImplementedError


class OpenAIScorer(LanguageModelScorer):
    """Scorer backed by OpenAI chat completions."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        neural_model: str = "gpt-4o-mini",
        llm_model: str = "gpt-4o",
        expansion_model: str = "gpt-4o",
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.client = build_client(api_key, client)
        self.neural_model = neural_model
        self.llm_model = llm_model
        self.expansion_model = expansion_model
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAIScorer":
        return cls(
            api_key=settings.require_api_key(),
            neural_model=settings.neural_model,
            llm_model=settings.llm_model,
            expansion_model=settings.expansion_model,
            max_retries=settings.max_retries,
            base_delay=settings.retry_base_delay,
            max_delay=settings.retry_max_delay,
        )

    async def _complete(
        self,
        model: str,
        system: str,
        prompt: str,
        max_tokens: int,
        json_mode: bool = False,
    ) -> str:
        kwargs = {
            "model": model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": 0.3,
            "max_tokens": max_tokens,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = await call_with_backoff(
            lambda: self.client.chat.completions.create(**kwargs),
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
        )
        if not response.choices:
            raise ParseError("No response content from provider")
        return (response.choices[0].message.content or "").strip()

    async def score_pair(self, text_a: str, text_b: str) -> float:
        if not text_a or not text_a.strip():
            raise ValidationError("Vacancy text cannot be empty")
        if not text_b or not text_b.strip():
            raise ValidationError("Resume text cannot be empty")

        content = await self._complete(
            self.neural_model, PAIR_SYSTEM_PROMPT, build_pair_prompt(text_a, text_b), max_tokens=10
        )
        return clamp(parse_score(content))

    async def score_batch(
        self,
        anchor_text: str,
        candidates: Sequence[CandidateText],
        max_batch: int = MAX_BATCH_SIZE,
    ) -> List[BatchScore]:
        if not candidates:
            return []
        if len(candidates) > max_batch:
            raise ValidationError(f"Batch size cannot exceed {max_batch} candidates")
        if not anchor_text or not anchor_text.strip():
            raise ValidationError("Vacancy text cannot be empty")

        content = await self._complete(
            self.llm_model,
            BATCH_SYSTEM_PROMPT,
            build_batch_prompt(anchor_text, candidates),
            max_tokens=2000,
            json_mode=True,
        )
        return parse_batch_results(content)

    async def expand(self, text: str) -> Dict[str, Any]:
        if not text or not text.strip():
            raise ValidationError("Job description cannot be empty")

        content = await self._complete(
            self.expansion_model,
            EXPAND_SYSTEM_PROMPT,
            build_expand_prompt(text),
            max_tokens=1500,
            json_mode=True,
        )
        return parse_json_content(content)
