"""
Critique Generator

Asks the oracle to review the incumbent against the criteria and return
improvement advice plus a 1-4 recommendation ordinal:

  1 = needs major work
  2 = minor, optional improvements
  3 = essentially high quality
  4 = no improvement possible
"""

import logging
import re
from typing import Optional

from pydantic import BaseModel, Field

from ..core.abstractions import IOracle, ISectionExtractor
from ..core.types import ParseFailure
from .prompts import CRITIQUE_PROMPT

logger = logging.getLogger(__name__)

MIN_RECOMMENDATION = 1
MAX_RECOMMENDATION = 4
DEFAULT_RECOMMENDATION = MIN_RECOMMENDATION


class CritiqueResult(BaseModel):
    """Advice plus recommendation ordinal."""

    advice: str = ""
    recommendation: int = Field(default=DEFAULT_RECOMMENDATION, ge=MIN_RECOMMENDATION, le=MAX_RECOMMENDATION)
    recommendation_parsed: bool = False


def parse_recommendation(raw: str) -> int:
    """
    Parse a recommendation section into the 1-4 range.

    Only a bare integer is accepted; out-of-range values are clamped.

    Raises:
        ParseFailure: If the section is not a bare integer
    """
    match = re.fullmatch(r"\s*(-?\d+)\s*", raw or "")
    if not match:
        raise ParseFailure("critique", f"Unparsable recommendation: {raw!r}")
    value = int(match.group(1))
    return max(MIN_RECOMMENDATION, min(MAX_RECOMMENDATION, value))


class CritiqueGenerator:
    """Review the incumbent and produce a CritiqueResult."""

    def __init__(
        self,
        oracle: IOracle,
        extractor: ISectionExtractor,
        model_hint: Optional[str] = None,
        log: Optional[logging.LoggerAdapter] = None,
    ):
        self.oracle = oracle
        self.extractor = extractor
        self.model_hint = model_hint
        self.log = log or logger

    def build_prompt(self, task_prompt: str, incumbent: str, criteria: str) -> str:
        return CRITIQUE_PROMPT.format(
            task_prompt=task_prompt,
            solution=incumbent,
            criteria=criteria,
        )

    async def critique(self, task_prompt: str, incumbent: str, criteria: str) -> CritiqueResult:
        response = await self.oracle.generate(
            self.build_prompt(task_prompt, incumbent, criteria),
            model_hint=self.model_hint,
        )
        if not response.ok:
            self.log.warning("[Critique] Oracle returned nothing. Defaulting to recommendation 1.")
            return CritiqueResult()

        advice = self.extractor.extract_section(response.text, "answer")
        raw = self.extractor.extract_section(response.text, "recommendation_category")
        try:
            recommendation = parse_recommendation(raw)
            parsed = True
            self.log.info(f"[Critique] Recommendation category: {recommendation}")
        except ParseFailure as e:
            self.log.warning(f"{e}. Defaulting to {DEFAULT_RECOMMENDATION}.")
            recommendation = DEFAULT_RECOMMENDATION
            parsed = False

        return CritiqueResult(
            advice=advice,
            recommendation=recommendation,
            recommendation_parsed=parsed,
        )
