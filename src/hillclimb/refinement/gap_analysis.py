"""
Gap Analyzer

Detects information loss between two artifact versions:
  1. Extract an exhaustive checklist from the incumbent (List A)
  2. Extract the same from the challenger (List B)
  3. Ask the oracle which List A items are missing or weakened in List B
"""

import logging
from typing import List, Optional

from pydantic import BaseModel, Field

from ..core.abstractions import IChecklistExtractor, IOracle, ISectionExtractor
from ..core.types import GapAnalysisFailure
from .config import GapAnalysisMode
from .prompts import CHECKLIST_INSTRUCTIONS, GAP_PROMPT

logger = logging.getLogger(__name__)


class GapReport(BaseModel):
    """Items present in the incumbent but missing/weakened in the challenger."""

    text: str = ""
    ran: bool = True
    incumbent_items: List[str] = Field(default_factory=list)
    challenger_items: List[str] = Field(default_factory=list)

    @classmethod
    def skipped(cls) -> "GapReport":
        return cls(ran=False)

    @property
    def length(self) -> int:
        return len(self.text)

    @property
    def is_empty(self) -> bool:
        return self.length == 0


def should_run_gap_analysis(mode: GapAnalysisMode, incumbent: str, threshold: int) -> bool:
    """
    Decide whether gap analysis runs this iteration.

    AUTO mode bounds prompt size: only incumbents shorter than ``threshold``
    characters are analyzed.
    """
    if mode == GapAnalysisMode.ON:
        return True
    if mode == GapAnalysisMode.AUTO:
        return len(incumbent) < threshold
    return False


def format_checklist(items: List[str], item_prefix: str = "- ") -> str:
    return "\n".join(f"{item_prefix}{item}" for item in items)


class GapAnalyzer:
    """Two-stage checklist comparison."""

    def __init__(
        self,
        oracle: IOracle,
        extractor: ISectionExtractor,
        checklist_extractor: IChecklistExtractor,
        model_hint: Optional[str] = None,
        log: Optional[logging.LoggerAdapter] = None,
    ):
        self.oracle = oracle
        self.extractor = extractor
        self.checklist_extractor = checklist_extractor
        self.model_hint = model_hint
        self.log = log or logger

    def build_prompt(self, incumbent_items: List[str], challenger_items: List[str]) -> str:
        return GAP_PROMPT.format(
            list_a=format_checklist(incumbent_items),
            list_b=format_checklist(challenger_items),
        )

    async def analyze(self, incumbent: str, challenger: str) -> GapReport:
        """
        Compare two versions.

        Returns:
            GapReport (empty text = no regression detected)

        Raises:
            GapAnalysisFailure: If there is nothing to compare or the oracle fails
        """
        self.log.info("[Gap] Performing gap analysis...")
        incumbent_items = await self.checklist_extractor.extract_checklist(incumbent, CHECKLIST_INSTRUCTIONS)
        if not incumbent_items:
            raise GapAnalysisFailure("gap_analysis", "Checklist of the incumbent is empty")
        challenger_items = await self.checklist_extractor.extract_checklist(challenger, CHECKLIST_INSTRUCTIONS)

        response = await self.oracle.generate(
            self.build_prompt(incumbent_items, challenger_items),
            style_hint="precise",
            model_hint=self.model_hint,
        )
        if not response.ok:
            raise GapAnalysisFailure("gap_analysis", "Oracle returned no gap report")

        text = self.extractor.extract_section(response.text, "answer")
        self.log.info(f"[Gap] Report generated ({len(text)} chars)")
        return GapReport(
            text=text,
            incumbent_items=incumbent_items,
            challenger_items=challenger_items,
        )
