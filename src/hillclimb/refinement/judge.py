"""
Judge Panel

N independent oracle comparisons of incumbent (Version 1) vs challenger
(Version 2), tallied by strict majority. Ties keep the incumbent.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..core.abstractions import IOracle, ISectionExtractor
from ..core.styles import DEFAULT_STYLE, JUDGE_STYLES
from ..core.types import ParseFailure
from .prompts import GAP_SECTION, JUDGE_PROMPT

logger = logging.getLogger(__name__)

INCUMBENT = 1
CHALLENGER = 2


class JudgeVote(BaseModel):
    """One judge's verdict."""

    judge: int
    style: str
    vote: int = INCUMBENT
    defaulted: bool = False


class PanelVerdict(BaseModel):
    """Tallied panel result."""

    winner: int = INCUMBENT
    votes: List[JudgeVote] = Field(default_factory=list)

    @property
    def tally(self) -> Dict[int, int]:
        counts = {INCUMBENT: 0, CHALLENGER: 0}
        for v in self.votes:
            counts[v.vote] += 1
        return counts


def judge_styles(judge_count: int) -> List[str]:
    """
    Styles per judge: a lone judge is literal/precise, a panel rotates
    through distinct personas.
    """
    if judge_count <= 1:
        return [DEFAULT_STYLE]
    return [JUDGE_STYLES[i % len(JUDGE_STYLES)] for i in range(judge_count)]


def parse_verdict(raw: str) -> int:
    """
    Raises:
        ParseFailure: Unless the verdict is exactly "1" or "2"
    """
    value = (raw or "").strip()
    if value == "1":
        return INCUMBENT
    if value == "2":
        return CHALLENGER
    raise ParseFailure("judge", f"Unparsable verdict: {raw!r}")


def majority_winner(votes: List[JudgeVote]) -> int:
    """Challenger wins only on strict majority."""
    challenger = sum(1 for v in votes if v.vote == CHALLENGER)
    incumbent = len(votes) - challenger
    return CHALLENGER if challenger > incumbent else INCUMBENT


class JudgePanel:
    """Run the judges concurrently and tally."""

    def __init__(
        self,
        oracle: IOracle,
        extractor: ISectionExtractor,
        judge_count: int = 1,
        model_hint: Optional[str] = None,
        log: Optional[logging.LoggerAdapter] = None,
    ):
        self.oracle = oracle
        self.extractor = extractor
        self.judge_count = max(1, judge_count)
        self.model_hint = model_hint
        self.log = log or logger

    def build_prompt(
        self,
        incumbent: str,
        challenger: str,
        criteria: str,
        task_prompt: str,
        gap_report: Optional[str] = None,
    ) -> str:
        gap_section = GAP_SECTION.format(gap_report=gap_report) if gap_report else ""
        return JUDGE_PROMPT.format(
            incumbent=incumbent,
            challenger=challenger,
            task_prompt=task_prompt,
            criteria=criteria,
            gap_section=gap_section,
        )

    async def _judge(self, index: int, style: str, prompt: str) -> JudgeVote:
        try:
            response = await self.oracle.generate(prompt, style_hint=style, model_hint=self.model_hint)
        except Exception as e:
            self.log.warning(f"[Judge] Judge {index + 1} ({style}) failed: {e}. Counting a vote for 1.")
            return JudgeVote(judge=index, style=style, defaulted=True)

        raw = self.extractor.extract_section(response.text, "answer") if response.ok else ""
        try:
            return JudgeVote(judge=index, style=style, vote=parse_verdict(raw))
        except ParseFailure as e:
            self.log.warning(f"{e} (judge {index + 1}, {style}). Counting a vote for 1.")
            return JudgeVote(judge=index, style=style, defaulted=True)

    async def vote(
        self,
        incumbent: str,
        challenger: str,
        criteria: str,
        task_prompt: str,
        gap_report: Optional[str] = None,
    ) -> PanelVerdict:
        """
        Args:
            incumbent: Version 1
            challenger: Version 2
            criteria: Evaluation rubric
            task_prompt: Original prompt (context only)
            gap_report: Optional gap report the judges must weigh

        Returns:
            PanelVerdict with the winning side and every vote
        """
        prompt = self.build_prompt(incumbent, challenger, criteria, task_prompt, gap_report)
        styles = judge_styles(self.judge_count)
        votes = await asyncio.gather(
            *[self._judge(i, style, prompt) for i, style in enumerate(styles)]
        )
        verdict = PanelVerdict(winner=majority_winner(list(votes)), votes=list(votes))
        tally = verdict.tally
        self.log.info(
            f"[Judge] Votes: 1={tally[INCUMBENT]} 2={tally[CHALLENGER]} -> Version {verdict.winner}"
        )
        return verdict
