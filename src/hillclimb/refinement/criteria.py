"""Criteria Resolver - obtain the evaluation rubric for a task."""

import logging
from pathlib import Path
from typing import Optional

from ..core.abstractions import IOracle, ISectionExtractor
from .prompts import CRITERIA_PROMPT, GENERIC_CRITERIA

logger = logging.getLogger(__name__)


class CriteriaResolver:
    """
    Resolve evaluation criteria.

    Order: explicit text, criteria file, oracle-synthesized rubric, generic
    rubric. Never fails and never returns an empty string.
    """

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

    def _read_file(self, criteria_file: Optional[str]) -> str:
        if not criteria_file:
            return ""
        path = Path(criteria_file)
        if not path.is_file():
            return ""
        try:
            return path.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError) as e:
            self.log.warning(f"[Criteria] Could not read {path}: {e}")
            return ""

    async def resolve(
        self,
        task_prompt: str,
        criteria_text: Optional[str] = None,
        criteria_file: Optional[str] = None,
    ) -> str:
        if criteria_text and criteria_text.strip():
            return criteria_text.strip()

        from_file = self._read_file(criteria_file)
        if from_file:
            self.log.info(f"[Criteria] Loaded from {criteria_file}")
            return from_file

        self.log.info("[Criteria] None supplied. Generating dynamically...")
        response = await self.oracle.generate(
            CRITERIA_PROMPT.format(task_prompt=task_prompt),
            model_hint=self.model_hint,
        )
        synthesized = self.extractor.extract_section(response.text, "answer") if response.ok else ""
        if synthesized.strip():
            self.log.info("[Criteria] Dynamically generated evaluation criteria")
            return synthesized.strip()

        self.log.warning("[Criteria] Oracle failed to generate criteria. Using generic default.")
        return GENERIC_CRITERIA
