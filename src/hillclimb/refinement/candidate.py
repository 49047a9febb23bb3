"""
Candidate Generator

Produces artifact versions: the initial generation and each refined
challenger. Long outputs go through a continuation loop that accumulates
chunks until the oracle signals completion.
"""

import logging
from typing import Optional

from ..core.abstractions import IOracle, ISectionExtractor
from ..core.types import OracleFailure
from .config import LongOutputOptions
from .prompts import (
    ACCUMULATED_TEXT_PLACEHOLDER,
    ADVICE_PLACEHOLDER,
    IMPROVEMENT_CONTEXT,
    LONG_OUTPUT_PROMPT,
    PREVIOUS_SOLUTION_PLACEHOLDER,
)

logger = logging.getLogger(__name__)


def build_refinement_prompt(task_prompt: str, previous: str, advice: str) -> str:
    """
    Build the prompt for a refined version.

    If the task prompt carries {previous_solution} / {improvement_advice}
    placeholders they are filled in place; otherwise an improvement block
    is appended.
    """
    if PREVIOUS_SOLUTION_PLACEHOLDER in task_prompt or ADVICE_PLACEHOLDER in task_prompt:
        return (
            task_prompt
            .replace(PREVIOUS_SOLUTION_PLACEHOLDER, previous)
            .replace(ADVICE_PLACEHOLDER, advice)
        )
    return task_prompt + IMPROVEMENT_CONTEXT.format(previous_solution=previous, advice=advice)


class LongFormGenerator:
    """
    Continuation loop for documents longer than one response.

    Stops on the completion marker, on a short ("stalled") chunk, or after
    ``max_loops`` chunks. A short first chunk is retried once without
    consuming the budget.
    """

    def __init__(
        self,
        oracle: IOracle,
        extractor: ISectionExtractor,
        options: Optional[LongOutputOptions] = None,
        model_hint: Optional[str] = None,
        log: Optional[logging.LoggerAdapter] = None,
    ):
        self.oracle = oracle
        self.extractor = extractor
        self.options = options or LongOutputOptions()
        self.model_hint = model_hint
        self.log = log or logger

    def build_prompt(self, task_prompt: str) -> str:
        return LONG_OUTPUT_PROMPT.format(
            task_prompt=task_prompt,
            completion_marker=self.options.completion_marker,
        )

    async def generate(self, task_prompt: str) -> str:
        template = self.build_prompt(task_prompt)
        marker = self.options.completion_marker
        accumulated = ""
        loops = 0
        retried_first = False

        while loops < self.options.max_loops:
            loops += 1
            self.log.info(f"[LongForm] Generation loop {loops}/{self.options.max_loops}")

            prompt = template.replace(ACCUMULATED_TEXT_PLACEHOLDER, accumulated)
            response = await self.oracle.generate(prompt, model_hint=self.model_hint)
            answer = self.extractor.extract_section(response.text, "answer") if response.ok else ""

            if marker in answer or (response.ok and marker in response.text):
                accumulated += answer.replace(marker, "", 1).strip()
                self.log.info("[LongForm] Completion marker detected")
                return accumulated.strip()

            if len(answer) >= self.options.min_response_length:
                accumulated += answer + "\n\n"
                retried_first = True
                continue

            if loops == 1 and not retried_first:
                self.log.warning("[LongForm] Short/empty first response. Retrying once...")
                retried_first = True
                loops -= 1
                continue

            self.log.warning("[LongForm] Stall detected. Assuming generation is complete.")
            return accumulated.strip()

        self.log.warning(
            f"[LongForm] Reached max_loops ({self.options.max_loops}) without a completion signal"
        )
        return accumulated.strip()


class CandidateGenerator:
    """Generate initial and refined artifact versions."""

    def __init__(
        self,
        oracle: IOracle,
        extractor: ISectionExtractor,
        model_hint: Optional[str] = None,
        long_form: Optional[LongFormGenerator] = None,
        log: Optional[logging.LoggerAdapter] = None,
    ):
        """
        Args:
            oracle: Text generator
            extractor: Section extractor for the <answer> block
            model_hint: Preferred model
            long_form: Continuation loop to use instead of a single call
            log: Logger carrying the run context
        """
        self.oracle = oracle
        self.extractor = extractor
        self.model_hint = model_hint
        self.long_form = long_form
        self.log = log or logger

    async def _generate(self, prompt: str, phase: str) -> str:
        if self.long_form is not None:
            text = await self.long_form.generate(prompt)
        else:
            response = await self.oracle.generate(prompt, model_hint=self.model_hint)
            text = self.extractor.extract_section(response.text, "answer") if response.ok else ""

        if not text or not text.strip():
            raise OracleFailure(phase, "Generation returned empty text")
        return text

    async def generate_initial(self, task_prompt: str) -> str:
        """
        Returns:
            Initial artifact

        Raises:
            OracleFailure: On an empty generation (fatal for the session)
        """
        return await self._generate(task_prompt, "initial_generation")

    async def generate_candidate(self, task_prompt: str, incumbent: str, advice: str) -> str:
        """
        Returns:
            Challenger artifact

        Raises:
            OracleFailure: On an empty generation (the iteration is skipped)
        """
        return await self._generate(build_refinement_prompt(task_prompt, incumbent, advice), "candidate")
