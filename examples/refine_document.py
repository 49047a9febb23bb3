"""Refine a short document with the hill-climbing loop."""

import asyncio
import os
import sys

from dotenv import load_dotenv

from hillclimb import (
    GapAnalysisMode,
    LLMClientOracle,
    RefinementConfig,
    RunContext,
    create_llm_client,
    run_refinement,
)
from hillclimb.core import get_logger

# Load environment variables
load_dotenv()

logger = get_logger("refine_document")

TASK_PROMPT = """Write a one-page onboarding guide for new engineers joining a small
backend team. Cover local setup, the code review process, deployment and
on-call expectations.

Wrap the guide in <answer>...</answer> tags."""

CRITERIA = """- Every section named in the prompt is present
- Steps are concrete and ordered
- No filler; each paragraph carries information"""


async def main() -> int:
    provider = os.getenv("LLM_PROVIDER", "ollama")
    model = os.getenv("LLM_MODEL", "mistral:7b")
    oracle = LLMClientOracle(create_llm_client(provider=provider, model=model))

    config = RefinementConfig.build(
        session_dir=os.getenv("SESSION_DIR", "sessions/onboarding"),
        task_prompt=TASK_PROMPT,
        criteria_text=CRITERIA,
        max_iterations=int(os.getenv("MAX_ITERATIONS", "4")),
        judge_count=int(os.getenv("JUDGE_COUNT", "3")),
        gap_analysis=GapAnalysisMode(os.getenv("GAP_ANALYSIS", "auto")),
        context=RunContext(session_id="onboarding-demo"),
    )

    result = await run_refinement(config, oracle)

    if not result.ok:
        logger.error(f"Refinement failed ({result.stop_reason})")
        return 1

    print(f"\nStopped: {result.stop_reason} after {result.iterations_run} iteration(s)")
    for record in result.history:
        print(
            f"  iter {record.iteration}: rec={record.recommendation} "
            f"gap={record.gap_length} verdict={record.verdict} promoted={record.promoted}"
        )
    print("\n" + result.artifact)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
