"""
Checklist Extraction

Oracle-backed exhaustive listing of the points in a text. The oracle is
asked for the next batch of items, given what has already been listed,
until it signals completion or stops producing anything new.
"""

import logging
from typing import List, Optional

from .abstractions import IChecklistExtractor, IOracle, ISectionExtractor
from .tag_extraction import TagExtractor

logger = logging.getLogger(__name__)

COMPLETION_MARKER = "<<<FINISHED>>>"

CHECKLIST_PROMPT = """You are a meticulous data extraction engine. Your task is to extract a list of items from the provided text, rewriting them as standalone statements that pass the "Standalone Test."

**Golden Rule: You MUST rely ONLY on the information present in the "Source Text".**

**Your Prime Directive: The "Standalone Test"**
Every statement you produce must make complete sense if read by someone with ZERO other context. Rewrite all fragments and resolve all pronouns to meet this standard.

**Extraction Instructions:**
{instructions}

**Source Text:**
## BEGIN SOURCE TEXT ##
{source_text}
## END SOURCE TEXT ##

**Items Already Extracted (for de-duplication):**
## BEGIN EXTRACTED LIST ##
{already_extracted}
## END EXTRACTED LIST ##

**Your Task:**
Return the next {chunk_size} new items that match the instructions, rewritten as standalone sentences.

**Output Format Rules:**
- Wrap your complete list of new items inside <answer>...</answer> tags.
- If you cannot find any new items, you MUST return empty tags: <answer></answer>.
- Place any comments or your reasoning inside <comments>...</comments> tags.
- Use only straight quotes and apostrophes. Do not use curly quotes.
- Use a double-hyphen (--) instead of an em-dash.
- Each new item MUST begin on a new line and be prefixed with the exact string: {item_prefix}
- CRITICAL: When you have extracted all possible new items and can find no more, you MUST end your response with the exact signal: {marker}
"""


def split_items(text: str, item_prefix: str = "- ") -> List[str]:
    """
    Split an answer block into items.

    A line starts a new item only when, after leading indentation, it begins
    with the full ``item_prefix``. Other non-empty lines continue the
    current item, so "-5 degrees" under a "- " prefix is not a new item.

    Args:
        text: Answer text, one item per line
        item_prefix: Prefix marking the start of an item ("" = one per line)

    Returns:
        Non-empty, stripped items
    """
    if not text:
        return []

    prefix = item_prefix.lstrip()
    if not prefix.strip():
        return [line.strip() for line in text.splitlines() if line.strip()]

    items: List[str] = []
    current: Optional[str] = None
    for line in text.splitlines():
        body = line.lstrip()
        if body.startswith(prefix):
            if current is not None:
                items.append(current)
            current = body[len(prefix):].strip()
            continue
        stripped = body.strip()
        if not stripped:
            continue
        if current is not None:
            # Continuation line of a wrapped item
            current = f"{current} {stripped}"
        else:
            current = stripped
    if current is not None:
        items.append(current)
    return [item for item in items if item]


class OracleChecklistExtractor(IChecklistExtractor):
    """
    Iterative checklist extraction over an oracle.

    Exact (case-insensitive) duplicates are dropped; near-duplicate merging
    is left to callers.
    """

    def __init__(
        self,
        oracle: IOracle,
        extractor: Optional[ISectionExtractor] = None,
        chunk_size: int = 20,
        max_rounds: int = 25,
        item_prefix: str = "- ",
        style_hint: Optional[str] = "precise",
        model_hint: Optional[str] = None,
    ):
        self.oracle = oracle
        self.extractor = extractor or TagExtractor()
        self.chunk_size = chunk_size
        self.max_rounds = max_rounds
        self.item_prefix = item_prefix
        self.style_hint = style_hint
        self.model_hint = model_hint

    def build_prompt(self, source_text: str, instructions: str, extracted: List[str]) -> str:
        already = (
            "\n".join(f"{self.item_prefix}{item}" for item in extracted)
            if extracted
            else "None yet. This is the first iteration."
        )
        return CHECKLIST_PROMPT.format(
            instructions=instructions,
            source_text=source_text,
            already_extracted=already,
            chunk_size=self.chunk_size,
            item_prefix=self.item_prefix,
            marker=COMPLETION_MARKER,
        )

    async def extract_checklist(self, source_text: str, instructions: str) -> List[str]:
        extracted: List[str] = []
        seen = set()
        done = False
        rounds = 0

        while rounds < self.max_rounds and not done:
            rounds += 1
            prompt = self.build_prompt(source_text, instructions, extracted)
            response = await self.oracle.generate(
                prompt, style_hint=self.style_hint, model_hint=self.model_hint
            )
            if not response.ok:
                logger.warning(f"[Checklist] Oracle failed on round {rounds}")
                break

            # The marker may land inside or after the answer section
            if COMPLETION_MARKER in response.text:
                done = True
            answer = self.extractor.extract_section(response.text, "answer")
            answer = answer.replace(COMPLETION_MARKER, "")

            new_items = []
            for item in split_items(answer, self.item_prefix):
                key = item.lower()
                if key not in seen:
                    seen.add(key)
                    new_items.append(item)

            if not new_items:
                done = True
            extracted.extend(new_items)

        if rounds >= self.max_rounds and not done:
            logger.warning(
                f"[Checklist] Reached max_rounds ({self.max_rounds}) without a completion signal"
            )

        logger.info(f"[Checklist] {len(extracted)} items in {rounds} rounds")
        return extracted
