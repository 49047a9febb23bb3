"""
Generation styles ("personas").

Named sampling presets passed to the oracle as a style hint. The judge panel
rotates through several of them to decorrelate its votes.
"""

import logging
from typing import Dict, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_STYLE = "precise"


class GenerationStyle(BaseModel):
    """Sampling parameters for one style."""

    temperature: float
    top_p: float
    top_k: int
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    repetition_penalty: float = 1.0
    min_p: Optional[float] = None


GENERATION_STYLES: Dict[str, GenerationStyle] = {
    "precise": GenerationStyle(temperature=0.0, top_p=0.1, top_k=5, repetition_penalty=1.1, min_p=0.01),
    "balanced": GenerationStyle(temperature=0.5, top_p=0.5, top_k=30, frequency_penalty=0.3, presence_penalty=0.3, repetition_penalty=1.1),
    "creative": GenerationStyle(temperature=1.0, top_p=0.9, top_k=50, frequency_penalty=0.5, presence_penalty=0.6),
    "brainstorm": GenerationStyle(temperature=1.5, top_p=1.0, top_k=100, frequency_penalty=0.7, presence_penalty=0.8),
    "summarization": GenerationStyle(temperature=0.3, top_p=0.2, top_k=10, frequency_penalty=0.1, presence_penalty=0.1),
    "dialogue": GenerationStyle(temperature=0.8, top_p=0.9, top_k=50, frequency_penalty=0.6, presence_penalty=0.7),
    "code_generation": GenerationStyle(temperature=0.2, top_p=0.2, top_k=10),
    "paraphrasing": GenerationStyle(temperature=0.6, top_p=0.7, top_k=30, frequency_penalty=0.5, presence_penalty=0.5),
    "formal": GenerationStyle(temperature=0.3, top_p=0.3, top_k=20, frequency_penalty=0.2, presence_penalty=0.3),
    "casual": GenerationStyle(temperature=0.7, top_p=0.8, top_k=40, frequency_penalty=0.4, presence_penalty=0.5),
    "tech-heavy": GenerationStyle(temperature=0.1, top_p=0.2, top_k=5, presence_penalty=0.2),
    "inspirational": GenerationStyle(temperature=1.2, top_p=1.0, top_k=60, frequency_penalty=0.6, presence_penalty=0.7),
    "news_journalistic": GenerationStyle(temperature=0.3, top_p=0.4, top_k=20, frequency_penalty=0.1, presence_penalty=0.2),
}

# Judge personas, cycled when more than one judge votes
JUDGE_STYLES = ["balanced", "creative", "formal", "tech-heavy", "paraphrasing"]


def get_style(name: Optional[str]) -> GenerationStyle:
    """
    Look up a style by name.

    Args:
        name: Style name, or None for the default

    Returns:
        GenerationStyle (falls back to "precise" for unknown names)
    """
    if not name:
        return GENERATION_STYLES[DEFAULT_STYLE]
    style = GENERATION_STYLES.get(name)
    if style is None:
        logger.warning(f"Unknown generation style '{name}', using '{DEFAULT_STYLE}'")
        return GENERATION_STYLES[DEFAULT_STYLE]
    return style
