"""Core infrastructure shared by the refinement loop."""

from .abstractions import IOracle, ISectionExtractor, IChecklistExtractor, OracleResponse
from .llm_client import create_llm_client, LLMClient
from .oracle import LLMClientOracle, LangChainOracle
from .styles import GenerationStyle, GENERATION_STYLES, JUDGE_STYLES, get_style
from .tag_extraction import TagExtractor, extract_text_between_tags
from .checklist import OracleChecklistExtractor, split_items
from .logger import get_logger, ContextLoggerAdapter
from .metrics import MetricsCollector, PhaseTimer
from .types import (
    PhaseStatus,
    RefinementError,
    ConfigError,
    OracleFailure,
    ParseFailure,
    GapAnalysisFailure,
)

__all__ = [
    # Abstractions
    "IOracle",
    "ISectionExtractor",
    "IChecklistExtractor",
    "OracleResponse",
    # LLM & oracle adapters
    "create_llm_client",
    "LLMClient",
    "LLMClientOracle",
    "LangChainOracle",
    # Styles
    "GenerationStyle",
    "GENERATION_STYLES",
    "JUDGE_STYLES",
    "get_style",
    # Extraction collaborators
    "TagExtractor",
    "extract_text_between_tags",
    "OracleChecklistExtractor",
    "split_items",
    # Logging & metrics
    "get_logger",
    "ContextLoggerAdapter",
    "MetricsCollector",
    "PhaseTimer",
    # Errors
    "PhaseStatus",
    "RefinementError",
    "ConfigError",
    "OracleFailure",
    "ParseFailure",
    "GapAnalysisFailure",
]
