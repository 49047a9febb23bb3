"""
hillclimb - iterative LLM artifact refinement.

Usage:
    from hillclimb import RefinementConfig, LLMClientOracle, create_llm_client, run_refinement

    oracle = LLMClientOracle(create_llm_client("ollama", "mistral:7b"))
    config = RefinementConfig.build(session_dir="sessions/demo", task_prompt="...")
    result = await run_refinement(config, oracle)
"""

from .core import (
    IOracle,
    ISectionExtractor,
    IChecklistExtractor,
    OracleResponse,
    LLMClientOracle,
    LangChainOracle,
    create_llm_client,
    TagExtractor,
    OracleChecklistExtractor,
    ConfigError,
)
from .refinement import (
    GapAnalysisMode,
    RefinementConfig,
    RunContext,
    RefinementResult,
    run_refinement,
)

__version__ = "0.1.0"

__all__ = [
    "IOracle",
    "ISectionExtractor",
    "IChecklistExtractor",
    "OracleResponse",
    "LLMClientOracle",
    "LangChainOracle",
    "create_llm_client",
    "TagExtractor",
    "OracleChecklistExtractor",
    "ConfigError",
    "GapAnalysisMode",
    "RefinementConfig",
    "RunContext",
    "RefinementResult",
    "run_refinement",
]
