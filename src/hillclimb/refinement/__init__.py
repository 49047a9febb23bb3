"""
Hill-climbing refinement loop.

Generate an artifact, then repeatedly critique it, produce a challenger,
check the challenger for information loss and let a judge panel decide
whether it replaces the incumbent.
"""

from .config import GapAnalysisMode, LongOutputOptions, RefinementConfig, RunContext
from .criteria import CriteriaResolver
from .critique import CritiqueGenerator, CritiqueResult, parse_recommendation
from .candidate import CandidateGenerator, LongFormGenerator, build_refinement_prompt
from .gap_analysis import GapAnalyzer, GapReport, should_run_gap_analysis
from .judge import JudgePanel, JudgeVote, PanelVerdict, majority_winner, parse_verdict
from .convergence import ConvergenceController, ConvergenceState, Decision, StopReason
from .session_store import SessionStore
from .graph import (
    HillClimbingState,
    IterationRecord,
    RefinementResult,
    create_hill_climbing_graph,
    run_refinement,
)

__all__ = [
    # Configuration
    "GapAnalysisMode",
    "LongOutputOptions",
    "RefinementConfig",
    "RunContext",
    # Components
    "CriteriaResolver",
    "CritiqueGenerator",
    "CritiqueResult",
    "parse_recommendation",
    "CandidateGenerator",
    "LongFormGenerator",
    "build_refinement_prompt",
    "GapAnalyzer",
    "GapReport",
    "should_run_gap_analysis",
    "JudgePanel",
    "JudgeVote",
    "PanelVerdict",
    "majority_winner",
    "parse_verdict",
    "ConvergenceController",
    "ConvergenceState",
    "Decision",
    "StopReason",
    "SessionStore",
    # Loop
    "HillClimbingState",
    "IterationRecord",
    "RefinementResult",
    "create_hill_climbing_graph",
    "run_refinement",
]
