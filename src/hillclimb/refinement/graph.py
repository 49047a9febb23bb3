"""
Hill-Climbing Refinement Graph

State machine:
  1. INITIAL: Generate the first artifact (empty output = FAILED)
  2. CRITERIA: Resolve the evaluation rubric
  3. CRITIQUE: Advice + recommendation for the incumbent
  4. CANDIDATE: Generate a challenger (empty output = skip iteration)
  5. GAP: Optional checklist comparison of incumbent vs challenger
  6. DECIDE: Convergence check, stop or go to JUDGE
  7. JUDGE: Panel vote, promote challenger on a '2' verdict
  8. ADVANCE: Next iteration, or finish once the budget is spent

The loop runs at most ``max_iterations - 1`` refinement cycles.
"""

import logging
from typing import Any, Dict, List, Literal, Optional, Tuple, TypedDict

from langgraph.graph import StateGraph, START, END
from pydantic import BaseModel, Field

from ..core.abstractions import IChecklistExtractor, IOracle, ISectionExtractor
from ..core.checklist import OracleChecklistExtractor
from ..core.logger import ContextLoggerAdapter
from ..core.metrics import MetricsCollector, PhaseTimer
from ..core.tag_extraction import TagExtractor
from ..core.types import ConfigError, GapAnalysisFailure, OracleFailure, PhaseStatus
from .candidate import CandidateGenerator, LongFormGenerator
from .config import RefinementConfig
from .convergence import ConvergenceController, ConvergenceState, StopReason
from .criteria import CriteriaResolver
from .critique import CritiqueGenerator
from .gap_analysis import GapAnalyzer, GapReport, should_run_gap_analysis
from .judge import CHALLENGER, JudgePanel
from .session_store import SessionStore

logger = logging.getLogger(__name__)

# Graph steps per refinement cycle: critique, candidate, gap, decide, judge, advance
STEPS_PER_ITERATION = 6


class HillClimbingState(TypedDict):
    """State for the refinement loop."""
    task_prompt: str
    criteria: str
    incumbent: str
    iteration: int
    max_iterations: int
    advice: str
    recommendation: int
    candidate: Optional[str]
    gap_report: Optional[str]  # None = gap analysis did not run
    last_gap_length: Optional[int]
    stable_count: int
    record: Optional[Dict[str, Any]]
    history: List[Dict[str, Any]]
    status: Literal["PENDING", "DONE", "FAILED"]
    stop_reason: Optional[str]
    error: Optional[str]


class IterationRecord(BaseModel):
    """What happened in one refinement cycle."""

    iteration: int
    recommendation: int = 1
    candidate_generated: bool = False
    gap_ran: bool = False
    gap_length: Optional[int] = None
    improvement: Optional[float] = None
    stopped: bool = False
    verdict: Optional[int] = None
    tally: Dict[int, int] = Field(default_factory=dict)
    promoted: bool = False


class RefinementResult(BaseModel):
    """Outcome of a refinement session."""

    artifact: str = ""
    ok: bool = False
    status: Literal["DONE", "FAILED"] = "FAILED"
    stop_reason: Optional[str] = None
    iterations_run: int = 0
    history: List[IterationRecord] = Field(default_factory=list)
    metrics: Dict[str, Any] = Field(default_factory=dict)

    def as_tuple(self) -> Tuple[str, bool]:
        return self.artifact, self.ok


def recursion_limit(max_iterations: int) -> int:
    return max_iterations * STEPS_PER_ITERATION + 10


def initial_state(config: RefinementConfig) -> HillClimbingState:
    return {
        "task_prompt": config.task_prompt,
        "criteria": "",
        "incumbent": "",
        "iteration": 0,
        "max_iterations": config.max_iterations,
        "advice": "",
        "recommendation": 1,
        "candidate": None,
        "gap_report": None,
        "last_gap_length": None,
        "stable_count": 0,
        "record": None,
        "history": [],
        "status": "PENDING",
        "stop_reason": None,
        "error": None,
    }


def create_hill_climbing_graph(
    config: RefinementConfig,
    oracle: IOracle,
    store: SessionStore,
    extractor: Optional[ISectionExtractor] = None,
    checklist_extractor: Optional[IChecklistExtractor] = None,
    metrics: Optional[MetricsCollector] = None,
    log: Optional[logging.LoggerAdapter] = None,
):
    """
    Create the hill-climbing graph for one session.

    Args:
        config: Validated session configuration
        oracle: Text generator used by every phase
        store: Incumbent/challenger slots
        extractor: Section extractor (defaults to TagExtractor)
        checklist_extractor: Checklist capability for gap analysis
            (defaults to an oracle-backed extractor)
        metrics: Per-phase metrics sink
        log: Logger carrying the run context

    Returns:
        Compiled LangGraph graph over HillClimbingState
    """
    extractor = extractor or TagExtractor()
    checklist_extractor = checklist_extractor or OracleChecklistExtractor(
        oracle, extractor, model_hint=config.model_hint
    )
    metrics = metrics or MetricsCollector(config.session_dir)
    log = log or ContextLoggerAdapter(logger, config.context.as_extra())
    model_hint = config.model_hint

    long_form = None
    if config.handle_long_output:
        long_form = LongFormGenerator(oracle, extractor, config.long_output, model_hint, log)

    resolver = CriteriaResolver(oracle, extractor, model_hint, log)
    critic = CritiqueGenerator(oracle, extractor, model_hint, log)
    generator = CandidateGenerator(oracle, extractor, model_hint, long_form, log)
    gap_analyzer = GapAnalyzer(oracle, extractor, checklist_extractor, model_hint, log)
    panel = JudgePanel(oracle, extractor, config.judge_count, model_hint, log)
    controller = ConvergenceController(config.stability_window, config.min_improvement, log)

    async def initial_node(state: HillClimbingState) -> Dict[str, Any]:
        """Generate and store the first incumbent."""
        log.info("[HC] Generating initial artifact")
        with PhaseTimer("initial_generation", metrics) as timer:
            try:
                artifact = await generator.generate_initial(state["task_prompt"])
            except OracleFailure as e:
                timer.status = PhaseStatus.FAILED
                log.error(f"[HC] {e}. Initial generation failed; aborting session.")
                return {
                    "status": "FAILED",
                    "stop_reason": StopReason.INITIAL_GENERATION_FAILED.value,
                    "error": str(e),
                }
        store.write_best(artifact)
        log.info(f"[HC] Initial artifact stored ({len(artifact)} chars)")
        return {"incumbent": artifact, "iteration": 1}

    async def criteria_node(state: HillClimbingState) -> Dict[str, Any]:
        with PhaseTimer("criteria", metrics):
            criteria = await resolver.resolve(
                state["task_prompt"], config.criteria_text, config.criteria_file
            )
        return {"criteria": criteria}

    async def critique_node(state: HillClimbingState) -> Dict[str, Any]:
        iteration = state["iteration"]
        log.info(f"[HC] Iteration {iteration}/{state['max_iterations'] - 1}")
        with PhaseTimer("critique", metrics, details={"iteration": iteration}) as timer:
            result = await critic.critique(state["task_prompt"], state["incumbent"], state["criteria"])
            timer.details["recommendation"] = result.recommendation
        return {
            "advice": result.advice,
            "recommendation": result.recommendation,
            "candidate": None,
            "gap_report": None,
            "record": {"iteration": iteration, "recommendation": result.recommendation},
        }

    async def candidate_node(state: HillClimbingState) -> Dict[str, Any]:
        record = dict(state["record"] or {})
        with PhaseTimer("candidate", metrics, details={"iteration": state["iteration"]}) as timer:
            try:
                candidate = await generator.generate_candidate(
                    state["task_prompt"], state["incumbent"], state["advice"]
                )
            except OracleFailure as e:
                timer.status = PhaseStatus.SKIPPED
                log.warning(f"[HC] {e}. Skipping iteration {state['iteration']}.")
                return {"candidate": None, "record": {**record, "candidate_generated": False}}
        store.write_candidate(candidate)
        return {"candidate": candidate, "record": {**record, "candidate_generated": True}}

    async def gap_node(state: HillClimbingState) -> Dict[str, Any]:
        record = dict(state["record"] or {})
        if not should_run_gap_analysis(config.gap_analysis, state["incumbent"], config.gap_analysis_threshold):
            log.info(f"[HC] Gap analysis skipped (mode={config.gap_analysis.value})")
            metrics.record("gap_analysis", 0.0, PhaseStatus.SKIPPED)
            return {"gap_report": None, "record": {**record, "gap_ran": False}}

        with PhaseTimer("gap_analysis", metrics) as timer:
            try:
                report = await gap_analyzer.analyze(state["incumbent"], state["candidate"])
            except GapAnalysisFailure as e:
                timer.status = PhaseStatus.SKIPPED
                log.warning(f"{e}. Falling back to recommendation-only logic.")
                report = GapReport.skipped()
            timer.details["gap_length"] = report.length

        if not report.ran:
            return {"gap_report": None, "record": {**record, "gap_ran": False}}
        return {
            "gap_report": report.text,
            "record": {**record, "gap_ran": True, "gap_length": report.length},
        }

    async def decide_node(state: HillClimbingState) -> Dict[str, Any]:
        gap_report = state["gap_report"]
        gap_length = len(gap_report) if gap_report is not None else None
        signals = ConvergenceState(
            last_gap_length=state["last_gap_length"],
            stable_count=state["stable_count"],
            recommendation=state["recommendation"],
        )
        decision = controller.decide(state["recommendation"], gap_length, signals)
        update: Dict[str, Any] = {
            "last_gap_length": decision.state.last_gap_length,
            "stable_count": decision.state.stable_count,
            "record": {**(state["record"] or {}), "stopped": decision.stop, "improvement": decision.improvement},
        }
        if decision.stop:
            update["stop_reason"] = decision.reason.value
        return update

    async def judge_node(state: HillClimbingState) -> Dict[str, Any]:
        with PhaseTimer("judge", metrics, details={"judges": panel.judge_count}) as timer:
            verdict = await panel.vote(
                state["incumbent"],
                state["candidate"],
                state["criteria"],
                state["task_prompt"],
                gap_report=state["gap_report"] or None,
            )
            timer.details["winner"] = verdict.winner

        incumbent = state["incumbent"]
        promoted = verdict.winner == CHALLENGER
        if promoted:
            incumbent = store.promote()
            log.info("[HC] Judges preferred the candidate. Promoted to best.")
        else:
            log.info("[HC] Judges preferred the incumbent. Candidate discarded.")

        return {
            "incumbent": incumbent,
            "record": {
                **(state["record"] or {}),
                "verdict": verdict.winner,
                "tally": verdict.tally,
                "promoted": promoted,
            },
        }

    async def advance_node(state: HillClimbingState) -> Dict[str, Any]:
        return {
            "history": state["history"] + [state["record"]],
            "record": None,
            "iteration": state["iteration"] + 1,
        }

    async def finish_node(state: HillClimbingState) -> Dict[str, Any]:
        history = state["history"]
        if state["record"] is not None:
            history = history + [state["record"]]
        stop_reason = state["stop_reason"] or StopReason.BUDGET_EXHAUSTED.value
        log.info(f"[HC] Finished after {len(history)} iteration(s): {stop_reason}")
        return {"status": "DONE", "stop_reason": stop_reason, "history": history, "record": None}

    def route_after_initial(state: HillClimbingState) -> str:
        if state["status"] == "FAILED":
            return "failed"
        if state["iteration"] >= state["max_iterations"]:
            return "finish"
        return "resolve_criteria"

    def route_after_candidate(state: HillClimbingState) -> str:
        return "gap" if state["candidate"] is not None else "advance"

    def route_after_decide(state: HillClimbingState) -> str:
        return "finish" if (state["record"] or {}).get("stopped") else "judge"

    def route_after_advance(state: HillClimbingState) -> str:
        return "finish" if state["iteration"] >= state["max_iterations"] else "critique"

    graph = StateGraph(HillClimbingState)
    graph.add_node("initial", initial_node)
    graph.add_node("resolve_criteria", criteria_node)
    graph.add_node("critique", critique_node)
    graph.add_node("generate_candidate", candidate_node)
    graph.add_node("gap", gap_node)
    graph.add_node("decide", decide_node)
    graph.add_node("judge", judge_node)
    graph.add_node("advance", advance_node)
    graph.add_node("finish", finish_node)

    graph.add_edge(START, "initial")
    graph.add_conditional_edges(
        "initial",
        route_after_initial,
        {"failed": END, "finish": "finish", "resolve_criteria": "resolve_criteria"},
    )
    graph.add_edge("resolve_criteria", "critique")
    graph.add_edge("critique", "generate_candidate")
    graph.add_conditional_edges(
        "generate_candidate",
        route_after_candidate,
        {"gap": "gap", "advance": "advance"},
    )
    graph.add_edge("gap", "decide")
    graph.add_conditional_edges(
        "decide",
        route_after_decide,
        {"finish": "finish", "judge": "judge"},
    )
    graph.add_edge("judge", "advance")
    graph.add_conditional_edges(
        "advance",
        route_after_advance,
        {"finish": "finish", "critique": "critique"},
    )
    graph.add_edge("finish", END)

    return graph.compile()


def _validate(config: Any) -> RefinementConfig:
    """Re-validate so a mutated or hand-built config cannot slip through."""
    if isinstance(config, RefinementConfig):
        return RefinementConfig.build(**config.model_dump())
    if isinstance(config, dict):
        return RefinementConfig.build(**config)
    raise ConfigError(f"Unsupported config type: {type(config).__name__}")


async def run_refinement(
    config: Any,
    oracle: IOracle,
    extractor: Optional[ISectionExtractor] = None,
    checklist_extractor: Optional[IChecklistExtractor] = None,
) -> RefinementResult:
    """
    Run one hill-climbing refinement session.

    Args:
        config: RefinementConfig (or a dict of its fields)
        oracle: Text generator
        extractor: Section extractor (defaults to TagExtractor)
        checklist_extractor: Checklist capability for gap analysis

    Returns:
        RefinementResult; ``ok=False`` with an empty artifact only when the
        initial generation fails

    Raises:
        ConfigError: Before any oracle call, for an invalid configuration

    Example:
        config = RefinementConfig.build(session_dir="out/s1", task_prompt="Write a haiku")
        artifact, ok = (await run_refinement(config, oracle)).as_tuple()
    """
    config = _validate(config)
    log = ContextLoggerAdapter(logger, config.context.as_extra())

    try:
        store = SessionStore(config.session_dir)
    except OSError as e:
        raise ConfigError(f"Cannot use session directory {config.session_dir}: {e}", field="session_dir") from e

    metrics = MetricsCollector(config.session_dir)
    metrics.start()
    compiled = create_hill_climbing_graph(
        config,
        oracle,
        store,
        extractor=extractor,
        checklist_extractor=checklist_extractor,
        metrics=metrics,
        log=log,
    )

    log.info(
        f"[HC] Starting refinement (max_iterations={config.max_iterations}, "
        f"judges={config.judge_count}, gap_analysis={config.gap_analysis.value})"
    )
    final = await compiled.ainvoke(
        initial_state(config),
        config={"recursion_limit": recursion_limit(config.max_iterations)},
    )
    metrics.stop()

    history = [IterationRecord(**record) for record in final["history"]]
    if final["status"] == "FAILED":
        log.error(f"[HC] Refinement failed: {final['error']}")
        return RefinementResult(
            artifact="",
            ok=False,
            status="FAILED",
            stop_reason=final["stop_reason"],
            history=history,
            metrics=metrics.get_summary(),
        )

    return RefinementResult(
        artifact=final["incumbent"],
        ok=True,
        status="DONE",
        stop_reason=final["stop_reason"],
        iterations_run=len(history),
        history=history,
        metrics=metrics.get_summary(),
    )
