"""
Tests for the hill-climbing refinement loop

Tests cover:
  - Budget handling (max_iterations = 1, forced continuation)
  - Early stopping (recommendation, stable gaps, no gaps)
  - Promotion by majority vote and tie handling
  - Soft failures (empty candidate, gap analysis failure)
  - Fatal paths (empty initial generation, invalid config)
  - Idempotence under a constant oracle
  - Session store contents, metrics, logging context
"""

import asyncio
import logging
import re

import pytest

from hillclimb.core.types import ConfigError
from hillclimb.refinement.config import GapAnalysisMode, RefinementConfig, RunContext
from hillclimb.refinement.graph import (
    create_hill_climbing_graph,
    initial_state,
    recursion_limit,
    run_refinement,
)
from hillclimb.refinement.session_store import SessionStore

from mocks import (
    PhaseOracle,
    ScriptedOracle,
    StaticChecklistExtractor,
    answer,
    critique_response,
    set_difference_gap,
    verdict_response,
)


# ============================================================================
# Helpers
# ============================================================================

TASK = "Write a short list of fruit."


def make_config(tmp_path, **overrides) -> RefinementConfig:
    params = {
        "session_dir": str(tmp_path / "session"),
        "task_prompt": TASK,
        "criteria_text": "Be complete.",
        "gap_analysis": GapAnalysisMode.OFF,
    }
    params.update(overrides)
    return RefinementConfig.build(**params)


def recommend(value):
    return lambda prompt, style, index: critique_response(f"advice {index + 1}", value)


def numbered_candidates(prompt, style, index):
    return answer(f"draft {index + 1}")


def version_number(prompt: str, version: int) -> int:
    section = re.search(
        rf"## VERSION {version} BEGINS HERE ##(.*?)## VERSION {version} ENDS HERE ##",
        prompt,
        re.DOTALL,
    ).group(1)
    return int(re.search(r"draft (\d+)", section).group(1))


def prefer_newer(prompt, style, index):
    """Scripted judge rule: the higher draft number is better."""
    return verdict_response(2 if version_number(prompt, 2) > version_number(prompt, 1) else 1)


def read_best(tmp_path) -> str:
    return (tmp_path / "session" / "best.txt").read_text(encoding="utf-8")


# ============================================================================
# Budget
# ============================================================================

class TestBudget:
    """Iteration budget handling."""

    @pytest.mark.asyncio
    async def test_single_iteration_is_one_call(self, tmp_path):
        oracle = ScriptedOracle(["<answer>first draft</answer>"])
        config = make_config(tmp_path, max_iterations=1, criteria_text=None,
                             gap_analysis=GapAnalysisMode.ON)

        result = await run_refinement(config, oracle)

        assert result.as_tuple() == ("first draft", True)
        assert oracle.call_count == 1
        assert result.iterations_run == 0
        assert result.stop_reason == "budget_exhausted"
        assert read_best(tmp_path) == "first draft"

    @pytest.mark.asyncio
    async def test_forced_continuation_runs_full_budget(self, tmp_path):
        oracle = PhaseOracle({
            "initial": lambda p, s, i: answer("draft 0"),
            "critique": recommend(1),
            "candidate": numbered_candidates,
            "gap": set_difference_gap,
            "judge": lambda p, s, i: verdict_response(1),
        })
        checklists = StaticChecklistExtractor({}, default=["apple"])
        config = make_config(tmp_path, max_iterations=5, gap_analysis=GapAnalysisMode.ON)

        result = await run_refinement(config, oracle, checklist_extractor=checklists)

        assert result.ok is True
        assert result.iterations_run == 4
        assert result.stop_reason == "budget_exhausted"
        assert oracle.count("critique") == 4
        assert oracle.count("judge") == 4
        # Zero-length gap reports never stop a recommendation-1 session
        assert all(r.gap_length == 0 for r in result.history)
        assert result.artifact == "draft 0"

    @pytest.mark.asyncio
    async def test_recursion_limit_covers_budget(self, tmp_path):
        oracle = PhaseOracle({
            "initial": lambda p, s, i: answer("draft 0"),
            "critique": recommend(1),
            "candidate": numbered_candidates,
            "judge": prefer_newer,
        })
        config = make_config(tmp_path, max_iterations=12)

        result = await run_refinement(config, oracle)

        assert result.iterations_run == 11
        assert result.artifact == "draft 11"
        assert recursion_limit(12) > 11 * 6


# ============================================================================
# Promotion
# ============================================================================

class TestPromotion:
    """Judge panel decides promotion."""

    @pytest.mark.asyncio
    async def test_three_iterations_three_judges(self, tmp_path):
        oracle = PhaseOracle({
            "initial": lambda p, s, i: answer("draft 0"),
            "critique": recommend(2),
            "candidate": numbered_candidates,
            "judge": prefer_newer,
        })
        config = make_config(tmp_path, max_iterations=3, judge_count=3)

        result = await run_refinement(config, oracle)

        assert result.as_tuple() == ("draft 2", True)
        assert oracle.count("critique") == 2
        assert oracle.count("judge") == 6
        panels = [r for r in result.history if r.verdict is not None]
        assert len(panels) == 2
        assert all(r.promoted for r in panels)
        assert all(r.tally == {1: 0, 2: 3} for r in panels)
        assert read_best(tmp_path) == "draft 2"
        assert (tmp_path / "session" / "candidate.txt").read_text(encoding="utf-8") == "draft 2"

    @pytest.mark.asyncio
    async def test_refinement_prompt_uses_latest_incumbent(self, tmp_path):
        oracle = PhaseOracle({
            "initial": lambda p, s, i: answer("draft 0"),
            "critique": recommend(2),
            "candidate": numbered_candidates,
            "judge": prefer_newer,
        })

        await run_refinement(make_config(tmp_path, max_iterations=3), oracle)

        candidate_prompts = [c[1] for c in oracle.calls if c[0] == "candidate"]
        assert "draft 0" in candidate_prompts[0] and "advice 1" in candidate_prompts[0]
        assert "draft 1" in candidate_prompts[1] and "advice 2" in candidate_prompts[1]

    @pytest.mark.asyncio
    async def test_tie_keeps_incumbent(self, tmp_path):
        votes = {"balanced": 2, "creative": 1}
        oracle = PhaseOracle({
            "initial": lambda p, s, i: answer("draft 0"),
            "critique": recommend(2),
            "candidate": numbered_candidates,
            "judge": lambda p, s, i: verdict_response(votes[s]),
        })
        config = make_config(tmp_path, max_iterations=3, judge_count=2)

        result = await run_refinement(config, oracle)

        assert result.artifact == "draft 0"
        assert not any(r.promoted for r in result.history)
        assert read_best(tmp_path) == "draft 0"

    @pytest.mark.asyncio
    async def test_gap_report_reaches_judges(self, tmp_path):
        oracle = PhaseOracle({
            "initial": lambda p, s, i: answer("draft 0"),
            "critique": recommend(2),
            "candidate": numbered_candidates,
            "gap": set_difference_gap,
            "judge": lambda p, s, i: verdict_response(1),
        })
        checklists = StaticChecklistExtractor({
            "draft 0": ["apple", "banana", "cherry"],
            "draft 1": ["apple", "banana"],
        })
        config = make_config(tmp_path, max_iterations=2, gap_analysis=GapAnalysisMode.ON)

        result = await run_refinement(config, oracle, checklist_extractor=checklists)

        judge_prompt = [c[1] for c in oracle.calls if c[0] == "judge"][0]
        assert "Formal Gap Analysis Report" in judge_prompt
        assert "cherry" in judge_prompt
        assert result.history[0].gap_length == len("cherry")


# ============================================================================
# Early stopping
# ============================================================================

class TestEarlyStopping:
    """Convergence-driven termination."""

    @pytest.mark.asyncio
    async def test_recommendation_four_without_gap_analysis(self, tmp_path):
        oracle = PhaseOracle({
            "initial": lambda p, s, i: answer("draft 0"),
            "critique": recommend(4),
            "candidate": numbered_candidates,
            "judge": prefer_newer,
        })

        result = await run_refinement(make_config(tmp_path, max_iterations=5), oracle)

        assert result.stop_reason == "recommendation"
        assert result.iterations_run == 1
        assert oracle.count("judge") == 0
        # The challenger of a stopping iteration is discarded
        assert result.artifact == "draft 0"

    @pytest.mark.asyncio
    async def test_recommendation_four_stops_once_gaps_stable(self, tmp_path):
        oracle = PhaseOracle({
            "initial": lambda p, s, i: answer("draft 0"),
            "critique": recommend(4),
            "candidate": numbered_candidates,
            "gap": lambda p, s, i: answer("Some detail about apples was lost."),
            "judge": lambda p, s, i: verdict_response(1),
        })
        checklists = StaticChecklistExtractor({}, default=["apple"])
        config = make_config(tmp_path, max_iterations=10, gap_analysis=GapAnalysisMode.ON)

        result = await run_refinement(config, oracle, checklist_extractor=checklists)

        assert result.stop_reason == "gap_stable"
        assert result.iterations_run == 3
        assert oracle.count("judge") == 2
        assert result.history[-1].stopped is True

    @pytest.mark.asyncio
    async def test_recommendation_three_with_no_gaps(self, tmp_path):
        oracle = PhaseOracle({
            "initial": lambda p, s, i: answer("draft 0"),
            "critique": recommend(3),
            "candidate": numbered_candidates,
            "gap": set_difference_gap,
        })
        checklists = StaticChecklistExtractor({}, default=["apple"])
        config = make_config(tmp_path, max_iterations=5, gap_analysis=GapAnalysisMode.ON)

        result = await run_refinement(config, oracle, checklist_extractor=checklists)

        assert result.stop_reason == "no_gaps"
        assert result.iterations_run == 1

    @pytest.mark.asyncio
    async def test_auto_mode_skips_large_incumbent(self, tmp_path):
        oracle = PhaseOracle({
            "initial": lambda p, s, i: answer("x" * 200),
            "critique": recommend(3),
            "candidate": numbered_candidates,
        })
        checklists = StaticChecklistExtractor({}, default=["apple"])
        config = make_config(tmp_path, max_iterations=3, gap_analysis=GapAnalysisMode.AUTO,
                             gap_analysis_threshold=100)

        result = await run_refinement(config, oracle, checklist_extractor=checklists)

        assert checklists.calls == []
        assert result.history[0].gap_ran is False
        assert result.stop_reason == "recommendation"


# ============================================================================
# Soft failures
# ============================================================================

class TestSoftFailures:
    """Recoverable faults degrade instead of aborting."""

    @pytest.mark.asyncio
    async def test_empty_candidate_skips_iteration(self, tmp_path):
        oracle = PhaseOracle({
            "initial": lambda p, s, i: answer("draft 0"),
            "critique": recommend(2),
            "candidate": lambda p, s, i: None if i == 0 else answer("draft 9"),
            "judge": prefer_newer,
        })

        result = await run_refinement(make_config(tmp_path, max_iterations=3), oracle)

        assert result.iterations_run == 2
        assert result.history[0].candidate_generated is False
        assert result.history[0].verdict is None
        assert oracle.count("judge") == 1
        assert result.artifact == "draft 9"

    @pytest.mark.asyncio
    async def test_gap_failure_falls_back_to_recommendation(self, tmp_path):
        oracle = PhaseOracle({
            "initial": lambda p, s, i: answer("draft 0"),
            "critique": recommend(3),
            "candidate": numbered_candidates,
        })
        checklists = StaticChecklistExtractor({})
        config = make_config(tmp_path, max_iterations=4, gap_analysis=GapAnalysisMode.ON)

        result = await run_refinement(config, oracle, checklist_extractor=checklists)

        assert result.history[0].gap_ran is False
        assert result.stop_reason == "recommendation"
        assert oracle.count("gap") == 0

    @pytest.mark.asyncio
    async def test_idempotent_under_constant_oracle(self, tmp_path):
        oracle = ScriptedOracle(default="the same text")
        config = make_config(tmp_path, max_iterations=4, criteria_text=None,
                             gap_analysis=GapAnalysisMode.AUTO)

        result = await run_refinement(config, oracle)

        assert result.as_tuple() == ("the same text", True)
        assert result.iterations_run == 3
        assert not any(r.promoted for r in result.history)
        assert read_best(tmp_path) == "the same text"

    @pytest.mark.asyncio
    async def test_incumbent_never_empty(self, tmp_path):
        oracle = PhaseOracle({
            "initial": lambda p, s, i: answer("draft 0"),
            "critique": lambda p, s, i: None,
            "candidate": lambda p, s, i: answer("   ") if i % 2 else answer(f"draft {i + 1}"),
            "judge": prefer_newer,
        })

        result = await run_refinement(make_config(tmp_path, max_iterations=6), oracle)

        assert result.ok is True
        assert result.artifact.strip()
        assert read_best(tmp_path).strip()
        assert result.iterations_run == 5


# ============================================================================
# Fatal paths
# ============================================================================

class TestFatalPaths:
    """Only an empty initial generation or a bad config end the session."""

    @pytest.mark.asyncio
    async def test_empty_initial_generation(self, tmp_path):
        oracle = ScriptedOracle(["<answer>  </answer>"], default="<answer>unused</answer>")

        result = await run_refinement(make_config(tmp_path), oracle)

        assert result.as_tuple() == ("", False)
        assert result.status == "FAILED"
        assert result.stop_reason == "initial_generation_failed"
        assert oracle.call_count == 1
        assert not (tmp_path / "session" / "best.txt").exists()

    @pytest.mark.asyncio
    async def test_blank_task_prompt_is_config_error(self, tmp_path):
        oracle = ScriptedOracle(default="<answer>x</answer>")

        with pytest.raises(ConfigError) as exc:
            await run_refinement({"session_dir": str(tmp_path), "task_prompt": "  "}, oracle)

        assert exc.value.field == "task_prompt"
        assert oracle.call_count == 0

    @pytest.mark.asyncio
    async def test_missing_session_dir_is_config_error(self):
        oracle = ScriptedOracle(default="<answer>x</answer>")

        with pytest.raises(ConfigError):
            await run_refinement({"task_prompt": TASK}, oracle)
        assert oracle.call_count == 0

    def test_invalid_budget_is_config_error(self, tmp_path):
        with pytest.raises(ConfigError):
            RefinementConfig.build(session_dir=str(tmp_path), task_prompt=TASK, max_iterations=0)

    @pytest.mark.asyncio
    async def test_mutated_config_revalidated(self, tmp_path):
        config = make_config(tmp_path)
        config.task_prompt = ""
        oracle = ScriptedOracle()

        with pytest.raises(ConfigError):
            await run_refinement(config, oracle)
        assert oracle.call_count == 0


# ============================================================================
# Graph reuse
# ============================================================================

class TestGraphReuse:
    """One compiled graph, several sessions."""

    @pytest.mark.asyncio
    async def test_convergence_signals_reset_per_invocation(self, tmp_path):
        recommendation = {"value": 2}
        oracle = PhaseOracle({
            "initial": lambda p, s, i: answer("draft 0"),
            "critique": lambda p, s, i: critique_response("advice", recommendation["value"]),
            "candidate": numbered_candidates,
            "gap": lambda p, s, i: answer("Some detail about apples was lost."),
            "judge": lambda p, s, i: verdict_response(1),
        })
        checklists = StaticChecklistExtractor({}, default=["apple"])
        config = make_config(tmp_path, max_iterations=6, gap_analysis=GapAnalysisMode.ON)
        graph = create_hill_climbing_graph(
            config, oracle, SessionStore(config.session_dir), checklist_extractor=checklists
        )
        limits = {"recursion_limit": recursion_limit(config.max_iterations)}

        first = await graph.ainvoke(initial_state(config), config=limits)
        assert first["stop_reason"] == "budget_exhausted"
        assert first["stable_count"] == 4

        recommendation["value"] = 3
        second = await graph.ainvoke(initial_state(config), config=limits)

        # The first gap report of the new run is only a baseline
        assert second["history"][0]["stopped"] is False
        assert second["history"][0]["improvement"] is None
        assert second["stop_reason"] == "gap_stable"
        assert len(second["history"]) == 3


# ============================================================================
# Observability
# ============================================================================

class TestObservability:
    """Metrics, logging context, independent sessions."""

    @pytest.mark.asyncio
    async def test_metrics_summary(self, tmp_path):
        oracle = PhaseOracle({
            "initial": lambda p, s, i: answer("draft 0"),
            "critique": recommend(2),
            "candidate": numbered_candidates,
            "judge": prefer_newer,
        })

        result = await run_refinement(make_config(tmp_path, max_iterations=3), oracle)

        assert result.metrics["critique"]["count"] == 2
        assert result.metrics["judge"]["count"] == 2
        assert result.metrics["gap_analysis"]["success_rate"] == 0
        assert "total_duration_ms" in result.metrics

    @pytest.mark.asyncio
    async def test_criteria_resolved_once(self, tmp_path):
        oracle = PhaseOracle({
            "initial": lambda p, s, i: answer("draft 0"),
            "criteria": lambda p, s, i: answer("- mention three fruits"),
            "critique": recommend(2),
            "candidate": numbered_candidates,
            "judge": prefer_newer,
        })

        await run_refinement(make_config(tmp_path, max_iterations=4, criteria_text=None), oracle)

        assert oracle.count("criteria") == 1
        critique_prompts = [c[1] for c in oracle.calls if c[0] == "critique"]
        assert all("- mention three fruits" in p for p in critique_prompts)

    @pytest.mark.asyncio
    async def test_run_context_in_logs(self, tmp_path, caplog):
        caplog.set_level(logging.INFO)
        oracle = ScriptedOracle(["<answer>first</answer>"])
        config = make_config(
            tmp_path,
            max_iterations=1,
            context=RunContext(session_id="abc", idea_id=7),
        )

        await run_refinement(config, oracle)

        messages = [r.getMessage() for r in caplog.records]
        assert any("[session=abc idea=7 component=hill_climbing]" in m for m in messages)

    @pytest.mark.asyncio
    async def test_concurrent_sessions_are_independent(self, tmp_path):
        def session_oracle(label):
            return PhaseOracle({
                "initial": lambda p, s, i: answer(f"{label} draft 0"),
                "critique": recommend(2),
                "candidate": lambda p, s, i: answer(f"{label} draft {i + 1}"),
                "judge": prefer_newer,
            }, delay=0.01)

        first = make_config(tmp_path / "a", max_iterations=3)
        second = make_config(tmp_path / "b", max_iterations=2)

        results = await asyncio.gather(
            run_refinement(first, session_oracle("alpha")),
            run_refinement(second, session_oracle("beta")),
        )

        assert results[0].artifact == "alpha draft 2"
        assert results[1].artifact == "beta draft 1"

    @pytest.mark.asyncio
    async def test_long_output_mode(self, tmp_path):
        oracle = PhaseOracle({
            "long_form": lambda p, s, i: answer(
                "Part one of the document, long enough." if i == 0 else "Part two. <<<FINISHED>>>"
            ),
        })
        config = make_config(tmp_path, max_iterations=1, handle_long_output=True)

        result = await run_refinement(config, oracle)

        assert result.artifact == "Part one of the document, long enough.\n\nPart two."
        assert oracle.count("long_form") == 2
