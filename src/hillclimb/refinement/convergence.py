"""
Convergence Controller

Per-iteration decision: keep iterating (and judge the challenger) or stop.
Combines the critique recommendation with the gap-report trend.

Order of checks:
  1. Gap trend update (only if gap analysis ran)
  2. recommendation == 1 -> continue, stability counter reset
  3. with gap analysis: stop if stable for the window and rec >= 3,
     or no gaps at all and rec >= 3
  4. without gap analysis: stop if rec >= 3

The controller holds only the thresholds. The running signals live in a
ConvergenceState owned by the session, so one controller can serve many
sessions.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

GOOD_ENOUGH = 3
NEEDS_WORK = 1


class StopReason(str, Enum):
    """Why the loop ended."""
    BUDGET_EXHAUSTED = "budget_exhausted"
    GAP_STABLE = "gap_stable"
    NO_GAPS = "no_gaps"
    RECOMMENDATION = "recommendation"
    INITIAL_GENERATION_FAILED = "initial_generation_failed"


@dataclass
class ConvergenceState:
    """Running convergence signals for one session."""
    last_gap_length: Optional[int] = None  # None = unknown
    stable_count: int = 0
    recommendation: int = NEEDS_WORK


@dataclass
class Decision:
    """Outcome of one convergence check."""
    stop: bool
    reason: Optional[StopReason] = None
    improvement: Optional[float] = None
    state: Optional[ConvergenceState] = None


class ConvergenceController:
    """
    Adaptive stopping logic.

    Args:
        stability_window: Consecutive stable iterations required to stop
        min_improvement: Proportional gap-length reduction below which an
            iteration counts as stable
    """

    def __init__(
        self,
        stability_window: int = 2,
        min_improvement: float = 0.05,
        log: Optional[logging.LoggerAdapter] = None,
    ):
        self.stability_window = stability_window
        self.min_improvement = min_improvement
        self.log = log or logger

    def observe_gap(self, state: ConvergenceState, gap_length: int) -> Optional[float]:
        """
        Fold one gap-report length into ``state``.

        A report that did not shrink by at least ``min_improvement`` counts
        as stable. Growth is never an improvement, including growth from an
        empty report; the improvement is only reported when the previous
        length is non-zero. The first report of a session sets the baseline.

        Returns:
            Proportional improvement vs the previous report, if computable
        """
        previous = state.last_gap_length
        improvement = None

        if gap_length == 0:
            state.stable_count += 1
            self.log.info(f"[Convergence] No gaps found. Consecutive stable count: {state.stable_count}")
        elif previous == 0:
            state.stable_count += 1
            self.log.info(
                f"[Convergence] Gap report grew from empty to {gap_length} chars. "
                f"Consecutive stable iterations: {state.stable_count}"
            )
        elif previous is not None:
            improvement = (previous - gap_length) / previous
            if improvement < self.min_improvement:
                state.stable_count += 1
                self.log.info(
                    f"[Convergence] Gap report stable (improvement {improvement * 100:.2f}%). "
                    f"Consecutive stable iterations: {state.stable_count}"
                )
            else:
                state.stable_count = 0

        state.last_gap_length = gap_length
        return improvement

    def decide(
        self,
        recommendation: int,
        gap_length: Optional[int] = None,
        state: Optional[ConvergenceState] = None,
    ) -> Decision:
        """
        Decide whether to stop after this iteration.

        Args:
            recommendation: Critique ordinal (1-4)
            gap_length: Gap report length, or None if gap analysis did not run
            state: Signals carried over from the previous iteration (a fresh
                session state when omitted). Not modified.

        Returns:
            Decision, with the updated signals in ``decision.state``
        """
        state = replace(state) if state is not None else ConvergenceState()
        state.recommendation = recommendation

        improvement = None
        if gap_length is not None:
            improvement = self.observe_gap(state, gap_length)

        # Applied whether or not gap analysis ran this iteration
        if recommendation == NEEDS_WORK:
            state.stable_count = 0
            self.log.info("[Convergence] Recommendation 1. Forcing continuation.")
            return Decision(stop=False, improvement=improvement, state=state)

        if gap_length is not None:
            if state.stable_count >= self.stability_window and recommendation >= GOOD_ENOUGH:
                self.log.info("[Convergence] Gap report stable and recommendation >= 3. Stopping early.")
                return Decision(stop=True, reason=StopReason.GAP_STABLE, improvement=improvement, state=state)
            if gap_length == 0 and recommendation >= GOOD_ENOUGH:
                self.log.info("[Convergence] No gaps and recommendation >= 3. Stopping immediately.")
                return Decision(stop=True, reason=StopReason.NO_GAPS, improvement=improvement, state=state)
        elif recommendation >= GOOD_ENOUGH:
            self.log.info("[Convergence] No gap analysis and recommendation >= 3. Stopping early.")
            return Decision(stop=True, reason=StopReason.RECOMMENDATION, state=state)

        return Decision(stop=False, improvement=improvement, state=state)
