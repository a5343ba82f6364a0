"""
Fidelity policy - chooses which reductions make a score fit a byte budget.

The search is a fixed walk down REDUCTION_ORDER: estimate the lossless
size, then add one step at a time (cumulatively) and re-estimate,
stopping at the first plan whose stream fits. Estimates are exact
encoded sizes, so the plan the policy reports is the plan the encoder
produces. Nothing is randomized and no state outlives a call.
"""

from __future__ import annotations

import logging

from chuk_score_codec.codec.encoder import EncodeResult, ScoreEncoder, encode_score
from chuk_score_codec.codec.reductions import (
    REDUCTION_ORDER,
    ReductionPlan,
    ReductionStep,
    apply_plan,
)
from chuk_score_codec.errors import BudgetExceeded, InvalidScore
from chuk_score_codec.models.config import CodecConfig
from chuk_score_codec.models.score import Score
from chuk_score_codec.validation.validator import validate_score

logger = logging.getLogger(__name__)


class FidelityPolicy:
    """
    Maps (score, budget) to a ReductionPlan.

    Usage:
        policy = FidelityPolicy()
        plan = policy.plan(score, budget=512)
        result = encode_score(score, plan)
    """

    def __init__(self, config: CodecConfig | None = None) -> None:
        self.config = config or CodecConfig()

    def estimate_size(self, score: Score, plan: ReductionPlan | None = None) -> int:
        """Exact encoded size of a score under a plan."""
        plan = plan or ReductionPlan()
        reduced = apply_plan(score, plan, self.config)
        return len(ScoreEncoder(plan.grid(self.config)).encode(reduced))

    def sizes(self, score: Score) -> list[tuple[ReductionPlan, int]]:
        """
        Size after each cumulative prefix of the reduction order.

        The first entry is the lossless plan; each later entry adds one
        step. Sizes never increase along the list.
        """
        self._require_valid(score)
        results = []
        steps: tuple[ReductionStep, ...] = ()
        reduced = score
        results.append((ReductionPlan(), self._encoded_size(reduced, ReductionPlan())))
        for step in REDUCTION_ORDER:
            steps = steps + (step,)
            reduced = apply_plan(reduced, ReductionPlan((step,)), self.config)
            plan = ReductionPlan(steps)
            results.append((plan, self._encoded_size(reduced, plan)))
        return results

    def plan(self, score: Score, budget: int) -> ReductionPlan:
        """
        Choose the least lossy plan that fits a byte budget.

        Args:
            score: Validated input score
            budget: Maximum stream size in bytes

        Returns:
            ReductionPlan with estimated_size and budget filled in

        Raises:
            InvalidScore: if the score violates the model invariants
            BudgetExceeded: if even the full reduction does not fit;
                carries the size of that full reduction
        """
        if budget < 0:
            raise ValueError(f"Budget must be non-negative, got {budget}")
        self._require_valid(score)

        steps: tuple[ReductionStep, ...] = ()
        reduced = score
        size = self._encoded_size(reduced, ReductionPlan())
        logger.debug(f"Lossless estimate: {size} bytes (budget {budget})")

        if size > budget:
            for step in REDUCTION_ORDER:
                steps = steps + (step,)
                reduced = apply_plan(reduced, ReductionPlan((step,)), self.config)
                size = self._encoded_size(reduced, ReductionPlan(steps))
                logger.debug(f"After {step.value}: {size} bytes")
                if size <= budget:
                    break
            else:
                raise BudgetExceeded(budget=budget, required=size)

        plan = ReductionPlan(steps=steps, estimated_size=size, budget=budget)
        logger.info(f"Chose {plan} for budget {budget}")
        return plan

    def _encoded_size(self, reduced: Score, plan: ReductionPlan) -> int:
        return len(ScoreEncoder(plan.grid(self.config)).encode(reduced))

    def _require_valid(self, score: Score) -> None:
        result = validate_score(score, self.config.fine)
        if not result.is_valid:
            raise InvalidScore(result.errors)


def encode_with_budget(
    score: Score,
    budget: int | None = None,
    config: CodecConfig | None = None,
) -> EncodeResult:
    """
    Plan and encode in one call.

    Args:
        score: Score to encode
        budget: Byte budget, or None for a lossless encode
        config: Grid and policy settings

    Returns:
        EncodeResult whose plan records the tier actually used

    Raises:
        InvalidScore: if the score violates the model invariants
        BudgetExceeded: if no plan fits the budget
    """
    config = config or CodecConfig()
    if budget is None:
        return encode_score(score, ReductionPlan(), config)

    plan = FidelityPolicy(config).plan(score, budget)
    result = encode_score(score, plan, config)
    return EncodeResult(
        data=result.data,
        plan=ReductionPlan(steps=plan.steps, estimated_size=result.size, budget=budget),
    )
