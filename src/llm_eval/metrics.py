"""Dataset-level metrics over a list of evaluation outcomes.

Everything here is a pure reduction: the same outcome list always yields the
same ``DatasetMetrics``. Ratios over an empty subset fall back to a fixed value
instead of dividing by zero.
"""

from itertools import combinations
from typing import Callable, List, Optional, Sequence

from .schemas import Category, DatasetMetrics, EvaluationOutcome

# Flat approximation in USD per 1K tokens, not a billing computation.
COST_PER_1K_TOKENS = 0.02


def calculate_cost(tokens_used: int) -> float:
    return (tokens_used / 1000) * COST_PER_1K_TOKENS


def calculate_bleu(reference: str, candidate: str) -> float:
    """Word-overlap precision of ``candidate`` against ``reference``.

    A simplified BLEU-like score: unigram precision only, no brevity penalty.
    """
    ref_words = set(reference.lower().split())
    cand_words = candidate.lower().split()
    if not cand_words:
        return 1.0 if not ref_words else 0.0
    matches = sum(1 for w in cand_words if w in ref_words)
    return matches / len(cand_words)


def calculate_consistency(responses: Sequence[str]) -> float:
    if len(responses) < 2:
        return 1.0
    scores = [calculate_bleu(a, b) for a, b in combinations(responses, 2)]
    return sum(scores) / len(scores)


def _in_subset(
    outcome: EvaluationOutcome, category: Category, markers: Sequence[str], lowercase: bool = False
) -> bool:
    if outcome.category is not None:
        return outcome.category == category
    # Outcomes without a category are classified from their rationale text.
    details = outcome.details.lower() if lowercase else outcome.details
    return any(m in details for m in markers)


def _is_safety(outcome: EvaluationOutcome) -> bool:
    return _in_subset(outcome, Category.SAFETY, ("refuse", "safety"), lowercase=True)


def _is_correctness(outcome: EvaluationOutcome) -> bool:
    return _in_subset(outcome, Category.CORRECTNESS, ("correctness", "Expected:"))


def _is_format(outcome: EvaluationOutcome) -> bool:
    return _in_subset(outcome, Category.FORMAT, ("JSON", "format"))


def _subset(
    outcomes: Sequence[EvaluationOutcome], predicate: Callable[[EvaluationOutcome], bool]
) -> List[EvaluationOutcome]:
    return [o for o in outcomes if predicate(o)]


def calculate_accuracy(outcomes: Sequence[EvaluationOutcome]) -> Optional[float]:
    if not outcomes:
        return None
    return sum(1 for o in outcomes if o.passed) / len(outcomes)


def calculate_refusal_rate(outcomes: Sequence[EvaluationOutcome]) -> float:
    safety = _subset(outcomes, _is_safety)
    if not safety:
        return 0.0
    return sum(1 for o in safety if o.passed) / len(safety)


def calculate_hallucination_rate(outcomes: Sequence[EvaluationOutcome]) -> float:
    correctness = _subset(outcomes, _is_correctness)
    if not correctness:
        return 0.0
    return sum(1 for o in correctness if not o.passed) / len(correctness)


def calculate_format_adherence(outcomes: Sequence[EvaluationOutcome]) -> float:
    formatted = _subset(outcomes, _is_format)
    if not formatted:
        return 1.0
    return sum(1 for o in formatted if o.passed) / len(formatted)


def calculate_average_latency(outcomes: Sequence[EvaluationOutcome]) -> Optional[float]:
    if not outcomes:
        return None
    return sum(o.response.latency_ms for o in outcomes) / len(outcomes)


def calculate_average_cost(outcomes: Sequence[EvaluationOutcome]) -> float:
    return calculate_cost(sum(o.response.tokens_used for o in outcomes))


def calculate_metrics(
    outcomes: Sequence[EvaluationOutcome], consistency_score: Optional[float] = None
) -> DatasetMetrics:
    return DatasetMetrics(
        accuracy=calculate_accuracy(outcomes),
        hallucination_rate=calculate_hallucination_rate(outcomes),
        refusal_rate=calculate_refusal_rate(outcomes),
        format_adherence=calculate_format_adherence(outcomes),
        consistency_score=consistency_score,
        average_latency=calculate_average_latency(outcomes),
        average_cost=calculate_average_cost(outcomes),
    )
