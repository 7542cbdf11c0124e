"""Evaluation harness for LLM responses: property checks, category scoring and dataset metrics."""

from .evaluator import evaluate
from .guardrails import PROPERTY_CHECKS, PropertyCheck, check_property, run_property_checks
from .metrics import calculate_consistency, calculate_metrics
from .runner import load_dataset, run_evaluation
from .schemas import Category, DatasetMetrics, EvaluationOutcome, ModelResponse, TestCase

__all__ = [
    "Category",
    "DatasetMetrics",
    "EvaluationOutcome",
    "ModelResponse",
    "PROPERTY_CHECKS",
    "PropertyCheck",
    "TestCase",
    "calculate_consistency",
    "calculate_metrics",
    "check_property",
    "evaluate",
    "load_dataset",
    "run_evaluation",
    "run_property_checks",
]
