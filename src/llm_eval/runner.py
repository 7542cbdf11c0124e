import argparse
import asyncio
import csv
import json
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from dotenv import load_dotenv
from pydantic import ValidationError

from .client import LLMCollaborator, build_client
from .evaluator import evaluate
from .guardrails import run_checks
from .metrics import calculate_consistency, calculate_metrics
from .schemas import DatasetMetrics, EvaluationOutcome, ModelResponse, TestCase

DEFAULT_DELAY_MS = 500
RESPONSE_PREVIEW_CHARS = 200
PROMPT_PREVIEW_CHARS = 50

RESULT_FIELDS = ["test_id", "passed", "score", "details", "response", "latency_ms", "tokens_used"]


def load_dataset(path: Path) -> List[TestCase]:
    """Load test cases from a golden-dataset CSV or a JSONL file."""
    if path.suffix == ".jsonl":
        rows: List[TestCase] = []
        for n, line in enumerate(path.read_text(encoding="utf-8").splitlines(), 1):
            line = line.strip()
            if not line:
                continue
            try:
                rows.append(TestCase.model_validate_json(line))
            except ValidationError as e:
                raise ValueError(f"{path}:{n}: invalid test case: {e}") from e
        return rows

    with path.open(encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        cases: List[TestCase] = []
        for n, row in enumerate(reader, 2):
            if not any(isinstance(v, str) and v.strip() for v in row.values()):
                continue
            try:
                cases.append(TestCase.from_row(row))
            except (KeyError, ValueError) as e:
                raise ValueError(f"{path}:{n}: invalid row: {e}") from e
        return cases


def error_outcome(
    case: TestCase, exc: Exception, response: Optional[ModelResponse] = None
) -> EvaluationOutcome:
    return EvaluationOutcome(
        test_case_id=case.id,
        passed=False,
        score=0.0,
        details=f"Error: {exc}",
        response=response if response is not None else ModelResponse.empty(),
        category=case.category,
    )


def evaluate_case(case: TestCase, response: ModelResponse) -> EvaluationOutcome:
    fields = evaluate(case, response.content)
    return EvaluationOutcome(
        test_case_id=case.id,
        passed=fields.passed,
        score=fields.score,
        details=fields.details,
        response=response,
        category=case.category,
        checks=run_checks(response.content, case.checks) if case.checks else {},
    )


async def run_evaluation(
    cases: Sequence[TestCase],
    client: LLMCollaborator,
    system_prompt: Optional[str] = None,
    delay_ms: int = DEFAULT_DELAY_MS,
    verbose: bool = True,
) -> Tuple[List[EvaluationOutcome], DatasetMetrics]:
    """Evaluate every case sequentially, one outbound call at a time.

    A failing call or evaluation becomes a zero-score outcome; the batch always returns one
    outcome per case, in input order.
    """
    outcomes: List[EvaluationOutcome] = []
    if verbose:
        print(f"[eval] running {len(cases)} test cases")

    for i, case in enumerate(cases):
        if i > 0 and delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000)

        if verbose:
            print(f"[eval] {case.id} - {case.prompt[:PROMPT_PREVIEW_CHARS]}...")
        response = None
        try:
            response = await client.ask(case.prompt, system_prompt)
            outcome = evaluate_case(case, response)
        except Exception as e:
            if verbose:
                print(f"[eval]   error: {e}", file=sys.stderr)
            # keeps the real response when only the evaluation step failed
            outcomes.append(error_outcome(case, e, response))
            continue

        outcomes.append(outcome)
        if verbose:
            status = "PASS" if outcome.passed else "FAIL"
            print(f"[eval]   {status} ({outcome.score:.2f})")

    return outcomes, calculate_metrics(outcomes)


async def run_consistency_check(
    client, prompt: str, count: int, system_prompt: Optional[str] = None
) -> Tuple[List[ModelResponse], float]:
    responses = await client.ask_multiple(prompt, count, system_prompt)
    return responses, calculate_consistency([r.content for r in responses])


def result_row(outcome: EvaluationOutcome) -> dict:
    return {
        "test_id": outcome.test_case_id,
        "passed": outcome.passed,
        "score": f"{outcome.score:.2f}" if outcome.score is not None else "N/A",
        "details": outcome.details,
        "response": outcome.response.content[:RESPONSE_PREVIEW_CHARS],
        "latency_ms": round(outcome.response.latency_ms),
        "tokens_used": outcome.response.tokens_used,
    }


def export_results(
    outcomes: Sequence[EvaluationOutcome],
    out_path: Path,
    metrics: Optional[DatasetMetrics] = None,
) -> None:
    """Write a CSV row per outcome, or a JSON report when ``out_path`` ends in .json."""
    out_path.parent.mkdir(parents=True, exist_ok=True)

    if out_path.suffix == ".json":
        report = {
            "summary": (metrics or calculate_metrics(outcomes)).model_dump(),
            "results": [o.model_dump(mode="json") for o in outcomes],
        }
        out_path.write_text(json.dumps(report, ensure_ascii=False, indent=2), encoding="utf-8")
    else:
        with out_path.open("w", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=RESULT_FIELDS)
            writer.writeheader()
            writer.writerows(result_row(o) for o in outcomes)

    print(f"[eval] results exported to: {out_path}")


def _pct(value: Optional[float]) -> str:
    return f"{value * 100:.2f}%" if value is not None else "N/A"


def print_summary(metrics: DatasetMetrics) -> None:
    latency = f"{metrics.average_latency:.2f}ms" if metrics.average_latency is not None else "N/A"
    cost = f"${metrics.average_cost:.4f}" if metrics.average_cost is not None else "N/A"

    print("\n" + "=" * 50)
    print("EVALUATION SUMMARY")
    print("=" * 50)
    print(f"Accuracy: {_pct(metrics.accuracy)}")
    print(f"Hallucination Rate: {_pct(metrics.hallucination_rate)}")
    print(f"Refusal Rate (Safety): {_pct(metrics.refusal_rate)}")
    print(f"Format Adherence: {_pct(metrics.format_adherence)}")
    if metrics.consistency_score is not None:
        print(f"Consistency: {metrics.consistency_score:.2f}")
    print(f"Average Latency: {latency}")
    print(f"Estimated Cost: {cost}")
    print("=" * 50 + "\n")


async def _run(args: argparse.Namespace) -> int:
    dataset_path = Path(args.dataset)
    if not dataset_path.exists():
        raise FileNotFoundError(f"dataset not found: {dataset_path}")

    system_prompt = None
    if args.system_prompt:
        prompt_path = Path(args.system_prompt)
        if not prompt_path.exists():
            raise FileNotFoundError(f"system prompt not found: {prompt_path}")
        system_prompt = prompt_path.read_text(encoding="utf-8").strip()

    cases = load_dataset(dataset_path)
    client = build_client()
    print(f"[eval] model: {client.model}")

    outcomes, metrics = await run_evaluation(cases, client, system_prompt, delay_ms=args.delay_ms)

    if args.consistency_prompt:
        print(f"[consistency] asking {args.repeat} times: {args.consistency_prompt[:PROMPT_PREVIEW_CHARS]}")
        try:
            _, score = await run_consistency_check(client, args.consistency_prompt, args.repeat, system_prompt)
        except Exception as e:
            print(f"[consistency] skipped: {e}", file=sys.stderr)
        else:
            metrics = metrics.model_copy(update={"consistency_score": score})

    print_summary(metrics)
    export_results(outcomes, Path(args.out), metrics)
    return 0 if all(o.passed for o in outcomes) else 1


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="LLM golden-dataset evaluation runner")
    parser.add_argument("--dataset", required=True, help="golden dataset (.csv or .jsonl)")
    parser.add_argument("--out", required=True, help="results file (.csv or .json)")
    parser.add_argument("--system-prompt", default=None, help="system prompt file")
    parser.add_argument("--delay-ms", type=int, default=None, help="pause between calls")
    parser.add_argument("--consistency-prompt", default=None, help="prompt to ask repeatedly")
    parser.add_argument("--repeat", type=int, default=5, help="repetitions for --consistency-prompt")
    args = parser.parse_args(argv)

    load_dotenv()
    if args.delay_ms is None:
        args.delay_ms = int(os.getenv("EVAL_DELAY_MS", str(DEFAULT_DELAY_MS)))

    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
