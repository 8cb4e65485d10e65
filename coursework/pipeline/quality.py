"""
Quality-gated generation.

A unit of content (introduction, section, conclusion) is generated, scored
by the evaluator and regenerated with the evaluator's feedback until it
passes or runs out of attempts. The last attempt is always accepted.
"""

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from coursework.pipeline.documents import Evaluation
from coursework.utils.logging import pipeline_logger as logger


DEFAULT_PASS_SCORE = 0.75

METRICS = (
    "bias",
    "completeness",
    "faithfulness",
    "hallucination",
    "toxicity",
    "contextRelevancy",
)


@dataclass
class EvaluationResult:
    passed: bool
    overall_score: float
    details: str
    metrics: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_metrics(
        cls,
        metrics: Dict[str, float],
        details: str,
        threshold: float
    ) -> "EvaluationResult":
        """Average the 0-1 metric scores and compare against `threshold`."""
        if not metrics:
            raise ValueError("Evaluation contained no metric scores")
        overall = sum(metrics.values()) / len(metrics)
        return cls(
            passed=overall >= threshold,
            overall_score=overall,
            details=details or "No details provided",
            metrics=dict(metrics)
        )

    @classmethod
    def default_pass(cls, error: Exception) -> "EvaluationResult":
        """Evaluation problems never block a paper."""
        return cls(
            passed=True,
            overall_score=DEFAULT_PASS_SCORE,
            details=f"Evaluation error: {error}. Accepting content by default.",
            metrics={name: DEFAULT_PASS_SCORE for name in METRICS}
        )

    def feedback(self) -> str:
        """Feedback appended to the prompt of the next attempt."""
        return (
            f"The previous version scored {self.overall_score * 100:.1f}% "
            f"(below the required quality). Evaluator notes: {self.details}"
        )


Generate = Callable[[Optional[EvaluationResult]], Awaitable[str]]
Evaluate = Callable[[str], Awaitable[EvaluationResult]]
OnRetry = Callable[[int, EvaluationResult], Awaitable[None]]


async def generate_with_quality_check(
    generate: Generate,
    evaluate: Evaluate,
    max_attempts: int,
    label: str = "content",
    on_retry: Optional[OnRetry] = None
) -> Tuple[str, Evaluation]:
    """
    Run generate/evaluate until the evaluator is satisfied.

    Args:
        generate: Called with the previous failing evaluation (None first).
            Exceptions propagate and fail the job.
        evaluate: Scores the generated text. Exceptions count as a pass.
        max_attempts: Upper bound on generations, at least 1.
        label: Used in log lines.
        on_retry: Awaited before each regeneration with the next attempt
            number and the evaluation that triggered it.

    Returns:
        (content, evaluation) for the accepted attempt.
    """
    max_attempts = max(1, max_attempts)
    previous: Optional[EvaluationResult] = None
    attempt = 0

    while True:
        attempt += 1
        content = await generate(previous)

        try:
            result = await evaluate(content)
        except Exception as e:
            logger.warning("Evaluation failed, accepting content", unit=label, error=str(e))
            result = EvaluationResult.default_pass(e)

        if result.passed or attempt >= max_attempts:
            logger.info(
                "Quality check finished",
                unit=label,
                passed=result.passed,
                score=round(result.overall_score, 3),
                attempts=attempt
            )
            return content, Evaluation(
                passed=result.passed,
                score=result.overall_score,
                details=result.details,
                attempts=attempt
            )

        logger.info(
            "Quality below threshold, retrying",
            unit=label,
            score=round(result.overall_score, 3),
            next_attempt=attempt + 1,
            max_attempts=max_attempts
        )
        if on_retry is not None:
            await on_retry(attempt + 1, result)
        previous = result


def evaluation_report(evaluations: List[Tuple[str, Evaluation]]) -> str:
    """Plain-text summary of every recorded evaluation."""
    rule = "=" * 60
    lines = [rule, "CONTENT QUALITY EVALUATION REPORT", rule, ""]

    if not evaluations:
        lines.append("No evaluations recorded.")
        lines.append(rule)
        return "\n".join(lines)

    passed = 0
    total_score = 0.0
    for name, evaluation in evaluations:
        status = "PASSED" if evaluation.passed else "NEEDS IMPROVEMENT"
        if evaluation.passed:
            passed += 1
        total_score += evaluation.score

        lines.append(f"[{status}] {name}")
        lines.append(f"   Score: {evaluation.score * 100:.1f}%")
        lines.append(f"   Attempts: {evaluation.attempts}")
        lines.append(f"   Details: {evaluation.details}")
        lines.append("")

    total = len(evaluations)
    lines.append(rule)
    lines.append("SUMMARY")
    lines.append(f"Total Sections: {total}")
    lines.append(f"Passed: {passed} ({passed / total * 100:.1f}%)")
    lines.append(f"Average Quality: {total_score / total * 100:.1f}%")
    lines.append(
        "Overall Status: "
        + ("ALL SECTIONS PASSED" if passed == total else "SOME SECTIONS NEED IMPROVEMENT")
    )
    lines.append(rule)
    return "\n".join(lines)
