"""Tests for quality-gated generation."""

import pytest

from coursework.pipeline.documents import Evaluation
from coursework.pipeline.quality import (
    DEFAULT_PASS_SCORE,
    METRICS,
    EvaluationResult,
    evaluation_report,
    generate_with_quality_check,
)


def scores(*values, threshold=0.8):
    """Evaluate callback returning the given overall scores in order."""
    remaining = list(values)

    async def evaluate(content):
        score = remaining.pop(0)
        return EvaluationResult(passed=score >= threshold, overall_score=score, details=f"got {score}")

    return evaluate


def counting_generator():
    calls = []

    async def generate(previous):
        calls.append(previous)
        return f"draft {len(calls)}"

    return generate, calls


def test_from_metrics_averages_and_applies_threshold():
    metrics = {name: 0.9 for name in METRICS}
    metrics["completeness"] = 0.6

    result = EvaluationResult.from_metrics(metrics, "ok", threshold=0.8)

    assert result.overall_score == pytest.approx(0.85)
    assert result.passed is True
    assert result.metrics == metrics

    strict = EvaluationResult.from_metrics(metrics, "", threshold=0.9)
    assert strict.passed is False
    assert strict.details == "No details provided"


def test_from_metrics_requires_scores():
    with pytest.raises(ValueError):
        EvaluationResult.from_metrics({}, "nothing", threshold=0.8)


def test_default_pass():
    result = EvaluationResult.default_pass(TimeoutError("slow"))
    assert result.passed is True
    assert result.overall_score == DEFAULT_PASS_SCORE
    assert "slow" in result.details
    assert set(result.metrics) == set(METRICS)


def test_feedback_mentions_score_and_notes():
    result = EvaluationResult(passed=False, overall_score=0.625, details="too vague")
    feedback = result.feedback()
    assert "62.5%" in feedback
    assert "too vague" in feedback


@pytest.mark.anyio
async def test_first_passing_attempt_is_accepted():
    generate, calls = counting_generator()

    content, evaluation = await generate_with_quality_check(generate, scores(0.9), max_attempts=3)

    assert content == "draft 1"
    assert calls == [None]
    assert evaluation == Evaluation(passed=True, score=0.9, details="got 0.9", attempts=1)


@pytest.mark.anyio
async def test_retries_pass_previous_evaluation_and_report_attempts():
    generate, calls = counting_generator()
    retries = []

    async def on_retry(attempt, result):
        retries.append((attempt, result.overall_score))

    content, evaluation = await generate_with_quality_check(
        generate, scores(0.4, 0.7, 0.95), max_attempts=3, on_retry=on_retry
    )

    assert content == "draft 3"
    assert evaluation.attempts == 3
    assert evaluation.passed is True
    assert calls[0] is None
    assert [previous.overall_score for previous in calls[1:]] == [0.4, 0.7]
    assert retries == [(2, 0.4), (3, 0.7)]


@pytest.mark.anyio
async def test_attempts_are_bounded():
    generate, calls = counting_generator()

    content, evaluation = await generate_with_quality_check(generate, scores(0.1, 0.2), max_attempts=2)

    assert len(calls) == 2
    assert content == "draft 2"
    assert evaluation.passed is False
    assert evaluation.score == 0.2
    assert evaluation.attempts == 2


@pytest.mark.anyio
async def test_zero_attempts_still_generates_once():
    generate, calls = counting_generator()

    await generate_with_quality_check(generate, scores(0.1), max_attempts=0)

    assert len(calls) == 1


@pytest.mark.anyio
async def test_evaluator_exception_counts_as_pass():
    generate, calls = counting_generator()

    async def broken(content):
        raise ConnectionError("no network")

    content, evaluation = await generate_with_quality_check(generate, broken, max_attempts=3)

    assert len(calls) == 1
    assert evaluation.passed is True
    assert evaluation.score == DEFAULT_PASS_SCORE


@pytest.mark.anyio
async def test_generator_exception_propagates():
    async def generate(previous):
        raise RuntimeError("model refused")

    with pytest.raises(RuntimeError, match="model refused"):
        await generate_with_quality_check(generate, scores(0.9), max_attempts=3)


def test_evaluation_report():
    report = evaluation_report([
        ("Introduction", Evaluation(passed=True, score=0.9, details="fine", attempts=1)),
        ("1.1 Basics", Evaluation(passed=False, score=0.5, details="thin", attempts=2)),
    ])

    assert "[PASSED] Introduction" in report
    assert "[NEEDS IMPROVEMENT] 1.1 Basics" in report
    assert "Passed: 1 (50.0%)" in report
    assert "Average Quality: 70.0%" in report
    assert "SOME SECTIONS NEED IMPROVEMENT" in report


def test_empty_evaluation_report():
    assert "No evaluations recorded." in evaluation_report([])
