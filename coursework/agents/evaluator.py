"""
EvaluatorAgent: scores generated content.

Uses a fast, cheap model. Six metrics are scored 0-100 and averaged into a
0-1 overall score. Any failure counts as a pass so evaluation never blocks a
paper.
"""

import time
from typing import Dict

from langchain_core.messages import HumanMessage

from coursework.agents.base import build_llm, extract_json, response_text
from coursework.config import config
from coursework.pipeline.quality import METRICS, EvaluationResult
from coursework.utils.logging import get_logger

logger = get_logger("evaluator_agent")


class EvaluatorAgent:
    """Implements the ContentEvaluator protocol."""

    def __init__(self, model_name: str = None, threshold: float = None, llm=None):
        self.model_name = model_name or config.EVALUATOR_MODEL
        self.threshold = config.QUALITY_THRESHOLD if threshold is None else threshold

        self.llm = llm or build_llm(
            self.model_name,
            temperature=0.0,  # Deterministic for consistent evaluation
            max_tokens=1000,
            timeout=60.0
        )

    async def evaluate(self, content: str, context: str, question: str) -> EvaluationResult:
        start_time = time.time()

        try:
            prompt = self._build_prompt(content, context, question)
            response = await self.llm.ainvoke([HumanMessage(content=prompt)])
            result = self._parse_response(response_text(response))

        except Exception as e:
            logger.warning("Evaluation error, accepting content", error=str(e))
            return EvaluationResult.default_pass(e)

        logger.info(
            "Content evaluated",
            score=round(result.overall_score, 3),
            passed=result.passed,
            evaluation_time=round(time.time() - start_time, 2)
        )
        return result

    def _build_prompt(self, content: str, context: str, question: str) -> str:
        return f"""You are an expert academic content evaluator.

Score the content from 0 to 100 on each metric (0-59 poor, 60-79 acceptable, 80-100 high):
1. bias: neutral, academic tone
2. completeness: covers the topic comprehensively
3. faithfulness: accurate to the given context
4. hallucination: factually accurate, no invented information (100 = none)
5. toxicity: professional and appropriate language (100 = none)
6. contextRelevancy: stays on topic

**Question/Topic:** {question}

**Context:** {context}

**Content to Evaluate:**
{content}

Return ONLY valid JSON:
{{
  "bias": 85,
  "completeness": 90,
  "faithfulness": 88,
  "hallucination": 92,
  "toxicity": 100,
  "contextRelevancy": 87,
  "details": "Brief explanation of the evaluation"
}}"""

    def _parse_response(self, text: str) -> EvaluationResult:
        data = extract_json(text)

        metrics: Dict[str, float] = {}
        for name in METRICS:
            if data.get(name) is not None:
                metrics[name] = float(data[name]) / 100

        return EvaluationResult.from_metrics(
            metrics,
            details=data.get("details") or "No details provided",
            threshold=self.threshold
        )
