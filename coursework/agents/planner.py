"""
PlannerAgent: designs the paper title and the three-chapter outline.
"""

import json
import time
from typing import Any, Dict

from langchain_core.messages import HumanMessage

from coursework.agents.base import build_llm, extract_json, language_name, response_text
from coursework.config import config
from coursework.pipeline.documents import ChapterPlan, PaperPlan, PreparedInput
from coursework.pipeline.errors import PlanningError
from coursework.utils.logging import get_logger

logger = get_logger("planner_agent")


class PlannerAgent:
    """
    Produces the outline every later stage works from.

    Chapter I is theoretical foundations, chapter II practical analysis and
    chapter III improvement proposals. Introduction, conclusion and
    bibliography are written separately and never appear in the plan.
    """

    def __init__(self, model_name: str = None, llm=None):
        self.model_name = model_name or config.PLANNER_MODEL
        # Low temperature keeps the JSON shape stable
        self.llm = llm or build_llm(self.model_name, temperature=0.3, max_tokens=2000)

    async def plan(self, prepared: PreparedInput) -> PaperPlan:
        start_time = time.time()
        prompt = self._build_prompt(prepared)
        response = await self.llm.ainvoke([HumanMessage(content=prompt)])

        try:
            data = extract_json(response_text(response))
        except json.JSONDecodeError as e:
            raise PlanningError(f"Planner returned invalid JSON: {e}") from e

        plan = self._parse_plan(data)
        logger.info(
            "Paper planned",
            topic=prepared.name,
            chapters=len(plan.chapters),
            sections=sum(len(c.section_titles) for c in plan.chapters),
            planning_time=round(time.time() - start_time, 2)
        )
        return plan

    def _build_prompt(self, prepared: PreparedInput) -> str:
        return f"""You are an expert academic planner for university course papers.

Design the structure of a {prepared.page_count}-page course paper.

TOPIC: {prepared.name}
LANGUAGE: {language_name(prepared.language)}

REQUIREMENTS:
- Create exactly 3 main chapters, in this order:
  1. Theoretical foundations (definitions, classifications, existing approaches)
  2. Practical / analytical part (case studies, data analysis, comparisons)
  3. Improvement proposals (identified problems, proposed solutions, roadmap)
- Each chapter has 3-4 sections
- Section titles are specific and numbered (1.1, 1.2, 2.1, ...)
- Do NOT create sections for the introduction, the conclusion or the references
- Write every title in {language_name(prepared.language)}

Return ONLY valid JSON in this format:
{{
  "chapterTitle": "Full title of the course paper",
  "chapters": [
    {{
      "chapterTitle": "I BOB. ...",
      "sections": [{{"title": "1.1 ..."}}, {{"title": "1.2 ..."}}]
    }}
  ]
}}"""

    def _parse_plan(self, data: Dict[str, Any]) -> PaperPlan:
        if not isinstance(data, dict):
            raise PlanningError("Planner response is not a JSON object")

        chapters = []
        for raw in data.get("chapters") or []:
            titles = []
            for section in raw.get("sections") or []:
                title = section.get("title") if isinstance(section, dict) else section
                if title:
                    titles.append(str(title).strip())
            chapters.append(ChapterPlan(
                chapter_title=str(raw.get("chapterTitle", "")).strip(),
                section_titles=titles
            ))

        paper_title = str(data.get("chapterTitle") or data.get("title") or "").strip()
        if not paper_title:
            raise PlanningError("Planner response has no paper title")

        return PaperPlan(paper_title=paper_title, chapters=chapters)
