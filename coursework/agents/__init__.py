"""
Claude-backed agents for course paper generation.

Flow:
  Topic → PlannerAgent → ResearchAgent (per section) → WriterAgent
  (introduction, chapter sections, conclusion, bibliography), with
  EvaluatorAgent scoring every written unit.

Model options come from config: PLANNER_MODEL, RESEARCH_MODEL,
WRITER_MODEL, EVALUATOR_MODEL.
"""

from typing import Optional

from coursework.agents.evaluator import EvaluatorAgent
from coursework.agents.planner import PlannerAgent
from coursework.agents.research import ResearchAgent
from coursework.agents.writer import CHAPTER_GUIDANCE, WriterAgent
from coursework.pipeline.documents import PaperPlan, PreparedInput


class PaperAgentSuite:
    """Bundles the agents behind the single PaperAgents interface."""

    def __init__(
        self,
        planner: Optional[PlannerAgent] = None,
        researcher: Optional[ResearchAgent] = None,
        writer: Optional[WriterAgent] = None
    ):
        self.planner = planner or PlannerAgent()
        self.researcher = researcher or ResearchAgent()
        self.writer = writer or WriterAgent()

        self.write_introduction = self.writer.write_introduction
        self.write_section = self.writer.write_section
        self.write_conclusion = self.writer.write_conclusion
        self.write_bibliography = self.writer.write_bibliography

    async def plan(self, prepared: PreparedInput) -> PaperPlan:
        return await self.planner.plan(prepared)

    async def research(self, prepared: PreparedInput, chapter_title: str, section_title: str) -> str:
        return await self.researcher.research(prepared, chapter_title, section_title)


__all__ = [
    "PaperAgentSuite",
    "PlannerAgent",
    "ResearchAgent",
    "WriterAgent",
    "EvaluatorAgent",
    "CHAPTER_GUIDANCE",
]
