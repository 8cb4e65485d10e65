"""
ResearchAgent: collects background notes for one section.
"""

from langchain_core.messages import HumanMessage

from coursework.agents.base import build_llm, language_name, response_text
from coursework.config import config
from coursework.pipeline.documents import PreparedInput


class ResearchAgent:
    """Writes a short analytical brief the section writer builds on."""

    def __init__(self, model_name: str = None, llm=None):
        self.model_name = model_name or config.RESEARCH_MODEL
        self.llm = llm or build_llm(self.model_name, temperature=0.4, max_tokens=3000)

    async def research(
        self,
        prepared: PreparedInput,
        chapter_title: str,
        section_title: str
    ) -> str:
        prompt = f"""You are a research assistant preparing material for an academic course paper.

PAPER TOPIC: {prepared.name}
CHAPTER: {chapter_title}
SECTION: {section_title}

Write a 400-600 word research brief in {language_name(prepared.language)} with:
1. Context overview: why this subject matters
2. Key findings: established facts, definitions and figures
3. Open questions or diverging viewpoints
4. Sources a student could cite (author, title, year), without inventing any

Return only the brief."""

        response = await self.llm.ainvoke([HumanMessage(content=prompt)])
        return response_text(response)
