"""
WriterAgent: writes the introduction, chapter sections, conclusion and
bibliography of a course paper.

Every writing call accepts the evaluator's result from the previous attempt
and turns it into rewrite instructions.
"""

from typing import Dict, Optional

from langchain_core.messages import HumanMessage

from coursework.agents.base import build_llm, language_name, response_text
from coursework.config import config
from coursework.pipeline.documents import (
    Chapter,
    ChapterKind,
    DraftedPaper,
    ResearchedPaper,
    Section,
)
from coursework.pipeline.quality import EvaluationResult
from coursework.utils.logging import get_logger

logger = get_logger("writer_agent")


# What each fixed chapter is expected to contain
CHAPTER_GUIDANCE: Dict[ChapterKind, str] = {
    ChapterKind.THEORY: (
        "This is Chapter I, the theoretical foundations. Explain key concepts and "
        "definitions, review the main literature and international standards, compare "
        "existing approaches and close with the theoretical limitations that motivate "
        "the next chapters. Definitions and comparative tables are welcome."
    ),
    ChapterKind.ANALYSIS: (
        "This is Chapter II, the practical and analytical part. Describe the case-study "
        "environment, the methodology and the evaluation criteria, present results and "
        "interpret them against the theory. Never fabricate data: if no figures are "
        "given, describe what would be measured and how."
    ),
    ChapterKind.IMPROVEMENT: (
        "This is Chapter III, the improvement proposals. Recap the weaknesses found in "
        "Chapter II, propose concrete technical or organizational measures, describe an "
        "implementation and validation plan and give a short, mid and long term roadmap."
    ),
}


class WriterAgent:
    """
    Generates the prose of a course paper.

    All output is continuous academic text in the paper's language: formal
    tone, no personal pronouns, no JSON.
    """

    def __init__(self, model_name: str = None, llm=None):
        self.model_name = model_name or config.WRITER_MODEL
        self.llm = llm or build_llm(self.model_name)

    async def _generate(self, prompt: str, unit: str) -> str:
        response = await self.llm.ainvoke([HumanMessage(content=prompt)])
        text = response_text(response)
        if not text:
            raise ValueError(f"Writer returned empty {unit}")
        logger.debug("Content generated", unit=unit, words=len(text.split()))
        return text

    async def write_introduction(
        self,
        paper: ResearchedPaper,
        target_words: int,
        feedback: Optional[EvaluationResult] = None
    ) -> str:
        outline = "\n".join(
            f"- {chapter.chapter_title}: " + "; ".join(s.title for s in chapter.sections)
            for chapter in paper.chapters
        )
        prompt = f"""You are an expert academic writer of university course paper introductions.

PAPER TOPIC: {paper.name}
PAPER TITLE: {paper.paper_title}
LANGUAGE: {language_name(paper.language)}
TARGET LENGTH: about {target_words} words

PAPER OUTLINE:
{outline}

Write the INTRODUCTION with these parts, in order:
1. Relevance of the topic, with at least four numbered reasons
2. Goal of the paper and 5-7 concrete objectives
3. Scientific novelty
4. Object and subject of the research
5. Structure of the paper (introduction, three chapters, conclusion, references)

Return only the introduction text.{self._build_feedback_context(feedback)}"""
        return await self._generate(prompt, "introduction")

    async def write_section(
        self,
        paper: ResearchedPaper,
        kind: ChapterKind,
        chapter: Chapter,
        section: Section,
        target_words: int,
        feedback: Optional[EvaluationResult] = None
    ) -> str:
        prompt = f"""You are a professional academic writer composing one section of a course paper.

PAPER TOPIC: {paper.name}
CHAPTER: {chapter.chapter_title}
SECTION: {section.title}
LANGUAGE: {language_name(paper.language)}
TARGET LENGTH: about {target_words} words

{CHAPTER_GUIDANCE[kind]}

RESEARCH NOTES:
{section.researched_datas or "(none)"}

Start with the section title, then write the section as continuous academic
prose. Use the research notes, do not invent sources.{self._build_feedback_context(feedback)}"""
        return await self._generate(prompt, f"section {section.title}")

    async def write_conclusion(
        self,
        paper: DraftedPaper,
        target_words: int,
        feedback: Optional[EvaluationResult] = None
    ) -> str:
        chapter_digest = "\n".join(
            f"- {chapter.chapter_title}: "
            + " ".join(section.content[:400] for section in chapter.sections)
            for chapter in paper.chapters
        )
        prompt = f"""You are an expert in academic conclusions for university course papers.

PAPER TOPIC: {paper.name}
PAPER TITLE: {paper.paper_title}
LANGUAGE: {language_name(paper.language)}
TARGET LENGTH: about {target_words} words

CHAPTER DIGEST:
{chapter_digest}

Write the CONCLUSION:
1. A brief summary of the research
2. At least five numbered findings covering all three chapters
3. 4-6 practical recommendations
4. Directions for further research

Return only the conclusion text.{self._build_feedback_context(feedback)}"""
        return await self._generate(prompt, "conclusion")

    async def write_bibliography(self, paper: DraftedPaper) -> str:
        notes = "\n\n".join(
            section.researched_datas
            for chapter in paper.chapters
            for section in chapter.sections
            if section.researched_datas
        )
        prompt = f"""Produce the bibliography of an academic course paper.

PAPER TOPIC: {paper.name}
LANGUAGE: {language_name(paper.language)}

RESEARCH NOTES:
{notes or "(none)"}

Rules:
- APA style, one numbered entry per line
- At least 10 entries where the notes allow it
- No duplicates; do not fabricate authors, venues or years, use "(n.d.)" when unknown
- Output only the references"""
        return await self._generate(prompt, "bibliography")

    def _build_feedback_context(self, feedback: Optional[EvaluationResult]) -> str:
        """Rewrite instructions from a failed evaluation."""
        if feedback is None:
            return ""

        return f"""

## REWRITE REQUIRED

{feedback.feedback()}

Make sure to fix ALL issues mentioned above.
"""
