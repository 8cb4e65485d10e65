"""
Collaborators the pipeline depends on.

The LLM agents, the evaluator and the Word renderer are injected, so the
executor can run against fakes in tests.
"""

from typing import Optional, Protocol

from coursework.pipeline.documents import (
    Chapter,
    ChapterKind,
    DraftedPaper,
    EvaluatedPaper,
    PaperPlan,
    PreparedInput,
    ResearchedPaper,
    Section,
)
from coursework.pipeline.quality import EvaluationResult


class PaperAgents(Protocol):
    async def plan(self, prepared: PreparedInput) -> PaperPlan:
        ...

    async def research(
        self,
        prepared: PreparedInput,
        chapter_title: str,
        section_title: str
    ) -> str:
        ...

    async def write_introduction(
        self,
        paper: ResearchedPaper,
        target_words: int,
        feedback: Optional[EvaluationResult] = None
    ) -> str:
        ...

    async def write_section(
        self,
        paper: ResearchedPaper,
        kind: ChapterKind,
        chapter: Chapter,
        section: Section,
        target_words: int,
        feedback: Optional[EvaluationResult] = None
    ) -> str:
        ...

    async def write_conclusion(
        self,
        paper: DraftedPaper,
        target_words: int,
        feedback: Optional[EvaluationResult] = None
    ) -> str:
        ...

    async def write_bibliography(self, paper: DraftedPaper) -> str:
        ...


class ContentEvaluator(Protocol):
    async def evaluate(self, content: str, context: str, question: str) -> EvaluationResult:
        ...


class DocumentRenderer(Protocol):
    async def render(self, paper: EvaluatedPaper) -> str:
        """Write the document and return its path."""
        ...
