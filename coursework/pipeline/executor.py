"""
Paper pipeline executor

Runs one job through the fixed stage sequence:

    Preparing -> Planning -> Researching -> WritingIntro -> WritingChapters
    -> WritingConclusion -> WritingBibliography -> QualityCheck -> PageCount
    -> RenderingDocument -> Done

WritingChapters fans out into three concurrent chapter tasks (Theory,
Analysis, Improvement). If any of them fails the others are cancelled and
the stage fails as a whole.

Progress is published on stage entry, on every completed chapter section
and on every quality retry. Nothing is timer-driven.
"""

import asyncio
import math
from typing import Any, Awaitable, Callable, Dict, List, Optional

from coursework.jobs.models import JobInput
from coursework.pipeline.documents import (
    CHAPTER_KINDS,
    DEFAULT_PAGE_COUNT,
    Chapter,
    ChapterKind,
    DraftedPaper,
    EvaluatedPaper,
    PaperMetadata,
    PlannedPaper,
    PreparedInput,
    RenderedPaper,
    ResearchedPaper,
    Section,
)
from coursework.pipeline.errors import PlanningError, RenderError, StageError
from coursework.pipeline.interfaces import ContentEvaluator, DocumentRenderer, PaperAgents
from coursework.pipeline.page_counter import (
    calculate_page_count,
    page_count_report,
    validate_page_count,
)
from coursework.pipeline.quality import (
    EvaluationResult,
    evaluation_report,
    generate_with_quality_check,
)
from coursework.pipeline.stages import STAGE_ORDER, Stage
from coursework.utils.logging import pipeline_logger as logger


WORDS_PER_PAGE_TARGET = 280

ProgressCallback = Callable[[str, int], Awaitable[None]]


def introduction_pages(page_count: int) -> int:
    """Pages reserved for each of the introduction and the conclusion."""
    return max(1, math.ceil(page_count * 0.05))


def section_pages(page_count: int, total_sections: int) -> int:
    return max(1, (page_count - 5) // max(1, total_sections))


async def _ignore_progress(step: str, progress: int):
    return None


class ProgressTracker:
    """Turns stage and section events into 0-100 progress values."""

    def __init__(self, publish: Optional[ProgressCallback] = None, total_stages: int = len(STAGE_ORDER)):
        self._publish = publish or _ignore_progress
        self.total_stages = total_stages
        self.stage: Optional[Stage] = None
        self.stage_index = 0
        self.progress = 0

    def _stage_base(self) -> int:
        return self.stage_index * 100 // self.total_stages

    async def _emit(self, step: str, progress: int):
        self.progress = max(self.progress, min(100, progress))
        await self._publish(step, self.progress)

    async def enter(self, index: int, stage: Stage):
        self.stage_index = index
        self.stage = stage
        await self._emit(stage.label, self._stage_base())

    async def section_completed(self, completed: int, total: int, title: str):
        span = 100 / self.total_stages
        progress = int(self._stage_base() + span * completed / max(1, total))
        await self._emit(f"{self.stage.label}: {completed}/{total} sections ({title})", progress)

    async def retry(self, unit: str, attempt: int, max_attempts: int):
        await self._emit(f"{self.stage.label}: {unit} attempt {attempt}/{max_attempts}", self.progress)

    async def finish(self):
        self.stage = Stage.DONE
        await self._emit(Stage.DONE.label, 100)


class PaperPipeline:
    """
    Executes the paper stages for a single job.

    Args:
        agents: LLM agents for planning, research and writing
        evaluator: Scores generated content
        renderer: Produces the Word document
        intro_max_attempts: Attempts for introduction and conclusion
        section_max_attempts: Attempts for each chapter section
    """

    def __init__(
        self,
        agents: PaperAgents,
        evaluator: ContentEvaluator,
        renderer: DocumentRenderer,
        intro_max_attempts: int = 3,
        section_max_attempts: int = 2
    ):
        self.agents = agents
        self.evaluator = evaluator
        self.renderer = renderer
        self.intro_max_attempts = intro_max_attempts
        self.section_max_attempts = section_max_attempts

        self._handlers = {
            Stage.PREPARING: self._prepare,
            Stage.PLANNING: self._plan,
            Stage.RESEARCHING: self._research,
            Stage.WRITING_INTRO: self._write_introduction,
            Stage.WRITING_CHAPTERS: self._write_chapters,
            Stage.WRITING_CONCLUSION: self._write_conclusion,
            Stage.WRITING_BIBLIOGRAPHY: self._write_bibliography,
            Stage.QUALITY_CHECK: self._quality_check,
            Stage.PAGE_COUNT: self._page_count,
            Stage.RENDERING_DOCUMENT: self._render,
        }

    async def run(self, job_input: JobInput, on_progress: Optional[ProgressCallback] = None) -> Dict[str, Any]:
        """Run every stage and return the completed job's result payload."""
        tracker = ProgressTracker(on_progress)
        document: Any = job_input

        for index, stage in enumerate(STAGE_ORDER):
            await tracker.enter(index, stage)
            logger.info("Stage started", stage=stage.value, topic=job_input.topic)
            try:
                document = await self.run_stage(stage, document, tracker)
            except StageError:
                raise
            except Exception as e:
                logger.error("Stage failed", stage=stage.value, error=str(e))
                raise StageError(stage, str(e)) from e

        await tracker.finish()
        return document.to_result()

    async def run_stage(self, stage: Stage, document: Any, tracker: Optional[ProgressTracker] = None) -> Any:
        """Apply a single stage to the document produced by the previous one."""
        handler = self._handlers.get(stage)
        if handler is None:
            raise ValueError(f"Stage {stage.value} has no handler")
        if tracker is None:
            tracker = ProgressTracker()
            tracker.stage = stage
        return await handler(document, tracker)

    # ===== Stages =====

    async def _prepare(self, job_input: JobInput, tracker: ProgressTracker) -> PreparedInput:
        return PreparedInput(
            name=job_input.topic,
            language=job_input.language,
            page_count=job_input.page_count or DEFAULT_PAGE_COUNT,
            metadata=PaperMetadata.from_input(job_input)
        )

    async def _plan(self, prepared: PreparedInput, tracker: ProgressTracker) -> PlannedPaper:
        plan = await self.agents.plan(prepared)

        if len(plan.chapters) != len(CHAPTER_KINDS):
            raise PlanningError(
                f"Planner returned {len(plan.chapters)} chapters, expected {len(CHAPTER_KINDS)}"
            )
        for chapter in plan.chapters:
            if not chapter.section_titles:
                raise PlanningError(f"Chapter '{chapter.chapter_title}' has no sections")

        chapters = [
            Chapter(
                chapter_title=chapter.chapter_title,
                sections=[Section(title=title) for title in chapter.section_titles]
            )
            for chapter in plan.chapters
        ]
        return prepared.evolve(PlannedPaper, paper_title=plan.paper_title, chapters=chapters)

    async def _research(self, paper: PlannedPaper, tracker: ProgressTracker) -> ResearchedPaper:
        async def research_chapter(chapter: Chapter) -> Chapter:
            notes = await asyncio.gather(*[
                self.agents.research(paper, chapter.chapter_title, section.title)
                for section in chapter.sections
            ])
            sections = [
                Section(title=section.title, researched_datas=note)
                for section, note in zip(chapter.sections, notes)
            ]
            return Chapter(chapter_title=chapter.chapter_title, sections=sections)

        chapters = await _gather_or_cancel([research_chapter(c) for c in paper.chapters])
        return paper.evolve(ResearchedPaper, chapters=list(chapters))

    async def _write_introduction(self, paper: ResearchedPaper, tracker: ProgressTracker) -> DraftedPaper:
        target_words = introduction_pages(paper.page_count) * WORDS_PER_PAGE_TARGET

        async def generate(feedback: Optional[EvaluationResult]) -> str:
            return await self.agents.write_introduction(paper, target_words, feedback)

        async def evaluate(content: str) -> EvaluationResult:
            return await self.evaluator.evaluate(
                content,
                f"Academic introduction for topic: {paper.name}",
                f"Write a high-quality academic introduction for: {paper.name}"
            )

        async def on_retry(attempt: int, result: EvaluationResult):
            await tracker.retry("introduction", attempt, self.intro_max_attempts)

        introduction, evaluation = await generate_with_quality_check(
            generate, evaluate, self.intro_max_attempts, label="introduction", on_retry=on_retry
        )
        return paper.evolve(DraftedPaper, introduction=introduction, introduction_evaluation=evaluation)

    async def _write_chapters(self, paper: DraftedPaper, tracker: ProgressTracker) -> DraftedPaper:
        total_sections = paper.total_sections
        target_words = section_pages(paper.page_count, total_sections) * WORDS_PER_PAGE_TARGET
        completed = 0

        async def section_done(title: str):
            nonlocal completed
            completed += 1
            await tracker.section_completed(completed, total_sections, title)

        chapters = await _gather_or_cancel([
            self._write_chapter(paper, kind, chapter, target_words, tracker, section_done)
            for kind, chapter in zip(CHAPTER_KINDS, paper.chapters)
        ])
        return paper.with_changes(chapters=list(chapters))

    async def _write_chapter(
        self,
        paper: DraftedPaper,
        kind: ChapterKind,
        chapter: Chapter,
        target_words: int,
        tracker: ProgressTracker,
        section_done: Callable[[str], Awaitable[None]]
    ) -> Chapter:
        written: List[Section] = []

        # Sections of one chapter are written in order
        for section in chapter.sections:
            async def generate(feedback: Optional[EvaluationResult], section=section) -> str:
                return await self.agents.write_section(
                    paper, kind, chapter, section, target_words, feedback
                )

            async def evaluate(content: str, section=section) -> EvaluationResult:
                return await self.evaluator.evaluate(
                    content,
                    f"Chapter: {chapter.chapter_title}, Section: {section.title}",
                    f'Write high-quality content for section "{section.title}" '
                    f'in chapter "{chapter.chapter_title}"'
                )

            async def on_retry(attempt: int, result: EvaluationResult, section=section):
                await tracker.retry(f"'{section.title}'", attempt, self.section_max_attempts)

            content, evaluation = await generate_with_quality_check(
                generate,
                evaluate,
                self.section_max_attempts,
                label=f"{kind.value}: {section.title}",
                on_retry=on_retry
            )
            written.append(Section(
                title=section.title,
                researched_datas=section.researched_datas,
                content=content,
                evaluation=evaluation
            ))
            await section_done(section.title)

        return Chapter(chapter_title=chapter.chapter_title, sections=written)

    async def _write_conclusion(self, paper: DraftedPaper, tracker: ProgressTracker) -> DraftedPaper:
        target_words = introduction_pages(paper.page_count) * WORDS_PER_PAGE_TARGET
        summary = _paper_summary(paper)

        async def generate(feedback: Optional[EvaluationResult]) -> str:
            return await self.agents.write_conclusion(paper, target_words, feedback)

        async def evaluate(content: str) -> EvaluationResult:
            return await self.evaluator.evaluate(
                content,
                summary,
                "Write a comprehensive academic conclusion summarizing the entire research"
            )

        async def on_retry(attempt: int, result: EvaluationResult):
            await tracker.retry("conclusion", attempt, self.intro_max_attempts)

        conclusion, evaluation = await generate_with_quality_check(
            generate, evaluate, self.intro_max_attempts, label="conclusion", on_retry=on_retry
        )
        return paper.with_changes(conclusion=conclusion, conclusion_evaluation=evaluation)

    async def _write_bibliography(self, paper: DraftedPaper, tracker: ProgressTracker) -> DraftedPaper:
        bibliography = await self.agents.write_bibliography(paper)
        return paper.with_changes(bibliography=bibliography)

    async def _quality_check(self, paper: DraftedPaper, tracker: ProgressTracker) -> EvaluatedPaper:
        evaluations = []
        if paper.introduction_evaluation:
            evaluations.append(("Introduction", paper.introduction_evaluation))
        for number, chapter in enumerate(paper.chapters, start=1):
            for section_number, section in enumerate(chapter.sections, start=1):
                if section.evaluation:
                    evaluations.append((f"{number}.{section_number} {section.title}", section.evaluation))
        if paper.conclusion_evaluation:
            evaluations.append(("Conclusion", paper.conclusion_evaluation))

        return paper.evolve(EvaluatedPaper, quality_report=evaluation_report(evaluations))

    async def _page_count(self, paper: EvaluatedPaper, tracker: ProgressTracker) -> EvaluatedPaper:
        estimate = calculate_page_count(paper)
        valid, message = validate_page_count(estimate)
        if valid:
            logger.info("Page count estimated", pages=estimate.total_pages, target=estimate.target_pages)
        else:
            logger.warning(message, pages=estimate.total_pages, target=estimate.target_pages)
        return paper.with_changes(page_count_report=page_count_report(estimate))

    async def _render(self, paper: EvaluatedPaper, tracker: ProgressTracker) -> RenderedPaper:
        try:
            path = await self.renderer.render(paper)
        except Exception as e:
            raise RenderError(f"Failed to generate Word document: {e}") from e
        return paper.evolve(RenderedPaper, document_path=str(path))


def _paper_summary(paper: DraftedPaper) -> str:
    chapter_titles = ", ".join(chapter.chapter_title for chapter in paper.chapters)
    return f"Topic: {paper.name}. Title: {paper.paper_title}. Chapters: {chapter_titles}."


async def _gather_or_cancel(coros: List[Awaitable[Any]]) -> List[Any]:
    """gather(), but a failure cancels the siblings and waits for them."""
    tasks = [asyncio.ensure_future(coro) for coro in coros]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
