"""
Course paper pipeline.

    from coursework.pipeline import PaperPipeline
    pipeline = PaperPipeline(agents, evaluator, renderer)
    result = await pipeline.run(job_input, on_progress)
"""

from coursework.pipeline.documents import (
    CHAPTER_KINDS,
    Chapter,
    ChapterKind,
    ChapterPlan,
    DraftedPaper,
    EvaluatedPaper,
    Evaluation,
    PaperMetadata,
    PaperPlan,
    PlannedPaper,
    PreparedInput,
    RenderedPaper,
    ResearchedPaper,
    Section,
)
from coursework.pipeline.errors import PipelineError, PlanningError, RenderError, StageError
from coursework.pipeline.executor import PaperPipeline, ProgressTracker
from coursework.pipeline.interfaces import ContentEvaluator, DocumentRenderer, PaperAgents
from coursework.pipeline.quality import EvaluationResult, generate_with_quality_check
from coursework.pipeline.stages import STAGE_ORDER, Stage

__all__ = [
    "CHAPTER_KINDS",
    "Chapter",
    "ChapterKind",
    "ChapterPlan",
    "DraftedPaper",
    "EvaluatedPaper",
    "Evaluation",
    "PaperMetadata",
    "PaperPlan",
    "PlannedPaper",
    "PreparedInput",
    "RenderedPaper",
    "ResearchedPaper",
    "Section",
    "PipelineError",
    "PlanningError",
    "RenderError",
    "StageError",
    "PaperPipeline",
    "ProgressTracker",
    "ContentEvaluator",
    "DocumentRenderer",
    "PaperAgents",
    "EvaluationResult",
    "generate_with_quality_check",
    "STAGE_ORDER",
    "Stage",
]
