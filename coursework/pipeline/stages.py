"""Pipeline stages, in execution order, with their progress labels."""

from enum import Enum


class Stage(str, Enum):
    PREPARING = "preparing"
    PLANNING = "planning"
    RESEARCHING = "researching"
    WRITING_INTRO = "writing_intro"
    WRITING_CHAPTERS = "writing_chapters"
    WRITING_CONCLUSION = "writing_conclusion"
    WRITING_BIBLIOGRAPHY = "writing_bibliography"
    QUALITY_CHECK = "quality_check"
    PAGE_COUNT = "page_count"
    RENDERING_DOCUMENT = "rendering_document"
    DONE = "done"

    @property
    def label(self) -> str:
        return STAGE_LABELS[self]


STAGE_LABELS = {
    Stage.PREPARING: "Preparing topic and metadata",
    Stage.PLANNING: "Planning content structure",
    Stage.RESEARCHING: "Researching content",
    Stage.WRITING_INTRO: "Writing introduction",
    Stage.WRITING_CHAPTERS: "Writing chapters (Theory, Analysis, Improvement)",
    Stage.WRITING_CONCLUSION: "Writing conclusion",
    Stage.WRITING_BIBLIOGRAPHY: "Generating bibliography",
    Stage.QUALITY_CHECK: "Creating quality report",
    Stage.PAGE_COUNT: "Calculating page count",
    Stage.RENDERING_DOCUMENT: "Generating Word document",
    Stage.DONE: "Completed",
}

# Every stage except DONE does work
STAGE_ORDER = tuple(stage for stage in Stage if stage is not Stage.DONE)
