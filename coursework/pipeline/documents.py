"""
Typed job documents passed between pipeline stages.

Each stage takes the document produced by the previous one and returns a
richer one:

    JobInput -> PreparedInput -> PlannedPaper -> ResearchedPaper
             -> DraftedPaper -> EvaluatedPaper -> RenderedPaper

Later documents extend earlier ones, so a stage can always read everything
that was produced before it.
"""

from dataclasses import dataclass, field, fields, replace, asdict
from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar

from coursework.jobs.models import JobInput


DEFAULT_PAGE_COUNT = 30


class ChapterKind(str, Enum):
    """The three fixed chapters of a course paper, in order."""
    THEORY = "theory"
    ANALYSIS = "analysis"
    IMPROVEMENT = "improvement"


CHAPTER_KINDS = (ChapterKind.THEORY, ChapterKind.ANALYSIS, ChapterKind.IMPROVEMENT)


@dataclass(frozen=True)
class PaperMetadata:
    """Cover page fields."""
    university_name: Optional[str] = None
    faculty_name: Optional[str] = None
    department_name: Optional[str] = None
    student_name: Optional[str] = None
    student_course: Optional[int] = None
    subject_name: Optional[str] = None
    advisor_name: Optional[str] = None

    @classmethod
    def from_input(cls, job_input: JobInput) -> "PaperMetadata":
        return cls(
            university_name=job_input.university_name,
            faculty_name=job_input.faculty_name,
            department_name=job_input.department_name,
            student_name=job_input.student_name,
            student_course=job_input.student_course,
            subject_name=job_input.subject_name,
            advisor_name=job_input.advisor_name
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Evaluation:
    """Evaluation recorded on an accepted unit of content."""
    passed: bool
    score: float
    details: str
    attempts: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "score": self.score,
            "details": self.details,
            "attempts": self.attempts
        }


@dataclass(frozen=True)
class Section:
    title: str
    researched_datas: str = ""
    content: str = ""
    evaluation: Optional[Evaluation] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "content": self.content,
            "researchedDatas": self.researched_datas,
            "evaluation": self.evaluation.to_dict() if self.evaluation else None
        }


@dataclass(frozen=True)
class Chapter:
    chapter_title: str
    sections: List[Section] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chapterTitle": self.chapter_title,
            "sections": [section.to_dict() for section in self.sections]
        }


@dataclass(frozen=True)
class ChapterPlan:
    chapter_title: str
    section_titles: List[str]


@dataclass(frozen=True)
class PaperPlan:
    """What the planner returns: a paper title and the chapter outline."""
    paper_title: str
    chapters: List[ChapterPlan]


D = TypeVar("D", bound="PreparedInput")


@dataclass(frozen=True)
class PreparedInput:
    name: str
    language: str
    page_count: int = DEFAULT_PAGE_COUNT
    metadata: PaperMetadata = field(default_factory=PaperMetadata)

    def evolve(self, cls: Type[D], **changes: Any) -> D:
        """Promote this document to the next stage's type."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values.update(changes)
        return cls(**values)

    def with_changes(self: D, **changes: Any) -> D:
        return replace(self, **changes)


@dataclass(frozen=True)
class PlannedPaper(PreparedInput):
    paper_title: str = ""
    chapters: List[Chapter] = field(default_factory=list)

    @property
    def total_sections(self) -> int:
        return sum(len(chapter.sections) for chapter in self.chapters)

    def outline(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "chapterTitle": self.paper_title,
            "chapters": [
                {
                    "chapterTitle": chapter.chapter_title,
                    "sections": [section.title for section in chapter.sections]
                }
                for chapter in self.chapters
            ]
        }


@dataclass(frozen=True)
class ResearchedPaper(PlannedPaper):
    """Every section carries researched_datas."""


@dataclass(frozen=True)
class DraftedPaper(ResearchedPaper):
    introduction: str = ""
    introduction_evaluation: Optional[Evaluation] = None
    conclusion: str = ""
    conclusion_evaluation: Optional[Evaluation] = None
    bibliography: str = ""


@dataclass(frozen=True)
class EvaluatedPaper(DraftedPaper):
    quality_report: str = ""
    page_count_report: str = ""


@dataclass(frozen=True)
class RenderedPaper(EvaluatedPaper):
    document_path: str = ""

    def to_result(self) -> Dict[str, Any]:
        """Result payload stored on the completed job."""
        return {
            "name": self.name,
            "chapterTitle": self.paper_title,
            "language": self.language,
            "introduction": self.introduction,
            "introductionEvaluation": (
                self.introduction_evaluation.to_dict() if self.introduction_evaluation else None
            ),
            "chapters": [chapter.to_dict() for chapter in self.chapters],
            "conclusion": self.conclusion,
            "conclusionEvaluation": (
                self.conclusion_evaluation.to_dict() if self.conclusion_evaluation else None
            ),
            "bibliography": self.bibliography,
            "documentPath": self.document_path,
            "qualityReport": self.quality_report,
            "pageCountReport": self.page_count_report
        }
