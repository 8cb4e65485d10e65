"""
Page count estimation for generated papers.

Assumes Times New Roman 14pt with 1.5 line spacing, where a page holds
roughly 250-300 words (275 on average). Cover, table of contents and
bibliography add a fixed 3 pages.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from coursework.pipeline.documents import DraftedPaper


WORDS_PER_PAGE = 275
FIXED_PAGES = 3
TARGET_TOLERANCE = 0.9


def count_words(text: str) -> int:
    if not text:
        return 0
    return len(text.split())


def words_to_pages(words: int) -> float:
    return round(words / WORDS_PER_PAGE, 1)


@dataclass
class SectionCount:
    title: str
    words: int
    pages: float


@dataclass
class ChapterCount:
    chapter_title: str
    words: int
    pages: float
    sections: List[SectionCount] = field(default_factory=list)


@dataclass
class PageCountEstimate:
    total_words: int
    total_pages: float
    introduction_words: int
    conclusion_words: int
    chapters: List[ChapterCount]
    target_pages: int

    @property
    def difference(self) -> float:
        return round(self.total_pages - self.target_pages, 1)

    @property
    def percentage_of_target(self) -> int:
        return round(self.total_pages / self.target_pages * 100)

    @property
    def meets_target(self) -> bool:
        return self.total_pages >= self.target_pages * TARGET_TOLERANCE


def calculate_page_count(paper: DraftedPaper) -> PageCountEstimate:
    introduction_words = count_words(paper.introduction)
    conclusion_words = count_words(paper.conclusion)

    chapters = []
    for chapter in paper.chapters:
        sections = [
            SectionCount(
                title=section.title,
                words=count_words(section.content),
                pages=words_to_pages(count_words(section.content))
            )
            for section in chapter.sections
        ]
        chapter_words = sum(s.words for s in sections)
        chapters.append(ChapterCount(
            chapter_title=chapter.chapter_title,
            words=chapter_words,
            pages=words_to_pages(chapter_words),
            sections=sections
        ))

    content_words = introduction_words + conclusion_words + sum(c.words for c in chapters)

    return PageCountEstimate(
        total_words=content_words,
        total_pages=round(words_to_pages(content_words) + FIXED_PAGES, 1),
        introduction_words=introduction_words,
        conclusion_words=conclusion_words,
        chapters=chapters,
        target_pages=paper.page_count or 30
    )


def validate_page_count(
    estimate: PageCountEstimate,
    min_pages: Optional[float] = None,
    max_pages: Optional[float] = None
) -> Tuple[bool, str]:
    """Check the estimate against a +/-10% window around the target."""
    minimum = min_pages or estimate.target_pages * 0.9
    maximum = max_pages or estimate.target_pages * 1.1

    if estimate.total_pages < minimum:
        needed = math.ceil((minimum - estimate.total_pages) * WORDS_PER_PAGE)
        return False, (
            f"Content too short: {estimate.total_pages} pages "
            f"(minimum: {minimum:g} pages). Need {needed} more words."
        )

    if estimate.total_pages > maximum:
        excess = math.ceil((estimate.total_pages - maximum) * WORDS_PER_PAGE)
        return False, (
            f"Content too long: {estimate.total_pages} pages "
            f"(maximum: {maximum:g} pages). Need to reduce by {excess} words."
        )

    return True, (
        f"Content length is appropriate: {estimate.total_pages} pages "
        f"(target: {estimate.target_pages} pages)"
    )


def page_count_report(estimate: PageCountEstimate) -> str:
    rule = "=" * 60
    thin = "-" * 60
    sign = "+" if estimate.difference >= 0 else ""

    lines = [
        rule,
        "PAGE COUNT ESTIMATE",
        rule,
        "",
        f"Target Pages: {estimate.target_pages} pages",
        f"Actual Pages: {estimate.total_pages} pages ({estimate.total_words:,} words)",
        f"Difference: {sign}{estimate.difference} pages",
        f"Completion: {estimate.percentage_of_target}% of target",
        f"Status: {'MEETS TARGET' if estimate.meets_target else 'BELOW TARGET'}",
        "",
        thin,
        "BREAKDOWN:",
        thin,
        "",
        f"Introduction: {words_to_pages(estimate.introduction_words)} pages "
        f"({estimate.introduction_words} words)",
    ]

    for number, chapter in enumerate(estimate.chapters, start=1):
        lines.append("")
        lines.append(f"Chapter {number}: {chapter.chapter_title}")
        lines.append(f"  Total: {chapter.pages} pages ({chapter.words} words)")
        for section_number, section in enumerate(chapter.sections, start=1):
            lines.append(
                f"  {number}.{section_number} {section.title}: "
                f"{section.pages} pages ({section.words} words)"
            )

    lines.append("")
    lines.append(
        f"Conclusion: {words_to_pages(estimate.conclusion_words)} pages "
        f"({estimate.conclusion_words} words)"
    )
    lines.append("")
    lines.append(f"Fixed Pages (Cover, TOC, Bibliography): ~{FIXED_PAGES} pages")
    lines.append(rule)

    if not estimate.meets_target:
        words_needed = math.ceil((estimate.target_pages - estimate.total_pages) * WORDS_PER_PAGE)
        lines.append("")
        lines.append(f"NOTE: Need approximately {words_needed:,} more words")
        lines.append(f"   to reach target of {estimate.target_pages} pages")
        lines.append(rule)

    return "\n".join(lines)
