"""Tests for page count estimation."""

from coursework.pipeline.documents import Chapter, DraftedPaper, Section
from coursework.pipeline.page_counter import (
    calculate_page_count,
    count_words,
    page_count_report,
    validate_page_count,
    words_to_pages,
)


def words(n):
    return " ".join(["word"] * n)


def make_paper(section_words, page_count=30, intro_words=550, conclusion_words=550):
    return DraftedPaper(
        name="Topic",
        language="english",
        page_count=page_count,
        paper_title="Title",
        chapters=[
            Chapter(
                chapter_title=f"Chapter {c}",
                sections=[Section(title=f"{c}.{s}", content=words(section_words)) for s in (1, 2)]
            )
            for c in (1, 2, 3)
        ],
        introduction=words(intro_words),
        conclusion=words(conclusion_words)
    )


def test_count_words_and_pages():
    assert count_words("") == 0
    assert count_words("  one two\nthree  ") == 3
    assert words_to_pages(275) == 1.0
    assert words_to_pages(400) == 1.5


def test_estimate_adds_fixed_pages():
    paper = make_paper(section_words=1100)

    estimate = calculate_page_count(paper)

    assert estimate.total_words == 550 + 550 + 6 * 1100
    assert estimate.total_pages == 31.0
    assert estimate.introduction_words == 550
    assert estimate.chapters[0].words == 2200
    assert estimate.chapters[0].sections[1].pages == 4.0
    assert estimate.target_pages == 30
    assert estimate.meets_target


def test_validate_window():
    ok, message = validate_page_count(calculate_page_count(make_paper(section_words=1100)))
    assert ok
    assert message.startswith("Content length is appropriate")

    short, message = validate_page_count(calculate_page_count(make_paper(section_words=100)))
    assert not short
    assert message.startswith("Content too short")

    long, message = validate_page_count(calculate_page_count(make_paper(section_words=3000)))
    assert not long
    assert message.startswith("Content too long")


def test_report_mentions_shortfall():
    estimate = calculate_page_count(make_paper(section_words=100))

    report = page_count_report(estimate)

    assert "Target Pages: 30 pages" in report
    assert "Status: BELOW TARGET" in report
    assert "Chapter 2: Chapter 2" in report
    assert "NOTE: Need approximately" in report


def test_report_for_paper_on_target():
    report = page_count_report(calculate_page_count(make_paper(section_words=1100)))

    assert "Status: MEETS TARGET" in report
    assert "Difference: +1.0 pages" in report
    assert "NOTE" not in report
