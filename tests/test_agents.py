"""Tests for the agents' prompt handling and response parsing, with a stub chat model."""

from types import SimpleNamespace

import pytest

from coursework.agents import EvaluatorAgent, PaperAgentSuite, PlannerAgent, ResearchAgent, WriterAgent
from coursework.agents.base import extract_json, language_name, response_text
from coursework.pipeline.documents import Chapter, ChapterKind, PreparedInput, ResearchedPaper, Section
from coursework.pipeline.errors import PlanningError
from coursework.pipeline.quality import DEFAULT_PASS_SCORE, EvaluationResult


class StubChatModel:
    """Answers ainvoke() with canned replies and records the prompts."""

    def __init__(self, *replies, error=None):
        self.replies = list(replies)
        self.error = error
        self.prompts = []

    async def ainvoke(self, messages):
        self.prompts.append(messages[0].content)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=self.replies.pop(0))


PLAN_REPLY = """Here is the plan:
```json
{
  "chapterTitle": "Inflation targeting in Uzbekistan",
  "chapters": [
    {"chapterTitle": "I BOB. Theory", "sections": [{"title": "1.1 Concepts"}, {"title": "1.2 Models"}]},
    {"chapterTitle": "II BOB. Analysis", "sections": [{"title": "2.1 Data"}, "2.2 Results"]},
    {"chapterTitle": "III BOB. Proposals", "sections": [{"title": "3.1 Measures"}]}
  ]
}
```"""


def prepared(language="uzbek"):
    return PreparedInput(name="Inflation", language=language, page_count=30)


def test_extract_json_variants():
    assert extract_json('{"a": 1}') == {"a": 1}
    assert extract_json('```json\n{"a": 2}\n```') == {"a": 2}
    assert extract_json('```\n{"a": 3}\n```') == {"a": 3}
    assert extract_json('Sure! {"a": 4} Hope this helps.') == {"a": 4}


def test_response_text_joins_content_blocks():
    message = SimpleNamespace(content=[{"type": "text", "text": "Hello "}, {"type": "text", "text": "world"}])
    assert response_text(message) == "Hello world"
    assert response_text(SimpleNamespace(content="  plain  ")) == "plain"


def test_language_names():
    assert language_name("uzbek") == "Uzbek (Latin script)"
    assert language_name("klingon") == "klingon"


@pytest.mark.anyio
async def test_planner_parses_fenced_json():
    llm = StubChatModel(PLAN_REPLY)
    planner = PlannerAgent(llm=llm)

    plan = await planner.plan(prepared("english"))

    assert plan.paper_title == "Inflation targeting in Uzbekistan"
    assert [c.chapter_title for c in plan.chapters] == ["I BOB. Theory", "II BOB. Analysis", "III BOB. Proposals"]
    assert plan.chapters[1].section_titles == ["2.1 Data", "2.2 Results"]
    assert "TOPIC: Inflation" in llm.prompts[0]
    assert "LANGUAGE: English" in llm.prompts[0]


@pytest.mark.anyio
async def test_planner_rejects_invalid_json():
    planner = PlannerAgent(llm=StubChatModel("I cannot plan this topic."))

    with pytest.raises(PlanningError, match="invalid JSON"):
        await planner.plan(prepared())


@pytest.mark.anyio
async def test_planner_requires_title():
    planner = PlannerAgent(llm=StubChatModel('{"chapters": []}'))

    with pytest.raises(PlanningError, match="no paper title"):
        await planner.plan(prepared())


@pytest.mark.anyio
async def test_evaluator_averages_metrics():
    reply = """```json
{"bias": 90, "completeness": 80, "faithfulness": 85, "hallucination": 95,
 "toxicity": 100, "contextRelevancy": 60, "details": "Solid but drifts"}
```"""
    evaluator = EvaluatorAgent(threshold=0.8, llm=StubChatModel(reply))

    result = await evaluator.evaluate("text", "Academic introduction for topic: X", "Write X")

    assert result.overall_score == pytest.approx(0.85)
    assert result.passed is True
    assert result.details == "Solid but drifts"
    assert result.metrics["contextRelevancy"] == pytest.approx(0.6)


@pytest.mark.anyio
async def test_evaluator_below_threshold():
    reply = '{"bias": 50, "completeness": 50, "details": "Too short"}'
    evaluator = EvaluatorAgent(threshold=0.8, llm=StubChatModel(reply))

    result = await evaluator.evaluate("text", "ctx", "q")

    assert result.passed is False
    assert result.overall_score == pytest.approx(0.5)


@pytest.mark.anyio
@pytest.mark.parametrize("llm", [
    StubChatModel("not json at all"),
    StubChatModel('{"details": "no scores"}'),
    StubChatModel(error=TimeoutError("model timed out")),
])
async def test_evaluator_failures_default_to_pass(llm):
    evaluator = EvaluatorAgent(threshold=0.8, llm=llm)

    result = await evaluator.evaluate("text", "ctx", "q")

    assert result.passed is True
    assert result.overall_score == DEFAULT_PASS_SCORE


def researched_paper():
    return ResearchedPaper(
        name="Inflation",
        language="russian",
        page_count=30,
        paper_title="Inflation targeting",
        chapters=[
            Chapter(chapter_title="I BOB. Theory", sections=[Section(title="1.1 Concepts", researched_datas="CPI basics")]),
            Chapter(chapter_title="II BOB. Analysis", sections=[Section(title="2.1 Data")]),
            Chapter(chapter_title="III BOB. Proposals", sections=[Section(title="3.1 Measures")]),
        ]
    )


@pytest.mark.anyio
async def test_writer_includes_feedback_on_rewrite():
    llm = StubChatModel("First draft", "Second draft")
    writer = WriterAgent(llm=llm)
    paper = researched_paper()

    first = await writer.write_introduction(paper, 560)
    feedback = EvaluationResult(passed=False, overall_score=0.6, details="Objectives are missing")
    second = await writer.write_introduction(paper, 560, feedback)

    assert (first, second) == ("First draft", "Second draft")
    assert "REWRITE REQUIRED" not in llm.prompts[0]
    assert "REWRITE REQUIRED" in llm.prompts[1]
    assert "Objectives are missing" in llm.prompts[1]
    assert "LANGUAGE: Russian" in llm.prompts[0]
    assert "1.1 Concepts" in llm.prompts[0]


@pytest.mark.anyio
async def test_writer_section_prompt_uses_chapter_guidance_and_notes():
    llm = StubChatModel("1.1 Concepts\n\nBody text")
    writer = WriterAgent(llm=llm)
    paper = researched_paper()
    chapter = paper.chapters[0]

    text = await writer.write_section(paper, ChapterKind.THEORY, chapter, chapter.sections[0], 1100)

    assert text.startswith("1.1 Concepts")
    assert "theoretical foundations" in llm.prompts[0]
    assert "CPI basics" in llm.prompts[0]
    assert "about 1100 words" in llm.prompts[0]


@pytest.mark.anyio
async def test_writer_rejects_empty_output():
    writer = WriterAgent(llm=StubChatModel("   "))

    with pytest.raises(ValueError, match="empty bibliography"):
        await writer.write_bibliography(researched_paper())


@pytest.mark.anyio
async def test_agent_suite_delegates():
    planner = PlannerAgent(llm=StubChatModel(PLAN_REPLY))
    researcher = ResearchAgent(llm=StubChatModel("Brief about data"))
    writer = WriterAgent(llm=StubChatModel("Conclusion"))
    suite = PaperAgentSuite(planner=planner, researcher=researcher, writer=writer)

    plan = await suite.plan(prepared())
    notes = await suite.research(prepared(), plan.chapters[1].chapter_title, "2.1 Data")
    conclusion = await suite.write_conclusion(researched_paper(), 560)

    assert len(plan.chapters) == 3
    assert notes == "Brief about data"
    assert "SECTION: 2.1 Data" in researcher.llm.prompts[0]
    assert conclusion == "Conclusion"
