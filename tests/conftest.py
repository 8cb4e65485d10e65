"""Shared fixtures and fake collaborators."""

import asyncio
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from coursework.jobs import JobDatabase, JobEventNotifier, JobInput
from coursework.pipeline.documents import ChapterKind, ChapterPlan, PaperPlan
from coursework.pipeline.quality import EvaluationResult


@pytest.fixture
def anyio_backend():
    return "asyncio"


async def settle(rounds: int = 20):
    """Let scheduled tasks run up to their next real suspension point."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def wait_until(predicate, timeout: float = 5.0):
    """Poll until `predicate()` holds. Store writes run on a worker thread."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "data" / "jobs.db")


@pytest.fixture
async def store(db_path):
    database = JobDatabase(db_path)
    await database.initialize()
    yield database
    await database.close()


@pytest.fixture
def notifier(store):
    return JobEventNotifier(store)


def make_input(topic: str = "Inflation in Uzbekistan", **kwargs) -> JobInput:
    return JobInput(topic=topic, **kwargs)


class GatedExecutor:
    """Runs until the test opens the job's gate. Topics starting with 'fail' raise."""

    def __init__(self):
        self.started: List[str] = []
        self.waiting: List[str] = []
        self.gates: Dict[str, asyncio.Event] = {}
        self.running = 0
        self.max_running = 0

    def gate(self, topic: str) -> asyncio.Event:
        return self.gates.setdefault(topic, asyncio.Event())

    def release(self, topic: str):
        self.gate(topic).set()

    async def run(self, job_input: JobInput, on_progress):
        self.started.append(job_input.topic)
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            await on_progress("Working", 10)
            self.waiting.append(job_input.topic)
            await self.gate(job_input.topic).wait()
            if job_input.topic.startswith("fail"):
                raise RuntimeError(f"{job_input.topic} exploded")
            return {"name": job_input.topic}
        finally:
            self.running -= 1


@pytest.fixture
def executor():
    return GatedExecutor()


class FakeAgents:
    """Deterministic PaperAgents. Optionally fails while writing one chapter."""

    def __init__(self, chapters: int = 3, sections: int = 2, fail_kind: Optional[ChapterKind] = None):
        self.chapter_count = chapters
        self.section_count = sections
        self.fail_kind = fail_kind
        self.introduction_calls = 0
        self.feedback_seen: List[Optional[EvaluationResult]] = []
        self.sections_written: List[str] = []

    async def plan(self, prepared):
        return PaperPlan(
            paper_title=f"{prepared.name}: a study",
            chapters=[
                ChapterPlan(
                    chapter_title=f"Chapter {c}",
                    section_titles=[f"{c}.{s}" for s in range(1, self.section_count + 1)]
                )
                for c in range(1, self.chapter_count + 1)
            ]
        )

    async def research(self, prepared, chapter_title, section_title):
        return f"notes for {section_title}"

    async def write_introduction(self, paper, target_words, feedback=None):
        self.introduction_calls += 1
        self.feedback_seen.append(feedback)
        return f"introduction attempt {self.introduction_calls}"

    async def write_section(self, paper, kind, chapter, section, target_words, feedback=None):
        if kind == self.fail_kind:
            raise RuntimeError(f"writer failed on {section.title}")
        # Give sibling chapters a chance to interleave
        await asyncio.sleep(0)
        self.sections_written.append(section.title)
        return " ".join(["word"] * 50)

    async def write_conclusion(self, paper, target_words, feedback=None):
        return "conclusion text"

    async def write_bibliography(self, paper):
        return "1. Source (n.d.)"


class ScriptedEvaluator:
    """Returns scores from a per-unit script, then `default` once exhausted."""

    def __init__(self, scripts: Optional[Dict[str, List[float]]] = None, default: float = 0.9,
                 threshold: float = 0.8, error: Optional[Exception] = None):
        self.scripts = {key: list(values) for key, values in (scripts or {}).items()}
        self.default = default
        self.threshold = threshold
        self.error = error
        self.calls: List[str] = []

    async def evaluate(self, content, context, question):
        self.calls.append(context)
        if self.error is not None:
            raise self.error

        unit = "introduction" if context.startswith("Academic introduction") else "other"
        script = self.scripts.get(unit)
        score = script.pop(0) if script else self.default
        return EvaluationResult(
            passed=score >= self.threshold,
            overall_score=score,
            details=f"scored {score}"
        )


class FakeRenderer:
    def __init__(self, output_dir: Path, fail: bool = False):
        self.output_dir = output_dir
        self.fail = fail
        self.rendered = []

    async def render(self, paper):
        if self.fail:
            raise OSError("disk full")
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / "paper.docx"
        path.write_bytes(b"docx")
        self.rendered.append(paper)
        return str(path)
