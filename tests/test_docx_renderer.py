"""Tests for the Word document renderer."""

from pathlib import Path

import pytest
from docx import Document

from coursework.document import DocxRenderer, sanitize_filename
from coursework.pipeline.documents import Chapter, EvaluatedPaper, PaperMetadata, Section


def make_paper():
    return EvaluatedPaper(
        name="Raqamli iqtisodiyot: muammolar!",
        language="uzbek",
        page_count=30,
        metadata=PaperMetadata(
            university_name="Toshkent davlat iqtisodiyot universiteti",
            student_name="Ali Valiyev",
            student_course=2,
            department_name="Iqtisodiyot",
            advisor_name="prof. Karimov"
        ),
        paper_title="Raqamli iqtisodiyotning rivojlanishi",
        chapters=[
            Chapter(chapter_title="I BOB. Nazariy asoslar", sections=[
                Section(title="1.1 Tushunchalar", content="1.1 Tushunchalar\nBirinchi **matn**."),
            ]),
            Chapter(chapter_title="II BOB. Tahlil", sections=[Section(title="2.1 Tahlil", content="Ikkinchi matn.")]),
            Chapter(chapter_title="III BOB. Takliflar", sections=[Section(title="3.1 Takliflar", content="Uchinchi matn.")]),
        ],
        introduction="Kirish matni.",
        conclusion="Xulosa matni.",
        bibliography="1. Manba (2020)\n2. Manba (n.d.)"
    )


def paragraph_texts(path):
    return [p.text for p in Document(path).paragraphs]


def test_sanitize_filename():
    assert sanitize_filename("Raqamli iqtisodiyot: muammolar!") == "raqamli_iqtisodiyot_muammolar"
    assert sanitize_filename("???") == "paper"
    assert len(sanitize_filename("x" * 80)) == 50


def test_render_sync_writes_structured_document(tmp_path):
    renderer = DocxRenderer(output_dir=str(tmp_path / "out"))

    path = renderer.render_sync(make_paper())

    assert Path(path).is_file()
    assert Path(path).name.startswith("kurs_ishi_raqamli_iqtisodiyot_muammolar_")
    assert path.endswith(".docx")

    texts = paragraph_texts(path)
    for heading in ("KURS ISHI", "REJA (MUNDARIJA)", "KIRISH", "XULOSA", "FOYDALANILGAN ADABIYOTLAR"):
        assert heading in texts
    assert "Mavzu: Raqamli iqtisodiyotning rivojlanishi" in texts
    assert "Ilmiy rahbari: prof. Karimov" in texts
    assert "Iqtisodiyot 2-kurs talabasi" in texts
    assert "Birinchi matn." in texts
    assert "1. Manba (2020)" in texts

    # Section heading is not repeated from the writer's output
    assert texts.count("1.1 Tushunchalar") == 1
    assert "    1.1 Tushunchalar" in texts


def test_body_font_and_margins(tmp_path):
    path = DocxRenderer(output_dir=str(tmp_path)).render_sync(make_paper())
    document = Document(path)

    assert document.styles["Normal"].font.name == "Times New Roman"
    section = document.sections[0]
    assert round(section.left_margin.cm, 1) == 2.5


@pytest.mark.anyio
async def test_render_runs_off_the_event_loop(tmp_path):
    path = await DocxRenderer(output_dir=str(tmp_path)).render(make_paper())
    assert Path(path).is_file()
