"""
Word document rendering for finished papers.

Layout follows the usual university format: Times New Roman 14pt, 1.5 line
spacing, justified text, 2.5cm margins, a cover page, a table of contents,
then introduction, chapters, conclusion and references.
"""

import asyncio
import re
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH, WD_BREAK
from docx.shared import Cm, Pt

from coursework.config import config
from coursework.pipeline.documents import EvaluatedPaper
from coursework.utils.logging import get_logger

logger = get_logger("docx_renderer")


FONT_NAME = "Times New Roman"
BODY_SIZE = Pt(14)
MINISTRY_LINE = "O'ZBEKISTON RESPUBLIKASI OLIY TA'LIM, FAN VA INNOVATSIYALAR VAZIRLIGI"


def sanitize_filename(name: str) -> str:
    safe = re.sub(r"[^a-zA-Z0-9_\s-]", "", name)
    safe = re.sub(r"\s+", "_", safe.strip()).lower()
    return safe[:50] or "paper"


class DocxRenderer:
    """Implements the DocumentRenderer protocol with python-docx."""

    def __init__(self, output_dir: Optional[str] = None, city: str = "Toshkent"):
        self.output_dir = Path(output_dir or config.DOCUMENTS_DIR)
        self.city = city

    async def render(self, paper: EvaluatedPaper) -> str:
        # python-docx is blocking; keep it off the event loop
        path = await asyncio.to_thread(self.render_sync, paper)
        logger.info("Word document generated", path=path, topic=paper.name)
        return path

    def render_sync(self, paper: EvaluatedPaper) -> str:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        filename = f"kurs_ishi_{sanitize_filename(paper.name)}_{uuid.uuid4().hex[:8]}.docx"
        output_path = self.output_dir / filename

        doc = Document()
        self._setup_document(doc)
        self._add_cover_page(doc, paper)
        self._add_table_of_contents(doc, paper)

        self._add_heading(doc, "KIRISH")
        self._add_body(doc, paper.introduction)
        self._page_break(doc)

        for chapter in paper.chapters:
            self._add_heading(doc, chapter.chapter_title)
            for section in chapter.sections:
                self._add_heading(doc, section.title, size=Pt(14))
                self._add_body(doc, self._strip_leading_title(section.content, section.title))
            self._page_break(doc)

        self._add_heading(doc, "XULOSA")
        self._add_body(doc, paper.conclusion)
        self._page_break(doc)

        self._add_heading(doc, "FOYDALANILGAN ADABIYOTLAR")
        self._add_body(doc, paper.bibliography, justify=False)

        doc.save(str(output_path))
        return str(output_path)

    def _setup_document(self, doc: Document):
        style = doc.styles["Normal"]
        style.font.name = FONT_NAME
        style.font.size = BODY_SIZE
        style.paragraph_format.line_spacing = 1.5

        for section in doc.sections:
            section.top_margin = Cm(2.5)
            section.bottom_margin = Cm(2.5)
            section.left_margin = Cm(2.5)
            section.right_margin = Cm(2.5)

    def _centered(self, doc: Document, text: str, size=BODY_SIZE, bold: bool = False):
        para = doc.add_paragraph()
        para.alignment = WD_ALIGN_PARAGRAPH.CENTER
        run = para.add_run(text)
        run.font.name = FONT_NAME
        run.font.size = size
        run.font.bold = bold
        return para

    def _add_cover_page(self, doc: Document, paper: EvaluatedPaper):
        meta = paper.metadata

        self._centered(doc, MINISTRY_LINE, size=Pt(12), bold=True)
        if meta.university_name:
            self._centered(doc, meta.university_name.upper(), bold=True)
        if meta.faculty_name:
            self._centered(doc, meta.faculty_name)
        if meta.department_name:
            course = f" {meta.student_course}-kurs talabasi" if meta.student_course else ""
            self._centered(doc, f"{meta.department_name}{course}")
        if meta.student_name:
            self._centered(doc, meta.student_name.upper(), bold=True)
        if meta.subject_name:
            self._centered(doc, f"{meta.subject_name.upper()} FANIDAN TAYYORLAGAN")

        doc.add_paragraph()  # Spacing
        self._centered(doc, "KURS ISHI", size=Pt(24), bold=True)
        self._centered(doc, f"Mavzu: {paper.paper_title or paper.name}", bold=True)
        doc.add_paragraph()  # Spacing

        advisor = doc.add_paragraph()
        advisor.alignment = WD_ALIGN_PARAGRAPH.RIGHT
        run = advisor.add_run(f"Ilmiy rahbari: {meta.advisor_name or '______'}")
        run.font.size = BODY_SIZE

        doc.add_paragraph()  # Spacing
        self._centered(doc, f"{self.city} - {datetime.now().year}")
        self._page_break(doc)

    def _add_table_of_contents(self, doc: Document, paper: EvaluatedPaper):
        self._add_heading(doc, "REJA (MUNDARIJA)")
        entries = ["KIRISH"]
        for chapter in paper.chapters:
            entries.append(chapter.chapter_title)
            entries.extend(f"    {section.title}" for section in chapter.sections)
        entries.extend(["XULOSA", "FOYDALANILGAN ADABIYOTLAR"])

        for entry in entries:
            para = doc.add_paragraph()
            para.add_run(entry).font.size = BODY_SIZE
        self._page_break(doc)

    def _add_heading(self, doc: Document, text: str, size=Pt(16)):
        self._centered(doc, text, size=size, bold=True)

    def _add_body(self, doc: Document, text: str, justify: bool = True):
        for block in (text or "").split("\n"):
            block = block.strip()
            if not block:
                continue
            para = doc.add_paragraph()
            if justify:
                para.alignment = WD_ALIGN_PARAGRAPH.JUSTIFY
            para.paragraph_format.first_line_indent = Cm(1.25)
            run = para.add_run(block.replace("**", ""))
            run.font.size = BODY_SIZE

    def _page_break(self, doc: Document):
        doc.add_paragraph().add_run().add_break(WD_BREAK.PAGE)

    def _strip_leading_title(self, content: str, title: str) -> str:
        """Writers usually repeat the section title as the first line."""
        lines = (content or "").strip().split("\n", 1)
        if lines and lines[0].strip().strip("#* ").lower() == title.strip().lower():
            return lines[1] if len(lines) > 1 else ""
        return content
