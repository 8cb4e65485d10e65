"""Document rendering for finished papers."""

from coursework.document.docx_renderer import DocxRenderer, sanitize_filename

__all__ = ["DocxRenderer", "sanitize_filename"]
