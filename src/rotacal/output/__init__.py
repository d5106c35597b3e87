"""Output generation for schedules (PDF, text)."""

from rotacal.output.pdf_generator import PDFGenerator
from rotacal.output.text_generator import TextScheduleGenerator

__all__ = [
    "PDFGenerator",
    "TextScheduleGenerator",
]
