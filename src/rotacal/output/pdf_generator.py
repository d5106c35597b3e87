"""PDF generation for schedule output.

This module creates printable PDF calendars showing:
- One month grid per page with the resolved shifts of each day
- Markers for exception-driven shifts, conflicts and errors
- A summary page with schedule statistics
"""

import calendar
from datetime import date
from io import BytesIO
from pathlib import Path
from typing import Optional, Union

from rotacal.domain.models import (
    DayStatus,
    Provenance,
    ScheduleStats,
    WorkScheduleDay,
)

# Color definitions (RGB tuples, 0-1 scale)
COLORS = {
    "MORNING": (0.55, 0.8, 0.95),  # Light blue
    "AFTERNOON": (1.0, 0.85, 0.5),  # Amber
    "NIGHT": (0.6, 0.55, 0.85),  # Violet
    "DAY": (0.6, 0.85, 0.6),  # Green
    "rest": (0.95, 0.95, 0.95),  # Light gray
    "unscheduled": (1.0, 1.0, 1.0),  # White
    "conflict": (0.95, 0.6, 0.3),  # Orange
    "error": (0.9, 0.4, 0.4),  # Red
}
DEFAULT_SHIFT_COLOR = (0.75, 0.75, 0.75)

WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


class PDFGenerator:
    """Generates printable month-calendar PDFs of a schedule.

    Example:
        >>> generator = PDFGenerator()
        >>> generator.generate(days, "team-A.pdf")
    """

    def __init__(
        self,
        page_width: float = 792,  # Letter landscape width (11")
        page_height: float = 612,  # Letter landscape height (8.5")
        margin: float = 36,  # 0.5 inch margins
    ):
        self.page_width = page_width
        self.page_height = page_height
        self.margin = margin

    def generate(
        self,
        days: list[WorkScheduleDay],
        output_path: Union[str, Path],
        include_summary: bool = True,
    ) -> None:
        """Generate PDF calendar and save to file.

        Args:
            days: Generated days of one subject, in date order.
            output_path: Path to save the PDF.
            include_summary: Whether to include the summary page.
        """
        canvas = self._canvas_module()
        c = canvas.Canvas(str(output_path), pagesize=(self.page_width, self.page_height))
        self._draw(c, days, include_summary)
        c.save()

    def generate_to_buffer(
        self,
        days: list[WorkScheduleDay],
        include_summary: bool = True,
    ) -> BytesIO:
        """Generate PDF and return as bytes buffer."""
        canvas = self._canvas_module()
        buffer = BytesIO()
        c = canvas.Canvas(buffer, pagesize=(self.page_width, self.page_height))
        self._draw(c, days, include_summary)
        c.save()
        buffer.seek(0)
        return buffer

    @staticmethod
    def _canvas_module():
        try:
            from reportlab.pdfgen import canvas
        except ImportError:
            raise ImportError(
                "reportlab is required for PDF generation. "
                "Install with: pip install reportlab"
            )
        return canvas

    def _draw(self, c, days: list[WorkScheduleDay], include_summary: bool) -> None:
        if not days:
            c.setFont("Helvetica", 12)
            c.drawString(
                self.margin, self.page_height - self.margin - 20, "No days to display."
            )
            c.showPage()
            return

        months: dict[tuple[int, int], dict[date, WorkScheduleDay]] = {}
        for day in days:
            key = (day.schedule_date.year, day.schedule_date.month)
            months.setdefault(key, {})[day.schedule_date] = day

        subject = days[0].subject_id
        for (year, month), by_date in months.items():
            self._draw_month_page(c, subject, year, month, by_date)

        if include_summary:
            self._draw_summary_page(c, subject, days)

    def _draw_month_page(
        self,
        c,
        subject: str,
        year: int,
        month: int,
        by_date: dict[date, WorkScheduleDay],
    ) -> None:
        """Draw one month as a 7-column grid."""
        header_height = 50
        footer_height = 30

        c.setFont("Helvetica-Bold", 16)
        c.drawString(
            self.margin,
            self.page_height - self.margin - 20,
            f"Schedule {subject} - {calendar.month_name[month]} {year}",
        )

        weeks = calendar.Calendar(firstweekday=0).monthdatescalendar(year, month)
        grid_top = self.page_height - self.margin - header_height
        grid_height = grid_top - self.margin - footer_height - 15
        cell_width = (self.page_width - 2 * self.margin) / 7
        cell_height = grid_height / len(weeks)

        c.setFont("Helvetica-Bold", 9)
        c.setFillColorRGB(0, 0, 0)
        for i, label in enumerate(WEEKDAY_LABELS):
            c.drawCentredString(
                self.margin + (i + 0.5) * cell_width, grid_top + 5, label
            )

        for row, week in enumerate(weeks):
            for col, d in enumerate(week):
                x = self.margin + col * cell_width
                y = grid_top - (row + 1) * cell_height
                day = by_date.get(d) if d.month == month else None
                self._draw_cell(c, d, day, d.month == month, x, y, cell_width, cell_height)

        self._draw_legend(c, self.margin, self.margin + 5)
        c.showPage()

    def _draw_cell(
        self,
        c,
        d: date,
        day: Optional[WorkScheduleDay],
        in_month: bool,
        x: float,
        y: float,
        width: float,
        height: float,
    ) -> None:
        """Draw a single calendar cell."""
        if day is None:
            color = COLORS["unscheduled"]
        elif day.status == DayStatus.ERROR:
            color = COLORS["error"]
        elif day.status == DayStatus.CONFLICT:
            color = COLORS["conflict"]
        elif day.working_shifts:
            color = COLORS.get(day.working_shifts[0].id, DEFAULT_SHIFT_COLOR)
        elif day.status == DayStatus.REST:
            color = COLORS["rest"]
        else:
            color = COLORS["unscheduled"]

        c.setFillColorRGB(*color)
        c.setStrokeColorRGB(0.6, 0.6, 0.6)
        c.setLineWidth(0.5)
        c.rect(x, y, width, height, fill=1, stroke=1)

        shade = 0.0 if in_month else 0.7
        c.setFillColorRGB(shade, shade, shade)
        c.setFont("Helvetica-Bold", 9)
        c.drawString(x + 4, y + height - 12, str(d.day))

        if day is None:
            return

        c.setFillColorRGB(0, 0, 0)
        c.setFont("Helvetica", 8)
        line_y = y + height - 24
        if day.status == DayStatus.ERROR:
            c.drawString(x + 4, line_y, "ERROR")
            return

        for resolved in day.shifts:
            flag = "*" if resolved.provenance == Provenance.FROM_EXCEPTION else ""
            if resolved.is_rest:
                label = f"Rest{flag}"
            else:
                shift = resolved.shift
                label = (
                    f"{shift.name}{flag} {shift.start_time.strftime('%H:%M')}-"
                    f"{shift.end_time.strftime('%H:%M')}"
                )
            c.drawString(x + 4, line_y, label[:24])
            line_y -= 10
            if line_y < y + 4:
                break

        if day.conflicts:
            c.setFont("Helvetica-Bold", 8)
            c.drawRightString(x + width - 4, y + height - 12, "!")

    def _draw_legend(self, c, x: float, y: float) -> None:
        """Draw legend for colors."""
        c.setFillColorRGB(0, 0, 0)
        c.setFont("Helvetica-Bold", 8)
        c.drawString(x, y, "Legend:")

        items = [
            ("MORNING", "Morning"),
            ("AFTERNOON", "Afternoon"),
            ("NIGHT", "Night"),
            ("DAY", "Day"),
            ("rest", "Rest"),
            ("conflict", "Conflict"),
            ("error", "Error"),
        ]

        c.setFont("Helvetica", 7)
        current_x = x + 45

        for key, label in items:
            c.setFillColorRGB(*COLORS[key])
            c.rect(current_x, y - 2, 12, 10, fill=1, stroke=1)
            c.setFillColorRGB(0, 0, 0)
            c.drawString(current_x + 15, y, label)
            current_x += 70

        c.drawString(current_x, y, "* = from exception")

    def _draw_summary_page(self, c, subject: str, days: list[WorkScheduleDay]) -> None:
        """Draw summary page with schedule statistics."""
        stats = ScheduleStats.calculate(days)

        c.setFillColorRGB(0, 0, 0)
        c.setFont("Helvetica-Bold", 16)
        c.drawString(
            self.margin,
            self.page_height - self.margin - 20,
            f"Schedule Summary - {subject}",
        )

        y = self.page_height - self.margin - 45
        c.setFont("Helvetica", 10)
        c.drawString(
            self.margin,
            y,
            f"{days[0].schedule_date.isoformat()} to {days[-1].schedule_date.isoformat()}",
        )

        y -= 30
        c.setFont("Helvetica-Bold", 12)
        c.drawString(self.margin, y, "Overview")
        y -= 20

        c.setFont("Helvetica", 10)
        lines = [
            f"Total Days: {stats.total_days}",
            f"Working Days: {stats.working_days} ({stats.working_day_percentage:.1f}%)",
            f"Rest Days: {stats.rest_days}",
            f"Unscheduled Days: {stats.unscheduled_days}",
            f"Days With Conflicts: {stats.conflict_days}",
            f"Days With Errors: {stats.error_days}",
            f"Total Work Hours: {stats.total_work_hours:.1f}",
            f"Average Hours per Working Day: {stats.average_hours_per_working_day:.1f}",
            f"Shifts From Exceptions: {stats.exception_shifts}",
        ]
        for line in lines:
            c.drawString(self.margin + 20, y, line)
            y -= 15

        y -= 20
        c.setFont("Helvetica-Bold", 12)
        c.drawString(self.margin, y, "Shift Distribution")
        y -= 20

        self._draw_distribution_chart(c, stats, self.margin + 20, y - 150, 400, 140)
        c.showPage()

    def _draw_distribution_chart(
        self,
        c,
        stats: ScheduleStats,
        x: float,
        y: float,
        width: float,
        height: float,
    ) -> None:
        """Draw a simple bar chart of shift counts."""
        if not stats.shift_distribution:
            c.setFont("Helvetica", 10)
            c.drawString(x, y + height, "No working shifts.")
            return

        items = sorted(stats.shift_distribution.items())
        max_count = max(count for _, count in items) or 1
        bar_width = width / len(items)

        c.setStrokeColorRGB(0, 0, 0)
        c.setLineWidth(1)
        c.line(x, y, x, y + height)  # Y axis
        c.line(x, y, x + width, y)  # X axis

        c.setFont("Helvetica", 8)
        for i, (shift_id, count) in enumerate(items):
            bar_height = (count / max_count) * height
            bar_x = x + i * bar_width
            c.setFillColorRGB(*COLORS.get(shift_id, DEFAULT_SHIFT_COLOR))
            c.rect(bar_x + 4, y, bar_width - 8, bar_height, fill=1, stroke=0)
            c.setFillColorRGB(0, 0, 0)
            c.drawCentredString(bar_x + bar_width / 2, y - 12, shift_id)
            c.drawCentredString(bar_x + bar_width / 2, y + bar_height + 3, str(count))
