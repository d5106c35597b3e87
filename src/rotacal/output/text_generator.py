"""Plain-text schedule output.

This module creates a readable listing of generated days:
- One line per day with its shifts and provenance markers
- Conflict and error details under the affected day
- A summary block with ScheduleStats
"""

from pathlib import Path
from typing import Union

from rotacal.domain.models import (
    DayStatus,
    Provenance,
    ResolvedShift,
    ScheduleStats,
    WorkScheduleDay,
)

STATUS_MARKERS = {
    DayStatus.SCHEDULED: " ",
    DayStatus.REST: " ",
    DayStatus.UNSCHEDULED: "-",
    DayStatus.CONFLICT: "!",
    DayStatus.ERROR: "E",
}


class TextScheduleGenerator:
    """Generates text listings of a subject's schedule.

    Shifts that come from an exception are marked with ``*``.
    """

    def generate(
        self,
        days: list[WorkScheduleDay],
        output_path: Union[str, Path],
        include_summary: bool = True,
    ) -> str:
        """Generate the listing and save it to a file.

        Returns:
            The generated text content.
        """
        content = self.generate_to_string(days, include_summary=include_summary)
        Path(output_path).write_text(content)
        return content

    def generate_to_string(
        self,
        days: list[WorkScheduleDay],
        include_summary: bool = True,
    ) -> str:
        lines = []
        if not days:
            return "No days to display.\n"

        subject = days[0].subject_id
        lines.append("=" * 72)
        lines.append(
            f"SCHEDULE {subject}  {days[0].schedule_date.isoformat()} - "
            f"{days[-1].schedule_date.isoformat()}"
        )
        lines.append("=" * 72)

        for day in days:
            lines.append(self._day_line(day))
            for conflict in day.conflicts:
                lines.append(
                    f"      ! {conflict.severity.name:<8} {conflict.kind.value}: "
                    f"{conflict.message}"
                )
            if day.error:
                lines.append(f"      E {day.error}")

        if include_summary:
            lines.append("")
            lines.extend(self.summary_lines(ScheduleStats.calculate(days)))

        return "\n".join(lines) + "\n"

    def summary_lines(self, stats: ScheduleStats) -> list[str]:
        """Format statistics as text lines."""
        lines = [
            "-" * 72,
            "SUMMARY",
            "-" * 72,
            f"Days:              {stats.total_days}",
            f"Working days:      {stats.working_days} "
            f"({stats.working_day_percentage:.1f}%)",
            f"Rest days:         {stats.rest_days}",
            f"Unscheduled days:  {stats.unscheduled_days}",
            f"Conflict days:     {stats.conflict_days}",
            f"Error days:        {stats.error_days}",
            f"Shifts:            {stats.total_shifts} "
            f"({stats.exception_shifts} from exceptions)",
            f"Work hours:        {stats.total_work_hours:.1f}",
        ]
        if stats.shift_distribution:
            lines.append("Shift distribution:")
            for shift_id, count in sorted(stats.shift_distribution.items()):
                lines.append(f"  {shift_id:<16}{count:>4}")
        return lines

    def _day_line(self, day: WorkScheduleDay) -> str:
        marker = STATUS_MARKERS[day.status]
        label = day.schedule_date.strftime("%a %Y-%m-%d")
        if day.status == DayStatus.ERROR:
            shifts = "ERROR"
        elif not day.shifts:
            shifts = "(no schedule)" if day.status == DayStatus.UNSCHEDULED else "-"
        else:
            shifts = ", ".join(self._shift_label(r) for r in day.shifts)
        return f"{marker} {label}  {shifts}"

    @staticmethod
    def _shift_label(resolved: ResolvedShift) -> str:
        flag = "*" if resolved.provenance == Provenance.FROM_EXCEPTION else ""
        if resolved.is_rest:
            return f"REST{flag}"
        shift = resolved.shift
        return (
            f"{shift.id}{flag} {shift.start_time.strftime('%H:%M')}-"
            f"{shift.end_time.strftime('%H:%M')}"
        )
