"""Command-line interface for the rotacal schedule engine."""

import argparse
import json
import logging
import sys
from datetime import date, timedelta
from typing import Optional

from rotacal.domain.categories import ReasonCategory
from rotacal.domain.errors import SchedulingError
from rotacal.domain.models import (
    REST,
    ApprovalStatus,
    ExceptionKind,
    ScheduleAssignment,
    ScheduleStats,
    ShiftException,
    SubjectKind,
)
from rotacal.domain.patterns import (
    AFTERNOON,
    FIVE_DAY_WEEK,
    NIGHT,
    QUATTRODUE_ANCHOR,
    TEAM_OFFSETS,
    team_rule,
)
from rotacal.output.pdf_generator import PDFGenerator
from rotacal.output.text_generator import TextScheduleGenerator
from rotacal.repository.memory import InMemoryWorkScheduleRepository
from rotacal.scheduling.engine import SchedulingEngine
from rotacal.validation.validator import ScheduleValidator

logger = logging.getLogger(__name__)


def create_sample_repository(
    start: Optional[date] = None,
) -> InMemoryWorkScheduleRepository:
    """Create a repository with the nine QuattroDue teams and a few exceptions.

    Args:
        start: First day of the sample exceptions. If None, uses today.
    """
    start = start or date.today()
    repo = InMemoryWorkScheduleRepository()

    for team in TEAM_OFFSETS:
        rule = repo.add_rule(team_rule(team))
        repo.add_assignment(
            ScheduleAssignment(
                id=f"assign-team-{team}",
                subject_id=f"team-{team}",
                start_date=QUATTRODUE_ANCHOR,
                rule_id=rule.id,
            )
        )

    # An office user on a regular week
    repo.add_rule(FIVE_DAY_WEEK)
    repo.add_assignment(
        ScheduleAssignment(
            id="assign-user-1",
            subject_id="user-1",
            start_date=start - timedelta(days=365),
            rule_id=FIVE_DAY_WEEK.id,
            subject_kind=SubjectKind.USER,
        )
    )

    # Team A: three days of vacation, a shift swap and an extra night
    for i in range(3):
        repo.add_exception(
            ShiftException(
                id=f"vacation-A-{i + 1}",
                subject_id="team-A",
                target_date=start + timedelta(days=2 + i),
                kind=ExceptionKind.OVERRIDE,
                reason=ReasonCategory.VACATION,
                shift=REST,
                note="Summer leave",
            )
        )
    repo.add_exception(
        ShiftException(
            id="swap-A-1",
            subject_id="team-A",
            target_date=start + timedelta(days=8),
            kind=ExceptionKind.OVERRIDE,
            reason=ReasonCategory.SHIFT_SWAP,
            shift=AFTERNOON,
        )
    )
    repo.add_exception(
        ShiftException(
            id="compensation-A-1",
            subject_id="team-A",
            target_date=start + timedelta(days=12),
            kind=ExceptionKind.ADD,
            reason=ReasonCategory.COMPENSATION,
            shift=NIGHT,
        )
    )
    # Still waiting for approval: not applied
    repo.add_exception(
        ShiftException(
            id="leave-A-pending",
            subject_id="team-A",
            target_date=start + timedelta(days=20),
            kind=ExceptionKind.OVERRIDE,
            reason=ReasonCategory.SPECIAL_LEAVE,
            shift=REST,
            approval=ApprovalStatus.PENDING,
        )
    )

    return repo


def run_demo(
    subject: str,
    start: date,
    days: int,
    as_json: bool = False,
) -> None:
    """Generate and print a sample schedule."""
    repo = create_sample_repository(start)
    engine = SchedulingEngine(repo)
    end = start + timedelta(days=days - 1)

    schedule = engine.generate_schedule(subject, start, end)

    if as_json:
        print(json.dumps([day.to_dict() for day in schedule], indent=2))
        return

    print(TextScheduleGenerator().generate_to_string(schedule), end="")

    result = ScheduleValidator().validate_schedule(schedule, start, end)
    if result.is_valid:
        print("\n  Validation: PASSED")
    else:
        print(f"\n  Validation: FAILED ({len(result.issues)} issues)")
        for issue in result.issues[:5]:
            print(f"    - {issue}")
    for warning in result.warnings[:5]:
        print(f"    ! {warning}")
    if len(result.warnings) > 5:
        print(f"    ... and {len(result.warnings) - 5} more warnings")


def run_stats(start: date, days: int, subjects: Optional[list[str]] = None) -> None:
    """Print statistics for several subjects."""
    repo = create_sample_repository(start)
    engine = SchedulingEngine(repo)
    end = start + timedelta(days=days - 1)
    subjects = subjects or repo.subjects()

    print(f"Statistics {start.isoformat()} - {end.isoformat()}")
    print(f"{'Subject':<10}{'Work':>6}{'Rest':>6}{'Hours':>8}{'Conflicts':>11}  Shifts")
    for subject_id, schedule in engine.generate_team_schedule(subjects, start, end).items():
        stats = ScheduleStats.calculate(schedule)
        distribution = ", ".join(
            f"{shift_id}={count}"
            for shift_id, count in sorted(stats.shift_distribution.items())
        )
        print(
            f"{subject_id:<10}{stats.working_days:>6}{stats.rest_days:>6}"
            f"{stats.total_work_hours:>8.1f}{stats.conflict_days:>11}  {distribution}"
        )


def run_export(
    subject: str,
    start: date,
    days: int,
    output_path: str,
    fmt: str = "pdf",
) -> None:
    """Export a sample schedule to PDF or text."""
    repo = create_sample_repository(start)
    engine = SchedulingEngine(repo)
    schedule = engine.generate_schedule(subject, start, start + timedelta(days=days - 1))

    print(f"Generating {fmt.upper()}: {output_path}")
    if fmt == "pdf":
        PDFGenerator().generate(schedule, output_path)
    else:
        TextScheduleGenerator().generate(schedule, output_path)
    print("  Export created successfully!")


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date (expected YYYY-MM-DD): {value}")


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="rotacal - Rotating Shift Schedule Engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s demo                          Show team-A for the next 28 days
  %(prog)s demo --subject team-C --days 18
  %(prog)s demo --json                   Print days as JSON

  %(prog)s stats --days 90               Statistics for every sample subject

  %(prog)s export --output team-A.pdf    Month calendar PDF
  %(prog)s export --format text --output team-A.txt
        """,
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    def add_range_arguments(sub: argparse.ArgumentParser, default_days: int) -> None:
        sub.add_argument(
            "--start", "-s",
            type=_parse_date,
            default=None,
            help="First date, YYYY-MM-DD (default: today)",
        )
        sub.add_argument(
            "--days", "-d",
            type=int,
            default=default_days,
            help=f"Number of days (default: {default_days})",
        )

    demo_parser = subparsers.add_parser("demo", help="Generate a sample schedule")
    demo_parser.add_argument(
        "--subject",
        default="team-A",
        help="Team or user id (default: team-A)",
    )
    add_range_arguments(demo_parser, 28)
    demo_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the generated days as JSON",
    )

    stats_parser = subparsers.add_parser("stats", help="Show schedule statistics")
    add_range_arguments(stats_parser, 90)
    stats_parser.add_argument(
        "--subject",
        action="append",
        dest="subjects",
        help="Subject to include (repeatable; default: all)",
    )

    export_parser = subparsers.add_parser("export", help="Export a schedule")
    export_parser.add_argument(
        "--subject",
        default="team-A",
        help="Team or user id (default: team-A)",
    )
    add_range_arguments(export_parser, 31)
    export_parser.add_argument(
        "--output", "-o",
        required=True,
        help="Output file path",
    )
    export_parser.add_argument(
        "--format", "-f",
        dest="fmt",
        default="pdf",
        choices=["pdf", "text"],
        help="Output format (default: pdf)",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 1
    if args.days < 1:
        parser.error("--days must be at least 1")

    start = args.start or date.today()
    try:
        if args.command == "demo":
            run_demo(args.subject, start, args.days, args.json)
        elif args.command == "stats":
            run_stats(start, args.days, args.subjects)
        elif args.command == "export":
            run_export(args.subject, start, args.days, args.output, args.fmt)
    except SchedulingError as e:
        logger.error("%s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
