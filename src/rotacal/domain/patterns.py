"""Standard shift definitions and preset rotation rules.

The QuattroDue rotation is a continuous-cycle 4-2 scheme: four mornings,
two rest days, four nights, two rest days, four afternoons and two rest
days. Nine teams (A to I) follow the same 18-day cycle, each two days
behind the previous one, so that every shift is covered by two teams on
any given day.
"""

from datetime import date, time
from typing import Optional

from rotacal.domain.models import REST, CycleDay, RecurrenceRule, ShiftCode

MORNING = ShiftCode("MORNING", time(5, 0), time(13, 0))
AFTERNOON = ShiftCode("AFTERNOON", time(13, 0), time(21, 0))
NIGHT = ShiftCode("NIGHT", time(21, 0), time(5, 0))
DAY = ShiftCode("DAY", time(9, 0), time(17, 0), break_minutes=60)

STANDARD_SHIFTS: dict[str, ShiftCode] = {
    shift.id: shift for shift in (MORNING, AFTERNOON, NIGHT, DAY)
}

QUATTRODUE_ANCHOR = date(2018, 11, 7)
QUATTRODUE_CYCLE_DAYS = 18

# Team -> days behind team A in the QuattroDue rotation
TEAM_OFFSETS: dict[str, int] = {
    team: index * 2 for index, team in enumerate("ABCDEFGHI")
}


def _block(shift: CycleDay, days: int) -> list[CycleDay]:
    return [shift] * days


QUATTRODUE = RecurrenceRule(
    id="quattrodue",
    anchor_date=QUATTRODUE_ANCHOR,
    cycle_length_days=QUATTRODUE_CYCLE_DAYS,
    cycle_shifts=(
        _block(MORNING, 4)
        + _block(REST, 2)
        + _block(NIGHT, 4)
        + _block(REST, 2)
        + _block(AFTERNOON, 4)
        + _block(REST, 2)
    ),
    name="QuattroDue 4-2",
    description="18-day continuous cycle, 4 working days then 2 rest days",
)

FOUR_ON_TWO_OFF = RecurrenceRule(
    id="four-on-two-off",
    anchor_date=date(2024, 1, 1),
    cycle_length_days=6,
    cycle_shifts=_block(DAY, 4) + _block(REST, 2),
    name="4 on / 2 off",
)

FIVE_DAY_WEEK = RecurrenceRule(
    id="five-day-week",
    # A Monday, so the rest days fall on the weekend
    anchor_date=date(2024, 1, 1),
    cycle_length_days=7,
    cycle_shifts=_block(DAY, 5) + _block(REST, 2),
    name="Five-day week",
)

PRESET_RULES: dict[str, RecurrenceRule] = {
    rule.id: rule for rule in (QUATTRODUE, FOUR_ON_TWO_OFF, FIVE_DAY_WEEK)
}


def team_rule(team: str, base: Optional[RecurrenceRule] = None) -> RecurrenceRule:
    """Get the QuattroDue rotation of one team.

    Args:
        team: Team letter, A to I (case-insensitive).
        base: Base rule to offset; defaults to QUATTRODUE.

    Returns:
        A rule with id ``"<base id>-<team>"`` anchored on the team's first
        morning.

    Raises:
        KeyError: If the team letter is unknown.
    """
    letter = team.upper()
    offset = TEAM_OFFSETS[letter]
    base = base or QUATTRODUE
    return base.shifted(
        offset,
        rule_id=f"{base.id}-{letter}",
        name=f"{base.name} team {letter}",
    )
