"""Roll resolution: d20 + modifier against a difficulty class.

Outcome priority, first match wins:

    natural 1       -> critical_failure
    natural 20      -> critical_success
    margin < -10    -> critical_failure
    margin < 0      -> failure
    margin >= 10    -> critical_success
    otherwise       -> success

A natural 1 or 20 decides the outcome regardless of the margin, so a
natural 20 with a -100 modifier is still a critical success.
"""

from __future__ import annotations

from solorpg.models import Outcome, ResolutionResult

CRITICAL_MARGIN = 10

NARRATIVE_GUIDANCE: dict[Outcome, str] = {
    "critical_failure": "Situation worsens significantly. Apply cost and complication.",
    "failure": "Objective not achieved. Apply narrative cost but advance the story.",
    "success": "Objective achieved as intended.",
    "critical_success": "Objective achieved with extra benefit or opportunity.",
}

NARRATIVE_DC_GUIDE: dict[int, str] = {
    10: "Trivial under pressure",
    15: "Common challenge",
    20: "High risk",
    25: "Extremely dangerous",
    30: "Nearly suicidal",
}


def resolve(
    roll: int,
    modifier: int,
    dc: int,
    is_natural_1: bool | None = None,
    is_natural_20: bool | None = None,
) -> ResolutionResult:
    if is_natural_1 is None:
        is_natural_1 = roll == 1
    if is_natural_20 is None:
        is_natural_20 = roll == 20

    total = roll + modifier
    margin = total - dc

    # Natural 1 / natural 20 dominate the margin in both directions
    outcome: Outcome
    if is_natural_1:
        outcome = "critical_failure"
    elif is_natural_20:
        outcome = "critical_success"
    elif margin < -CRITICAL_MARGIN:
        outcome = "critical_failure"
    elif margin < 0:
        outcome = "failure"
    elif margin >= CRITICAL_MARGIN:
        outcome = "critical_success"
    else:
        outcome = "success"

    return ResolutionResult(
        outcome=outcome,
        roll_total=total,
        dc=dc,
        margin=margin,
        narrative_guidance=NARRATIVE_GUIDANCE[outcome],
    )


def is_success(result: ResolutionResult) -> bool:
    return result.outcome in ("success", "critical_success")


def narrative_risk(dc: int) -> str:
    """Label for the guide DC nearest to `dc`. Exact ties go to the lower DC."""
    nearest = min(NARRATIVE_DC_GUIDE, key=lambda guide_dc: (abs(guide_dc - dc), guide_dc))
    return NARRATIVE_DC_GUIDE[nearest]
