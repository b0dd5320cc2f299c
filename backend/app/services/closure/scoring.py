"""
Transparency Scoring Engine

Pure function: ClosureMetrics → TransparencyBreakdown.
No I/O. Same metrics → same breakdown.

Component weights:
    documentation      0-30
    activity           0-25
    goal progress      0-20
    timeliness         0-15
    alerts deduction   -10-0
    bonus              0-10

Only TransparencyBreakdown.total() clamps the final sum to [0, 100].
"""

import math

from app.models.closure import ClosureMetrics, TransparencyBreakdown


# =============================================================================
# CONSTANTS (HARD-LOCKED)
# =============================================================================

DOCUMENTATION_MAX = 30.0
ACTIVITY_MAX = 25.0
GOAL_PROGRESS_MAX = 20.0

# Activities expected per 30-day month of campaign duration
DAYS_PER_MONTH = 30.0
ACTIVITY_OVERSHOOT_DAMPING = 0.2
ACTIVITY_RATIO_CAP = 1.5

# (max average days between activities, points)
TIMELINESS_BANDS = (
    (7.0, 15.0),
    (14.0, 12.0),
    (30.0, 8.0),
)
TIMELINESS_FLOOR = 5.0

POINTS_PER_UNRESOLVED_ALERT = -2.0
ALERTS_DEDUCTION_FLOOR = -10.0

BONUS_CONTRACT = 3.0
BONUS_DONORS = 2.0
BONUS_DONORS_THRESHOLD = 10
BONUS_EXPENSES = 3.0
BONUS_EXPENSE_RATIO = 0.8
BONUS_EARLY_CLOSE = 2.0


# =============================================================================
# COMPONENTS
# =============================================================================

def documentation_score(total_receipts: int, receipts_with_documents: int) -> float:
    """Share of receipts with an attached document. 0 when there are none."""
    if total_receipts <= 0:
        return 0.0
    return receipts_with_documents / total_receipts * DOCUMENTATION_MAX


def expected_activities(metrics: ClosureMetrics) -> int:
    """One activity per started month of campaign duration, at least 1."""
    duration_days = (metrics.campaign_end - metrics.campaign_start).total_seconds() / 86400.0
    months = math.ceil(duration_days / DAYS_PER_MONTH)
    return max(int(months), 1)


def activity_score(total_activities: int, expected: int) -> float:
    """
    Activity volume relative to expectation.

    Overshooting is rewarded at a fifth of the rate and the ratio is capped
    at 1.5, which maps to the full 25 points.
    """
    if total_activities <= 0:
        return 0.0

    ratio = total_activities / max(expected, 1)
    if ratio > 1:
        ratio = 1 + (ratio - 1) * ACTIVITY_OVERSHOOT_DAMPING
    if ratio > ACTIVITY_RATIO_CAP:
        ratio = ACTIVITY_RATIO_CAP

    return min(ratio * ACTIVITY_MAX / ACTIVITY_RATIO_CAP, ACTIVITY_MAX)


def goal_progress_score(total_raised: float, campaign_goal: float) -> float:
    """Piecewise-linear on raised/goal, continuous at 0.5, 0.75 and 1."""
    if campaign_goal <= 0:
        return 0.0

    ratio = total_raised / campaign_goal
    if ratio >= 1:
        return GOAL_PROGRESS_MAX
    if ratio >= 0.75:
        return 15.0 + (ratio - 0.75) * 20.0
    if ratio >= 0.5:
        return 10.0 + (ratio - 0.5) * 20.0
    return ratio * 20.0


def timeliness_score(average_days_between_activities: float) -> float:
    for max_days, points in TIMELINESS_BANDS:
        if average_days_between_activities <= max_days:
            return points
    return TIMELINESS_FLOOR


def alerts_deduction_score(alerts_count: int, alerts_resolved: int) -> float:
    if alerts_count <= 0:
        return 0.0
    unresolved = alerts_count - alerts_resolved
    return max(unresolved * POINTS_PER_UNRESOLVED_ALERT, ALERTS_DEDUCTION_FLOOR)


def bonus_score(metrics: ClosureMetrics, closed_before_end_date: bool) -> float:
    """
    Additive bonus. The four contributions sum to exactly 10, so no cap is
    applied here.
    """
    bonus = 0.0
    if metrics.has_contract:
        bonus += BONUS_CONTRACT
    if metrics.total_donors >= BONUS_DONORS_THRESHOLD:
        bonus += BONUS_DONORS
    if metrics.total_raised > 0 and metrics.total_expenses > 0:
        if metrics.total_expenses / metrics.total_raised >= BONUS_EXPENSE_RATIO:
            bonus += BONUS_EXPENSES
    if closed_before_end_date:
        bonus += BONUS_EARLY_CLOSE
    return bonus


# =============================================================================
# ENGINE
# =============================================================================

def calculate_transparency_score(metrics: ClosureMetrics, closed_before_end_date: bool) -> TransparencyBreakdown:
    """
    Compute the six-component breakdown for a campaign.

    Args:
        metrics: Aggregated closure metrics
        closed_before_end_date: True if the campaign closed before its declared end date

    Returns:
        TransparencyBreakdown; call .total() for the clamped score
    """
    return TransparencyBreakdown(
        documentation_score=documentation_score(metrics.total_receipts, metrics.receipts_with_documents),
        activity_score=activity_score(metrics.total_activities, expected_activities(metrics)),
        goal_progress_score=goal_progress_score(metrics.total_raised, metrics.campaign_goal),
        timeliness_score=timeliness_score(metrics.average_days_between_activities),
        alerts_deduction_score=alerts_deduction_score(metrics.alerts_count, metrics.alerts_resolved),
        bonus_score=bonus_score(metrics, closed_before_end_date),
    )


def goal_percentage(total_raised: float, campaign_goal: float) -> float:
    """raised/goal as a percentage, capped at 100. 0 when goal <= 0."""
    if campaign_goal <= 0:
        return 0.0
    return min(total_raised / campaign_goal * 100.0, 100.0)


def score_label(score: float) -> str:
    """Human label for a total score, used on the audit document."""
    if score >= 80:
        return "Excelente"
    if score >= 60:
        return "Bueno"
    if score >= 40:
        return "Regular"
    return "Necesita mejoras"
