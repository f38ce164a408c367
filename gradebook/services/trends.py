from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from gradebook.schemas.grading import ClassPerformance, GradeRecord, Period, TREND_PERIODS, TrendPoint
from gradebook.services.aggregation import GradeTotals, pooled_totals, truncate_one_decimal


def period_label(period: Period) -> str:
    return f"Period {Period(period).value.replace('p', '')}"


def compose_trend(
    periods: Sequence[Period],
    records_by_period: Mapping[Period, Sequence[GradeRecord]],
) -> List[TrendPoint]:
    """
    Pooled average per period, in p1..p6 order.

    Each point is sum(score) / sum(max_score) over every record of the
    period, truncated to one decimal. Periods without records are left out
    of the series rather than reported as zero.
    """
    requested = {Period(period) for period in periods}
    points = []
    for period in TREND_PERIODS:
        if period not in requested:
            continue
        totals = pooled_totals(records_by_period.get(period) or [])
        if totals.total_max <= 0:
            continue
        points.append(TrendPoint(
            period_label=period_label(period),
            average_percentage=truncate_one_decimal(100 * totals.total_score / totals.total_max),
        ))
    return points


def class_performance(
    records: Iterable[GradeRecord],
    student_class_ids: Mapping[int, Optional[int]],
    class_names: Mapping[int, str],
) -> List[ClassPerformance]:
    """Pooled, unrounded percentage per class, best class first."""
    class_totals: Dict[int, GradeTotals] = {}
    for record in records:
        class_id = student_class_ids.get(record.student_id)
        if class_id is None:
            continue
        class_totals.setdefault(class_id, GradeTotals()).add(record.score, record.max_score)

    performance = [
        ClassPerformance(
            class_id=class_id,
            class_name=class_names.get(class_id, "Unknown"),
            average=100 * totals.total_score / totals.total_max if totals.total_max > 0 else 0,
        )
        for class_id, totals in class_totals.items()
    ]
    performance.sort(key=lambda item: item.average, reverse=True)
    return performance
