from typing import List, Mapping, Sequence

from gradebook.schemas.grading import Classification, PassFailSummary, RiskFlag, SubjectAggregate
from gradebook.services.aggregation import GradeTotals, round_half_up

# A student (or a single subject) passes at this percentage or above
PASS_PERCENTAGE = 50
# Failing this many subjects in one period puts a student at risk
AT_RISK_FAILING_SUBJECTS = 3


def failing_subject_count(aggregates: Sequence[SubjectAggregate], pass_percentage: int = PASS_PERCENTAGE) -> int:
    # Compared on the raw ratio, so 49.5% fails even though it displays as 50
    return sum(
        1 for subject in aggregates
        if subject.total_max > 0 and 100 * subject.total_score / subject.total_max < pass_percentage
    )


def classify(
    student_subject_aggregates: Mapping[int, Sequence[SubjectAggregate]],
    pass_percentage: int = PASS_PERCENTAGE,
    at_risk_subjects: int = AT_RISK_FAILING_SUBJECTS,
) -> Classification:
    """
    Split students into passing and failing and flag those at risk.

    The pass/fail decision uses the student's overall ratio across all
    subjects. Students whose subjects carry no maximum score are neither
    passing nor failing.
    """
    passing = set()
    failing = set()
    at_risk: List[RiskFlag] = []

    for student_id, aggregates in student_subject_aggregates.items():
        totals = GradeTotals()
        for subject in aggregates:
            totals.add(subject.total_score, subject.total_max)

        if totals.total_max > 0:
            if 100 * totals.total_score / totals.total_max >= pass_percentage:
                passing.add(student_id)
            else:
                failing.add(student_id)

        failed = failing_subject_count(aggregates, pass_percentage)
        if failed >= at_risk_subjects:
            at_risk.append(RiskFlag(student_id=student_id, failing_subject_count=failed))

    at_risk.sort(key=lambda flag: flag.failing_subject_count, reverse=True)
    return Classification(passing=passing, failing=failing, at_risk=at_risk)


def rate(count: int, total: int) -> int:
    if total <= 0:
        return 0
    return round_half_up(100 * count / total)


def pass_fail_summary(classification: Classification, total_students: int) -> PassFailSummary:
    """
    Pass and fail rates over the whole roster.

    total_students includes students without any grade, so the two rates
    do not add up to 100 when some students are ungraded.
    """
    passing = len(classification.passing)
    failing = len(classification.failing)
    return PassFailSummary(
        total_students=total_students,
        passing_students=passing,
        failing_students=failing,
        pass_rate=rate(passing, total_students),
        fail_rate=rate(failing, total_students),
    )
