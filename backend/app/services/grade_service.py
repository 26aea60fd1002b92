"""
Grade arithmetic for semester grade cards.

Theory and practical subjects use different cut-offs below grade C.
GPA and CGPA are credit-weighted averages of grade points, rounded to 2
decimals; no credit means 0.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Set, Tuple

from app.models import ClassType

EXTERNAL_WEIGHT = 70

THEORY_SCALE: List[Tuple[float, str, int]] = [
    (90, "S", 10),
    (80, "A", 9),
    (70, "B", 8),
    (60, "C", 7),
    (50, "D", 6),
    (40, "E", 5),
]

PRACTICAL_SCALE: List[Tuple[float, str, int]] = [
    (90, "S", 10),
    (80, "A", 9),
    (70, "B", 8),
    (60, "C", 7),
    (55, "D", 6),
    (50, "E", 5),
]

FAIL = ("F", 0)


@dataclass
class SubjectResult:
    total: float
    grade: str
    grade_point: int
    credit: float
    quality_point: float


@dataclass
class SemesterTotals:
    total_credit: float
    total_quality_point: float
    gpa: float


def grade_for(total: float, class_type: ClassType) -> Tuple[str, int]:
    scale = PRACTICAL_SCALE if class_type == ClassType.PRACTICAL else THEORY_SCALE
    for threshold, grade, point in scale:
        if total >= threshold:
            return grade, point
    return FAIL


def grade_subject(internal: float, external: float, credit: float, class_type: ClassType) -> SubjectResult:
    total = internal + external
    grade, point = grade_for(total, class_type)
    return SubjectResult(
        total=total,
        grade=grade,
        grade_point=point,
        credit=credit,
        quality_point=credit * point,
    )


def weighted_average(total_quality: float, total_credit: float) -> float:
    if total_credit <= 0:
        return 0.0
    return round(total_quality / total_credit, 2)


def semester_totals(results: Iterable[SubjectResult]) -> SemesterTotals:
    total_credit = 0.0
    total_quality = 0.0
    for result in results:
        total_credit += result.credit
        total_quality += result.quality_point
    return SemesterTotals(
        total_credit=total_credit,
        total_quality_point=total_quality,
        gpa=weighted_average(total_quality, total_credit),
    )


def cumulative_gpa(current: SemesterTotals, previous: Iterable[Tuple[Optional[float], Optional[float]]]) -> float:
    """
    CGPA over the current semester and earlier ones.

    previous holds (total_credit, total_quality_point) per earlier card;
    cards that were never graded (None totals) are skipped.
    """
    credits = current.total_credit
    quality = current.total_quality_point
    for past_credit, past_quality in previous:
        if past_credit is None or past_quality is None:
            continue
        credits += past_credit
        quality += past_quality
    return weighted_average(quality, credits)


def scale_external(achieved: float, full_marks: float) -> int:
    """Scale a semester exam score to the 70-mark external component"""
    if full_marks <= 0:
        raise ValueError("full_marks must be positive")
    # halves round up, unlike round()
    return int(achieved / full_marks * EXTERNAL_WEIGHT + 0.5)


def card_number(enrollment_no: str, semester_number: int, counter: int) -> str:
    """GC + admission year + branch code (both read from the enrollment number) + semester + counter"""
    year = enrollment_no[1:3]
    branch = enrollment_no[5:7]
    return f"GC{year}{branch}{semester_number}{counter:03d}"


def next_card_number(enrollment_no: str, semester_number: int, taken: Set[str]) -> str:
    """Lowest-counter card number not yet in taken; adds it to taken"""
    counter = 1
    while True:
        candidate = card_number(enrollment_no, semester_number, counter)
        if candidate not in taken:
            taken.add(candidate)
            return candidate
        counter += 1
