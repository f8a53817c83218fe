"""
Eligibility Evaluator

PURPOSE:
Decide whether a student's academic record satisfies a unit's requirement rows.

HOW IT WORKS:
1. Each requirement row is one alternative admission track
2. A row passes when every condition it sets holds:
   - SSC/Dakhil and HSC/Alim streams match (unset row stream = any stream)
   - each GPA meets its minimum, the combined GPA meets its minimum
   - exam years fall inside the row's bounds
3. The unit is open to the student if ANY row passes (OR across rows)
4. A unit with no rows is open to everyone

Missing data on the student fails any condition that needs it: a row with
min_ssc_gpa rejects a student whose SSC GPA is unknown.

Everything here is pure: no database access, no side effects.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

from uniform.schemas.schemas import (
    ExamResult, MadrashaRecord, NationalRecord, RequirementBase, Stream
)

Record = Union[NationalRecord, MadrashaRecord]


@dataclass
class EligibilityResult:
    eligible: bool
    matched_requirement_id: Optional[int] = None
    # requirement id (or row index when unsaved) -> reasons that row failed
    failures: Dict[int, List[str]] = field(default_factory=dict)

    @property
    def reasons(self) -> List[str]:
        return [reason for row in self.failures.values() for reason in row]


# ============================================================
# SINGLE-ROW CHECKS
# ============================================================

def _exam_labels(record: Record) -> tuple:
    if isinstance(record, NationalRecord):
        return "SSC", "HSC"
    if isinstance(record, MadrashaRecord):
        return "Dakhil", "Alim"
    raise TypeError(f"Unsupported academic record: {type(record).__name__}")


def _stream_failure(label: str, required: Optional[Stream], result: ExamResult) -> Optional[str]:
    if required is None:
        return None
    if result.stream != required:
        have = result.stream.value if result.stream else "none"
        return f"{label} stream must be {required.value} (yours: {have})"
    return None


def _gpa_failure(label: str, minimum: Optional[float], gpa: Optional[float]) -> Optional[str]:
    if minimum is None:
        return None
    if gpa is None:
        return f"{label} GPA is missing (minimum {minimum:.2f})"
    if gpa < minimum:
        return f"{label} GPA {gpa:.2f} is below the minimum {minimum:.2f}"
    return None


def _year_failure(label: str, earliest: Optional[int], latest: Optional[int],
                  year: Optional[int]) -> Optional[str]:
    if earliest is None and latest is None:
        return None
    if year is None:
        return f"{label} passing year is missing"
    if earliest is not None and year < earliest:
        return f"{label} passing year {year} is before {earliest}"
    if latest is not None and year > latest:
        return f"{label} passing year {year} is after {latest}"
    return None


def requirement_failures(record: Record, requirement: RequirementBase) -> List[str]:
    """
    Check one requirement row.

    Returns:
        List of human-readable reasons the row rejects the record (empty = passes)
    """
    first_label, second_label = _exam_labels(record)
    first = record.secondary
    second = record.higher_secondary

    if first.gpa is not None and second.gpa is not None:
        combined = first.gpa + second.gpa
    else:
        combined = None

    checks = [
        _stream_failure(first_label, requirement.ssc_stream, first),
        _stream_failure(second_label, requirement.hsc_stream, second),
        _gpa_failure(first_label, requirement.min_ssc_gpa, first.gpa),
        _gpa_failure(second_label, requirement.min_hsc_gpa, second.gpa),
        _gpa_failure("Combined", requirement.min_combined_gpa, combined),
        _year_failure(first_label, requirement.min_ssc_year, requirement.max_ssc_year, first.year),
        _year_failure(second_label, requirement.min_hsc_year, requirement.max_hsc_year, second.year),
    ]
    return [reason for reason in checks if reason]


# ============================================================
# WHOLE-RULESET EVALUATION
# ============================================================

def evaluate(record: Optional[Record], requirements: Sequence[RequirementBase]) -> EligibilityResult:
    """
    Evaluate a record against all of a unit's requirement rows.

    Args:
        record: The student's academic record, None if not filled in yet
        requirements: The unit's requirement rows (may be empty)

    Returns:
        EligibilityResult with the first passing row, or every row's failures
    """
    if not requirements:
        return EligibilityResult(eligible=True)

    if record is None:
        return EligibilityResult(
            eligible=False,
            failures={0: ["Academic information is incomplete: choose an exam path first"]},
        )

    failures: Dict[int, List[str]] = {}
    for index, requirement in enumerate(requirements):
        key = getattr(requirement, "requirement_id", index)
        reasons = requirement_failures(record, requirement)
        if not reasons:
            return EligibilityResult(eligible=True, matched_requirement_id=key)
        failures[key] = reasons

    return EligibilityResult(eligible=False, failures=failures)


def is_eligible(record: Optional[Record], requirements: Sequence[RequirementBase]) -> bool:
    """True if the record satisfies at least one row (or the unit has none)."""
    return evaluate(record, requirements).eligible
