"""
Student Profile Store

A student carries exactly one academic record, chosen by exam_path:
- NATIONAL: SSC / HSC columns
- MADRASHA: Dakhil / Alim columns

The students table has columns for both curricula; the columns of the path
that is not selected are always NULL. record_columns() enforces that on
every write.
"""

from typing import Optional, Union

from uniform.core.errors import NotFound
from uniform.db.database import fetch_one
from uniform.schemas.schemas import (
    MADRASHA_FIELDS, NATIONAL_FIELDS, MadrashaRecord, NationalRecord
)

Record = Union[NationalRecord, MadrashaRecord]

ACADEMIC_COLUMNS = NATIONAL_FIELDS + MADRASHA_FIELDS


def record_from_row(row: dict) -> Optional[Record]:
    """Build the tagged academic record from a students row (None if no exam path yet)."""
    exam_path = row.get("exam_path")
    if exam_path == "NATIONAL":
        return NationalRecord(**{name: row.get(name) for name in NATIONAL_FIELDS})
    if exam_path == "MADRASHA":
        return MadrashaRecord(**{name: row.get(name) for name in MADRASHA_FIELDS})
    return None


def record_columns(record: Record) -> dict:
    """
    Column values for writing a record: the chosen path's fields plus NULL for
    every field of the other path.
    """
    values = {name: None for name in ACADEMIC_COLUMNS}
    for name, value in record.model_dump(exclude={"exam_path"}).items():
        values[name] = value.value if hasattr(value, "value") else value
    values["exam_path"] = record.exam_path
    return values


def load_academic_record(db, student_id: int) -> Optional[Record]:
    """
    Load a student's academic record inside an open session.

    Raises:
        NotFound if the student does not exist
    """
    columns = ", ".join(["exam_path"] + ACADEMIC_COLUMNS)
    row = fetch_one(db, f"SELECT {columns} FROM students WHERE student_id = :id", {"id": student_id})
    if row is None:
        raise NotFound("Student not found")
    return record_from_row(row)
