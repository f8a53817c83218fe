"""
Unit Eligibility Ruleset

Units belong to one institution and carry zero or more requirement rows
(alternative admission tracks). Institution admins manage them here; the
application register and the explore endpoints read them through
load_unit() / load_requirements().
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import DateTime

from uniform.core.auth import AuthenticatedCaller
from uniform.core.errors import Forbidden, NotFound, ValidationError
from uniform.db.database import fetch_all, fetch_one, get_db_session, is_postgres, typed_text
from uniform.schemas.schemas import (
    RequirementCreate, UnitCreate, UnitExamDetails, UnitListResponse,
    UnitRequirement, UnitResponse, UnitUpdate
)
from uniform.utils.dates import as_datetime, to_naive_utc, utcnow

logger = logging.getLogger(__name__)

UNIT_COLUMNS = """
    u.unit_id, u.institution_id, i.name AS institution_name, u.name, u.description,
    u.is_active, u.application_deadline, u.max_applications, u.auto_close_after_deadline,
    u.exam_date, u.exam_time, u.exam_center, u.created_at, u.updated_at,
    (SELECT COUNT(*) FROM applications a WHERE a.unit_id = u.unit_id) AS application_count
"""

REQUIREMENT_FIELDS = [
    "ssc_stream", "hsc_stream", "min_ssc_gpa", "min_hsc_gpa", "min_combined_gpa",
    "min_ssc_year", "max_ssc_year", "min_hsc_year", "max_hsc_year",
]

# Unit columns a partial update may set back to NULL
NULLABLE_UNIT_FIELDS = {"description", "max_applications"}


# ============================================================
# READ HELPERS (shared with the application register)
# ============================================================

def load_unit(db, unit_id: int, lock: bool = False) -> Optional[dict]:
    """
    Fetch one unit row with its institution name and application count.

    With lock=True the unit row is locked for the rest of the transaction on
    PostgreSQL, which serializes concurrent submissions to the same unit.
    """
    if lock and is_postgres(db):
        db.execute(typed_text("SELECT unit_id FROM units WHERE unit_id = :uid FOR UPDATE"), {"uid": unit_id})
    return fetch_one(db, f"""
        SELECT {UNIT_COLUMNS}
        FROM units u JOIN institutions i ON u.institution_id = i.institution_id
        WHERE u.unit_id = :uid
    """, {"uid": unit_id})


def load_requirements(db, unit_ids: Iterable[int]) -> Dict[int, List[UnitRequirement]]:
    """Requirement rows grouped by unit id."""
    unit_ids = list(unit_ids)
    grouped: Dict[int, List[UnitRequirement]] = defaultdict(list)
    if not unit_ids:
        return grouped

    placeholders = ", ".join(f":u{i}" for i in range(len(unit_ids)))
    params = {f"u{i}": unit_id for i, unit_id in enumerate(unit_ids)}
    rows = fetch_all(db, f"""
        SELECT requirement_id, unit_id, {", ".join(REQUIREMENT_FIELDS)}
        FROM unit_requirements
        WHERE unit_id IN ({placeholders})
        ORDER BY requirement_id
    """, params)
    for r in rows:
        grouped[r["unit_id"]].append(UnitRequirement(**r))
    return grouped


def is_past_deadline(unit: dict, now: Optional[datetime] = None) -> bool:
    """True if the unit closes automatically and its deadline has passed."""
    deadline = as_datetime(unit.get("application_deadline"))
    if deadline is None or not unit.get("auto_close_after_deadline"):
        return False
    return deadline < (now or utcnow())


def is_open(unit: dict, now: Optional[datetime] = None) -> bool:
    """Active and not auto-closed by its deadline. Capacity is checked at submit time."""
    return bool(unit.get("is_active")) and not is_past_deadline(unit, now)


def unit_response(row: dict, requirements: List[UnitRequirement]) -> UnitResponse:
    return UnitResponse(
        unit_id=row["unit_id"], institution_id=row["institution_id"],
        institution_name=row.get("institution_name"), name=row["name"],
        description=row["description"], is_active=bool(row["is_active"]),
        application_deadline=as_datetime(row["application_deadline"]),
        max_applications=row["max_applications"],
        auto_close_after_deadline=bool(row["auto_close_after_deadline"]),
        exam_date=as_datetime(row["exam_date"]), exam_time=row["exam_time"],
        exam_center=row["exam_center"], requirements=requirements,
        application_count=row.get("application_count") or 0,
        created_at=as_datetime(row["created_at"]), updated_at=as_datetime(row["updated_at"])
    )


# ============================================================
# UNIT SERVICE
# ============================================================

class UnitService:
    """
    Unit and requirement management for institution admins.

    Every operation is scoped to caller.institution_id; touching another
    institution's unit raises Forbidden.
    """

    def _owned_unit(self, db, caller: AuthenticatedCaller, unit_id: int, lock: bool = False) -> dict:
        unit = load_unit(db, unit_id, lock=lock)
        if not unit:
            raise NotFound("Unit not found")
        if unit["institution_id"] != caller.institution_id:
            raise Forbidden("Not authorized to manage this unit")
        return unit

    def _check_name_available(self, db, institution_id: int, name: str, exclude_unit_id: Optional[int] = None):
        sql = "SELECT unit_id FROM units WHERE institution_id = :iid AND LOWER(name) = LOWER(:name)"
        params = {"iid": institution_id, "name": name}
        if exclude_unit_id is not None:
            sql += " AND unit_id <> :uid"
            params["uid"] = exclude_unit_id
        if fetch_one(db, sql, params):
            raise ValidationError("Unit name already exists")

    @staticmethod
    def _check_combinations(requirements: List[RequirementCreate], existing: Iterable[str] = ()):
        seen = set(existing)
        for requirement in requirements:
            combo = requirement.stream_combination
            if combo in seen:
                raise ValidationError(f"Duplicate stream combination detected: {combo}")
            seen.add(combo)

    @staticmethod
    def _insert_requirements(db, unit_id: int, requirements: List[RequirementCreate]):
        for requirement in requirements:
            values = requirement.model_dump()
            params = {
                name: (value.value if hasattr(value, "value") else value)
                for name, value in values.items()
            }
            params["unit_id"] = unit_id
            db.execute(
                typed_text(f"""
                    INSERT INTO unit_requirements (unit_id, {", ".join(REQUIREMENT_FIELDS)})
                    VALUES (:unit_id, {", ".join(":" + f for f in REQUIREMENT_FIELDS)})
                """),
                params
            )

    def _response(self, db, unit_id: int) -> UnitResponse:
        row = load_unit(db, unit_id)
        requirements = load_requirements(db, [unit_id])
        return unit_response(row, requirements.get(unit_id, []))

    def create_unit(self, caller: AuthenticatedCaller, data: UnitCreate) -> UnitResponse:
        """Create a unit with its requirement rows in one transaction."""
        self._check_combinations(data.requirements)

        with get_db_session() as db:
            self._check_name_available(db, caller.institution_id, data.name)
            now = utcnow()
            result = db.execute(
                typed_text("""
                    INSERT INTO units (institution_id, name, description, is_active, application_deadline,
                        max_applications, auto_close_after_deadline, exam_date, exam_time, exam_center,
                        created_at, updated_at)
                    VALUES (:iid, :name, :description, :is_active, :deadline,
                        :max_applications, :auto_close, :exam_date, :exam_time, :exam_center,
                        :now, :now)
                    RETURNING unit_id
                """, deadline=DateTime, exam_date=DateTime, now=DateTime),
                {
                    "iid": caller.institution_id, "name": data.name, "description": data.description,
                    "is_active": data.is_active, "deadline": to_naive_utc(data.application_deadline),
                    "max_applications": data.max_applications,
                    "auto_close": data.auto_close_after_deadline,
                    "exam_date": to_naive_utc(data.exam_date), "exam_time": data.exam_time,
                    "exam_center": data.exam_center, "now": now
                }
            )
            unit_id = result.fetchone()[0]
            self._insert_requirements(db, unit_id, data.requirements)
            response = self._response(db, unit_id)

        logger.info("Unit %s '%s' created in institution %s with %d requirement(s)",
                    unit_id, data.name, caller.institution_id, len(data.requirements))
        return response

    def list_units(self, caller: AuthenticatedCaller, page: int = 1, page_size: int = 20) -> UnitListResponse:
        offset = (page - 1) * page_size
        with get_db_session() as db:
            total = db.execute(
                typed_text("SELECT COUNT(*) FROM units WHERE institution_id = :iid"),
                {"iid": caller.institution_id}
            ).scalar()
            rows = fetch_all(db, f"""
                SELECT {UNIT_COLUMNS}
                FROM units u JOIN institutions i ON u.institution_id = i.institution_id
                WHERE u.institution_id = :iid
                ORDER BY u.created_at DESC, u.unit_id DESC
                LIMIT {page_size} OFFSET {offset}
            """, {"iid": caller.institution_id})
            requirements = load_requirements(db, [r["unit_id"] for r in rows])

        units = [unit_response(r, requirements.get(r["unit_id"], [])) for r in rows]
        return UnitListResponse(units=units, total=total, page=page, page_size=page_size)

    def get_unit(self, caller: AuthenticatedCaller, unit_id: int) -> UnitResponse:
        with get_db_session() as db:
            self._owned_unit(db, caller, unit_id)
            return self._response(db, unit_id)

    def update_unit(self, caller: AuthenticatedCaller, unit_id: int, data: UnitUpdate) -> UnitResponse:
        """
        Partial update. A supplied requirement list replaces all existing rows.
        An explicit null clears description, max_applications or
        application_deadline; it is ignored for the other fields.
        """
        supplied = data.model_dump(exclude_unset=True)
        if data.requirements is not None:
            self._check_combinations(data.requirements)

        deadline = to_naive_utc(data.application_deadline)
        if deadline is not None and deadline <= utcnow():
            raise ValidationError("Application deadline must be in the future")

        with get_db_session() as db:
            self._owned_unit(db, caller, unit_id, lock=True)
            if data.name:
                self._check_name_available(db, caller.institution_id, data.name, exclude_unit_id=unit_id)

            updates = []
            params = {"uid": unit_id, "now": utcnow()}
            for field in ["name", "description", "is_active", "max_applications", "auto_close_after_deadline"]:
                if field not in supplied:
                    continue
                value = getattr(data, field)
                if value is not None or field in NULLABLE_UNIT_FIELDS:
                    updates.append(f"{field} = :{field}")
                    params[field] = value
            if "application_deadline" in supplied:
                updates.append("application_deadline = :deadline")
                params["deadline"] = deadline

            db.execute(
                typed_text(
                    f"UPDATE units SET {', '.join(updates + ['updated_at = :now'])} WHERE unit_id = :uid",
                    now=DateTime, deadline=DateTime
                ),
                params
            )

            if data.requirements is not None:
                db.execute(typed_text("DELETE FROM unit_requirements WHERE unit_id = :uid"), {"uid": unit_id})
                self._insert_requirements(db, unit_id, data.requirements)

            response = self._response(db, unit_id)

        logger.info("Unit %s updated by admin %s", unit_id, caller.id)
        return response

    def add_requirements(self, caller: AuthenticatedCaller, unit_id: int,
                         requirements: List[RequirementCreate]) -> UnitResponse:
        with get_db_session() as db:
            self._owned_unit(db, caller, unit_id, lock=True)
            existing = load_requirements(db, [unit_id]).get(unit_id, [])
            self._check_combinations(requirements, existing=(r.stream_combination for r in existing))
            self._insert_requirements(db, unit_id, requirements)
            return self._response(db, unit_id)

    def remove_requirement(self, caller: AuthenticatedCaller, unit_id: int, requirement_id: int) -> UnitResponse:
        with get_db_session() as db:
            self._owned_unit(db, caller, unit_id)
            result = db.execute(
                typed_text("DELETE FROM unit_requirements WHERE requirement_id = :rid AND unit_id = :uid"),
                {"rid": requirement_id, "uid": unit_id}
            )
            if result.rowcount == 0:
                raise NotFound("Requirement not found")
            return self._response(db, unit_id)

    def set_exam_details(self, caller: AuthenticatedCaller, unit_id: int, data: UnitExamDetails) -> UnitResponse:
        """Unit-level exam schedule; used as the default when approving applications."""
        supplied = data.model_dump(exclude_unset=True)
        with get_db_session() as db:
            unit = self._owned_unit(db, caller, unit_id)
            db.execute(
                typed_text("""
                    UPDATE units SET exam_date = :exam_date, exam_time = :exam_time,
                        exam_center = :exam_center, updated_at = :now
                    WHERE unit_id = :uid
                """, exam_date=DateTime, now=DateTime),
                {
                    "uid": unit_id, "now": utcnow(),
                    "exam_date": to_naive_utc(supplied["exam_date"]) if "exam_date" in supplied
                    else as_datetime(unit["exam_date"]),
                    "exam_time": supplied.get("exam_time", unit["exam_time"]),
                    "exam_center": supplied.get("exam_center", unit["exam_center"]),
                }
            )
            return self._response(db, unit_id)

    def delete_unit(self, caller: AuthenticatedCaller, unit_id: int) -> None:
        """Delete a unit and its requirement rows. Refused while applications exist."""
        with get_db_session() as db:
            unit = self._owned_unit(db, caller, unit_id, lock=True)
            if unit["application_count"]:
                raise ValidationError("Unable to delete unit. Please remove related applications first.")
            db.execute(typed_text("DELETE FROM units WHERE unit_id = :uid"), {"uid": unit_id})
        logger.info("Unit %s deleted by admin %s", unit_id, caller.id)


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_unit_service() -> UnitService:
    """Get unit service instance."""
    return UnitService()
