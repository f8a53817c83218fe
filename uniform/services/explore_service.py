"""
Explore Service - which units a student can apply to.

Runs the eligibility evaluator over every active unit for the calling
student's academic record.
"""

from collections import defaultdict
from typing import List

from uniform.core.auth import AuthenticatedCaller
from uniform.core.errors import NotFound
from uniform.db.database import fetch_all, fetch_one, get_db_session
from uniform.schemas.schemas import ExploreInstitution, ExploreUnit
from uniform.services.eligibility_service import is_eligible
from uniform.services.profile_service import load_academic_record
from uniform.services.unit_service import UNIT_COLUMNS, is_open, load_requirements
from uniform.utils.dates import as_datetime, utcnow

INSTITUTION_COLUMNS = """
    institution_id, name, short_name, type, ownership, website, address,
    description, established_year, logo_url
"""


def _institution(row: dict, units: List[ExploreUnit]) -> ExploreInstitution:
    return ExploreInstitution(**row, units=units)


class ExploreService:

    def _annotated_units(self, db, caller: AuthenticatedCaller, where: str, params: dict) -> List[tuple]:
        """(institution_id, ExploreUnit) for every active unit matching `where`."""
        record = load_academic_record(db, caller.id)
        rows = fetch_all(db, f"""
            SELECT {UNIT_COLUMNS}
            FROM units u JOIN institutions i ON u.institution_id = i.institution_id
            WHERE u.is_active = :active {where}
            ORDER BY u.name
        """, {"active": True, **params})
        requirements = load_requirements(db, [r["unit_id"] for r in rows])

        now = utcnow()
        return [
            (r["institution_id"], ExploreUnit(
                unit_id=r["unit_id"], name=r["name"], description=r["description"],
                application_deadline=as_datetime(r["application_deadline"]),
                is_active=bool(r["is_active"]), is_open=is_open(r, now),
                eligible=is_eligible(record, requirements.get(r["unit_id"], []))
            ))
            for r in rows
        ]

    def eligible_institutions(self, caller: AuthenticatedCaller) -> List[ExploreInstitution]:
        """Institutions with at least one open unit the student is eligible for, with those units."""
        with get_db_session() as db:
            units = self._annotated_units(db, caller, "", {})
            institutions = fetch_all(db, f"SELECT {INSTITUTION_COLUMNS} FROM institutions ORDER BY name")

        by_institution = defaultdict(list)
        for institution_id, unit in units:
            if unit.is_open and unit.eligible:
                by_institution[institution_id].append(unit)

        return [
            _institution(row, by_institution[row["institution_id"]])
            for row in institutions
            if by_institution[row["institution_id"]]
        ]

    def institution_units(self, caller: AuthenticatedCaller, institution_id: int) -> ExploreInstitution:
        """One institution with every active unit, each flagged eligible / is_open."""
        with get_db_session() as db:
            row = fetch_one(
                db,
                f"SELECT {INSTITUTION_COLUMNS} FROM institutions WHERE institution_id = :iid",
                {"iid": institution_id}
            )
            if not row:
                raise NotFound("Institution not found")
            units = self._annotated_units(db, caller, "AND u.institution_id = :iid", {"iid": institution_id})

        return _institution(row, [unit for _, unit in units])


def get_explore_service() -> ExploreService:
    return ExploreService()
