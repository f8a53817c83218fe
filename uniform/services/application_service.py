"""
Application Register

Submit / list / detail for applications linking student -> unit -> institution.

CONSISTENCY:
- At most one application per (student, unit): enforced by the
  uq_applications_student_unit index. A concurrent duplicate loses at the
  index and its IntegrityError is reported as DuplicateApplication.
- Capacity (max_applications): the unit row is locked (PostgreSQL) and the
  insert is guarded by the current count in the same statement, so two
  submissions cannot both take the last seat.
- Everything for one submission happens in one transaction; any failure
  rolls it back.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlalchemy import DateTime
from sqlalchemy.exc import IntegrityError

from uniform.core.auth import AuthenticatedCaller
from uniform.core.errors import (
    DuplicateApplication, Forbidden, NotEligible, NotFound, UnitClosed, ValidationError
)
from uniform.db.database import fetch_all, fetch_one, get_db_session, typed_text
from uniform.schemas.schemas import (
    AdmitCardResponse, ApplicantSummary, ApplicationCreate, ApplicationDetail,
    ApplicationGroup, ApplicationListItem, ApplicationListResponse,
    ApplicationResponse, ApplicationStatus, ExamPath, Medium, StudentApplicationResponse
)
from uniform.services.eligibility_service import evaluate
from uniform.services.profile_service import ACADEMIC_COLUMNS, load_academic_record, record_from_row
from uniform.services.unit_service import is_past_deadline, load_requirements, load_unit
from uniform.utils.dates import as_date, as_datetime, utcnow

logger = logging.getLogger(__name__)

APPLICATION_COLUMNS = """
    a.application_id, a.student_id, a.unit_id, a.institution_id, a.applied_at,
    a.center_preference, a.reviewed_at, a.seat_no, a.exam_date, a.exam_time,
    a.exam_center, a.notes
"""

# Division names that are spelled two ways on admission forms
CENTER_SYNONYMS = {
    "chattogram": ["chittagong"],
    "chittagong": ["chattogram"],
    "barishal": ["barisal"],
    "barisal": ["barishal"],
}


@dataclass
class ApplicationFilter:
    unit_id: Optional[int] = None
    exam_path: Optional[ExamPath] = None
    medium: Optional[Medium] = None
    board: Optional[str] = None
    status: Optional[ApplicationStatus] = None
    center: Optional[str] = None
    search: Optional[str] = None


def like_escape(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally (pair with ESCAPE '\\')."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def application_status(reviewed_at) -> ApplicationStatus:
    return ApplicationStatus.approved if reviewed_at else ApplicationStatus.under_review


def application_fields(r: dict) -> dict:
    return dict(
        application_id=r["application_id"], student_id=r["student_id"], unit_id=r["unit_id"],
        institution_id=r["institution_id"], applied_at=as_datetime(r["applied_at"]),
        center_preference=r["center_preference"], status=application_status(r["reviewed_at"]),
        reviewed_at=as_datetime(r["reviewed_at"]), seat_no=r["seat_no"],
        exam_date=as_datetime(r["exam_date"]), exam_time=r["exam_time"],
        exam_center=r["exam_center"], notes=r["notes"]
    )


def load_application(db, application_id: int) -> Optional[dict]:
    return fetch_one(
        db,
        f"SELECT {APPLICATION_COLUMNS} FROM applications a WHERE a.application_id = :aid",
        {"aid": application_id}
    )


class ApplicationService:
    """
    Application register for students (submit, own list, withdraw, admit card)
    and institution admins (filtered list, detail).
    """

    # ------------------------------------------------------------
    # Student side
    # ------------------------------------------------------------

    def submit(self, caller: AuthenticatedCaller, data: ApplicationCreate) -> ApplicationResponse:
        """
        Submit an application for the calling student.

        Raises:
            NotFound: unit does not exist
            UnitClosed: unit inactive, past an auto-closing deadline, or full
            NotEligible: the student's record satisfies none of the unit's rows
            DuplicateApplication: the student already applied to this unit
        """
        unit_id = data.unit_id
        center = data.center_preference.strip() if data.center_preference else None

        with get_db_session() as db:
            unit = load_unit(db, unit_id, lock=True)
            if not unit:
                raise NotFound("Unit not found")
            if not unit["is_active"]:
                raise UnitClosed("Unit is not accepting applications")

            now = utcnow()
            if is_past_deadline(unit, now):
                raise UnitClosed("Application deadline has passed")

            record = load_academic_record(db, caller.id)
            requirements = load_requirements(db, [unit_id]).get(unit_id, [])
            result = evaluate(record, requirements)
            if not result.eligible:
                raise NotEligible(reasons=result.reasons)

            existing = fetch_one(
                db,
                "SELECT application_id FROM applications WHERE student_id = :sid AND unit_id = :uid",
                {"sid": caller.id, "uid": unit_id}
            )
            if existing:
                raise DuplicateApplication()

            params = {
                "sid": caller.id, "uid": unit_id, "iid": unit["institution_id"],
                "now": now, "center": center
            }
            if unit["max_applications"] is None:
                sql = """
                    INSERT INTO applications (student_id, unit_id, institution_id, applied_at, center_preference)
                    VALUES (:sid, :uid, :iid, :now, :center)
                    RETURNING application_id
                """
            else:
                # Guarded insert: writes nothing once the unit is full
                sql = """
                    INSERT INTO applications (student_id, unit_id, institution_id, applied_at, center_preference)
                    SELECT :sid, :uid, :iid, :now, :center
                    WHERE (SELECT COUNT(*) FROM applications WHERE unit_id = :uid) < :max_applications
                    RETURNING application_id
                """
                params["max_applications"] = unit["max_applications"]

            try:
                row = db.execute(typed_text(sql, now=DateTime), params).fetchone()
            except IntegrityError as exc:
                raise DuplicateApplication() from exc

            if row is None:
                raise UnitClosed("Unit has reached its maximum number of applications")
            application_id = row[0]

        logger.info("Student %s applied to unit %s (application %s)", caller.id, unit_id, application_id)
        return ApplicationResponse(
            application_id=application_id, student_id=caller.id, unit_id=unit_id,
            institution_id=unit["institution_id"], applied_at=now, center_preference=center,
            status=ApplicationStatus.under_review, reviewed_at=None
        )

    def list_for_student(self, caller: AuthenticatedCaller) -> List[StudentApplicationResponse]:
        with get_db_session() as db:
            rows = fetch_all(db, f"""
                SELECT {APPLICATION_COLUMNS}, u.name AS unit_name, i.name AS institution_name,
                       i.logo_url AS institution_logo_url
                FROM applications a
                JOIN units u ON a.unit_id = u.unit_id
                JOIN institutions i ON a.institution_id = i.institution_id
                WHERE a.student_id = :sid
                ORDER BY a.applied_at DESC, a.application_id DESC
            """, {"sid": caller.id})

        return [
            StudentApplicationResponse(
                **application_fields(r), unit_name=r["unit_name"],
                institution_name=r["institution_name"], institution_logo_url=r["institution_logo_url"]
            ) for r in rows
        ]

    def _own_application(self, db, caller: AuthenticatedCaller, application_id: int) -> dict:
        app = load_application(db, application_id)
        if not app or app["student_id"] != caller.id:
            raise NotFound("Application not found")
        return app

    def withdraw(self, caller: AuthenticatedCaller, application_id: int) -> None:
        """Student withdraws an application that has not been approved yet."""
        with get_db_session() as db:
            app = self._own_application(db, caller, application_id)
            if app["reviewed_at"]:
                raise ValidationError("Approved applications cannot be withdrawn")
            db.execute(typed_text("DELETE FROM applications WHERE application_id = :aid"), {"aid": application_id})
        logger.info("Student %s withdrew application %s", caller.id, application_id)

    def admit_card(self, caller: AuthenticatedCaller, application_id: int) -> AdmitCardResponse:
        with get_db_session() as db:
            app = self._own_application(db, caller, application_id)
            if not app["reviewed_at"]:
                raise ValidationError("Admit card is available once the application is approved")
            names = fetch_one(db, """
                SELECT s.full_name, s.exam_path, u.name AS unit_name, i.name AS institution_name
                FROM applications a
                JOIN students s ON a.student_id = s.student_id
                JOIN units u ON a.unit_id = u.unit_id
                JOIN institutions i ON a.institution_id = i.institution_id
                WHERE a.application_id = :aid
            """, {"aid": application_id})

        return AdmitCardResponse(
            application_id=application_id, student_name=names["full_name"],
            exam_path=names["exam_path"], institution_name=names["institution_name"],
            unit_name=names["unit_name"], seat_no=app["seat_no"],
            exam_date=as_datetime(app["exam_date"]), exam_time=app["exam_time"],
            exam_center=app["exam_center"], approved_at=as_datetime(app["reviewed_at"])
        )

    # ------------------------------------------------------------
    # Institution-admin side
    # ------------------------------------------------------------

    @staticmethod
    def _filter_sql(filters: ApplicationFilter, params: dict) -> str:
        clauses = []
        if filters.unit_id:
            clauses.append("a.unit_id = :unit_id")
            params["unit_id"] = filters.unit_id
        if filters.search:
            clauses.append(
                "(LOWER(s.full_name) LIKE :search ESCAPE '\\' OR LOWER(s.email) LIKE :search ESCAPE '\\' "
                "OR LOWER(u.name) LIKE :search ESCAPE '\\')"
            )
            params["search"] = f"%{like_escape(filters.search.strip().lower())}%"
        if filters.status is ApplicationStatus.approved:
            clauses.append("a.reviewed_at IS NOT NULL")
        elif filters.status is ApplicationStatus.under_review:
            clauses.append("a.reviewed_at IS NULL")
        if filters.center:
            center = filters.center.strip().lower()
            terms = [center] + CENTER_SYNONYMS.get(center, [])
            options = []
            for n, term in enumerate(terms):
                options.append(f"LOWER(a.exam_center) LIKE :center{n} ESCAPE '\\'")
                options.append(f"LOWER(a.center_preference) LIKE :center{n} ESCAPE '\\'")
                params[f"center{n}"] = f"%{like_escape(term)}%"
            clauses.append(f"({' OR '.join(options)})")
        if filters.exam_path:
            clauses.append("s.exam_path = :exam_path")
            params["exam_path"] = filters.exam_path.value
        if filters.medium:
            clauses.append("s.medium = :medium")
            params["medium"] = filters.medium.value
        if filters.board:
            clauses.append(
                "(s.ssc_board = :board OR s.hsc_board = :board OR s.dakhil_board = :board OR s.alim_board = :board)"
            )
            params["board"] = filters.board.strip()
        return "".join(f" AND {clause}" for clause in clauses)

    def list_for_institution(
        self,
        caller: AuthenticatedCaller,
        filters: ApplicationFilter,
        page: int = 1,
        page_size: int = 20
    ) -> ApplicationListResponse:
        """
        Applications of the caller's institution, newest first, grouped by unit.
        Pagination applies to applications, not groups.
        """
        params = {"iid": caller.institution_id}
        base = """
            FROM applications a
            JOIN units u ON a.unit_id = u.unit_id
            JOIN students s ON a.student_id = s.student_id
            WHERE a.institution_id = :iid
        """ + self._filter_sql(filters, params)

        offset = (page - 1) * page_size
        with get_db_session() as db:
            total = db.execute(typed_text(f"SELECT COUNT(*) {base}"), params).scalar()
            rows = fetch_all(db, f"""
                SELECT {APPLICATION_COLUMNS}, u.name AS unit_name, s.full_name AS student_name,
                       s.email AS student_email, s.phone AS student_phone, s.exam_path, s.medium,
                       s.ssc_board, s.hsc_board, s.dakhil_board, s.alim_board
                {base}
                ORDER BY a.applied_at DESC, a.application_id DESC
                LIMIT {page_size} OFFSET {offset}
            """, params)

        groups: Dict[int, ApplicationGroup] = {}
        for r in rows:
            madrasha = r["exam_path"] == ExamPath.madrasha.value
            item = ApplicationListItem(
                **application_fields(r), unit_name=r["unit_name"],
                student_name=r["student_name"], student_email=r["student_email"],
                student_phone=r["student_phone"], exam_path=r["exam_path"], medium=r["medium"],
                secondary_board=r["dakhil_board"] if madrasha else r["ssc_board"],
                higher_secondary_board=r["alim_board"] if madrasha else r["hsc_board"]
            )
            group = groups.setdefault(
                r["unit_id"], ApplicationGroup(unit_id=r["unit_id"], unit_name=r["unit_name"], applications=[])
            )
            group.applications.append(item)

        return ApplicationListResponse(groups=list(groups.values()), total=total, page=page, page_size=page_size)

    def get_by_id(self, caller: AuthenticatedCaller, application_id: int) -> ApplicationDetail:
        """Full review-panel view: application, applicant's academic record, unit and institution."""
        student_columns = ", ".join(f"s.{column}" for column in ACADEMIC_COLUMNS)
        with get_db_session() as db:
            r = fetch_one(db, f"""
                SELECT {APPLICATION_COLUMNS}, u.name AS unit_name, u.description AS unit_description,
                       i.name AS institution_name, i.short_name AS institution_short_name,
                       s.full_name, s.email, s.phone, s.address, s.dob, s.exam_path, s.medium,
                       {student_columns}
                FROM applications a
                JOIN units u ON a.unit_id = u.unit_id
                JOIN institutions i ON a.institution_id = i.institution_id
                JOIN students s ON a.student_id = s.student_id
                WHERE a.application_id = :aid
            """, {"aid": application_id})

        if not r:
            raise NotFound("Application not found")
        if r["institution_id"] != caller.institution_id:
            raise Forbidden("Not authorized to view this application")

        student = ApplicantSummary(
            student_id=r["student_id"], full_name=r["full_name"], email=r["email"],
            phone=r["phone"], address=r["address"], dob=as_date(r["dob"]),
            exam_path=r["exam_path"], medium=r["medium"], academic_record=record_from_row(r)
        )
        return ApplicationDetail(
            **application_fields(r), unit_name=r["unit_name"], unit_description=r["unit_description"],
            institution_name=r["institution_name"], institution_short_name=r["institution_short_name"],
            student=student
        )


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_application_service() -> ApplicationService:
    """Get application service instance."""
    return ApplicationService()
