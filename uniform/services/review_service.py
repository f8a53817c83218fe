"""
Review Workflow

Per-application state machine:

    under_review (reviewed_at IS NULL) --approve--> approved (reviewed_at set)

There is no way back. Cancelling deletes the row, at any state.
Approving twice is refused with AlreadyReviewed.
"""

import logging
import re
from typing import Optional

from sqlalchemy import DateTime

from uniform.core.auth import AuthenticatedCaller
from uniform.core.errors import AlreadyReviewed, Forbidden, NotFound
from uniform.db.database import fetch_one, get_db_session, is_postgres, typed_text
from uniform.schemas.schemas import ApplicationResponse, ApproveRequest, ExamDetailsUpdate
from uniform.services.application_service import application_fields, load_application
from uniform.utils.dates import as_datetime, to_naive_utc, utcnow

logger = logging.getLogger(__name__)

CENTER_CODES = {
    "Dhaka": "DHA",
    "Chattogram": "CTG",
    "Chittagong": "CTG",
    "Rajshahi": "RAJ",
    "Khulna": "KHL",
    "Barishal": "BAR",
    "Barisal": "BAR",
    "Sylhet": "SYL",
    "Rangpur": "RGP",
    "Mymensingh": "MYM",
}

DEFAULT_CENTER = "GENERAL"


def center_prefix(center: Optional[str]) -> str:
    """Three-letter seat prefix for an exam center: DHA, CTG, ... or derived from its letters."""
    if not center or not center.strip():
        return "GEN"
    name = center.strip()
    if name in CENTER_CODES:
        return CENTER_CODES[name]
    letters = re.sub(r"[^A-Za-z]", "", name).upper()
    return (letters + "GEN")[:3]


class ReviewService:
    """Approve / exam details / cancel, for admins of the owning institution."""

    def _owned_application(self, db, caller: AuthenticatedCaller, application_id: int, lock: bool = False) -> dict:
        if lock and is_postgres(db):
            db.execute(
                typed_text("SELECT application_id FROM applications WHERE application_id = :aid FOR UPDATE"),
                {"aid": application_id}
            )
        app = load_application(db, application_id)
        if not app:
            raise NotFound("Application not found")
        if app["institution_id"] != caller.institution_id:
            raise Forbidden("Not authorized to review this application")
        return app

    def _next_seat_no(self, db, institution_id: int, center: str) -> str:
        """
        Next seat number for a center within one institution, e.g. DHA00007.

        Numbering is per prefix, so spellings of one division share a sequence.
        The institution row is locked on PostgreSQL for the rest of the approval.
        """
        if is_postgres(db):
            db.execute(
                typed_text("SELECT institution_id FROM institutions WHERE institution_id = :iid FOR UPDATE"),
                {"iid": institution_id}
            )
        prefix = center_prefix(center)
        seats = db.execute(typed_text("""
            SELECT seat_no FROM applications
            WHERE institution_id = :iid AND seat_no LIKE :pattern
        """), {"iid": institution_id, "pattern": f"{prefix}%"}).scalars()
        pattern = re.compile(rf"^{prefix}(\d{{5}})$")
        taken = [int(m.group(1)) for m in map(pattern.match, seats) if m]
        return f"{prefix}{max(taken, default=0) + 1:05d}"

    def approve(self, caller: AuthenticatedCaller, application_id: int,
                data: Optional[ApproveRequest] = None) -> ApplicationResponse:
        """
        Move an application from under_review to approved.

        Missing exam details are filled in: the center falls back to the
        application's, the unit's, then the student's preference, then
        GENERAL; date and time fall back to the unit's; a seat number is
        generated when none is given.

        Raises:
            NotFound, Forbidden, AlreadyReviewed
        """
        data = data or ApproveRequest()

        with get_db_session() as db:
            app = self._owned_application(db, caller, application_id, lock=True)
            if app["reviewed_at"]:
                raise AlreadyReviewed()

            unit = fetch_one(
                db,
                "SELECT exam_date, exam_time, exam_center FROM units WHERE unit_id = :uid",
                {"uid": app["unit_id"]}
            )
            center = (
                data.exam_center or app["exam_center"] or unit["exam_center"]
                or app["center_preference"] or DEFAULT_CENTER
            )
            seat_no = data.seat_no or app["seat_no"] or self._next_seat_no(db, app["institution_id"], center)
            exam_date = (
                to_naive_utc(data.exam_date) if data.exam_date
                else as_datetime(app["exam_date"] or unit["exam_date"])
            )
            exam_time = data.exam_time or app["exam_time"] or unit["exam_time"]
            notes = data.notes if data.notes is not None else app["notes"]

            # reviewed_at IS NULL keeps the transition one-way even without a row lock
            result = db.execute(typed_text("""
                UPDATE applications
                SET reviewed_at = :now, seat_no = :seat_no, exam_date = :exam_date,
                    exam_time = :exam_time, exam_center = :exam_center, notes = :notes
                WHERE application_id = :aid AND reviewed_at IS NULL
            """, now=DateTime, exam_date=DateTime), {
                "now": utcnow(), "seat_no": seat_no, "exam_date": exam_date,
                "exam_time": exam_time, "exam_center": center, "notes": notes,
                "aid": application_id
            })
            if result.rowcount == 0:
                raise AlreadyReviewed()

            updated = load_application(db, application_id)

        logger.info("Admin %s approved application %s (seat %s)", caller.id, application_id, seat_no)
        return ApplicationResponse(**application_fields(updated))

    def set_exam_details(self, caller: AuthenticatedCaller, application_id: int,
                         data: ExamDetailsUpdate) -> ApplicationResponse:
        """Set seat / exam date / time / center on an application. Unset fields keep their value."""
        values = data.model_dump(exclude_none=True)

        with get_db_session() as db:
            self._owned_application(db, caller, application_id, lock=True)

            if values:
                if "exam_date" in values:
                    values["exam_date"] = to_naive_utc(values["exam_date"])
                assignments = ", ".join(f"{field} = :{field}" for field in values)
                db.execute(
                    typed_text(
                        f"UPDATE applications SET {assignments} WHERE application_id = :aid",
                        exam_date=DateTime
                    ),
                    {**values, "aid": application_id}
                )

            updated = load_application(db, application_id)

        logger.info("Admin %s updated exam details of application %s: %s", caller.id, application_id, sorted(values))
        return ApplicationResponse(**application_fields(updated))

    def cancel(self, caller: AuthenticatedCaller, application_id: int) -> None:
        """Delete the application, approved or not. Cannot be undone."""
        with get_db_session() as db:
            app = self._owned_application(db, caller, application_id)
            db.execute(typed_text("DELETE FROM applications WHERE application_id = :aid"), {"aid": application_id})

        logger.warning(
            "Admin %s cancelled application %s (student %s, unit %s)",
            caller.id, application_id, app["student_id"], app["unit_id"]
        )


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_review_service() -> ReviewService:
    """Get review service instance."""
    return ReviewService()
