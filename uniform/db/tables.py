"""
Relational schema, declared once with SQLAlchemy Core.

Queries elsewhere are written as raw SQL; these Table objects only exist so the
same DDL can be emitted on PostgreSQL (production) and SQLite (tests).

Ownership:
- Institution owns Units (cascade), Unit owns UnitRequirements (cascade)
- Applications reference Student, Unit and Institution (cascade on delete)
- An institution admin loses its institution (SET NULL) when it is deleted
"""

import sqlalchemy as sa

metadata = sa.MetaData()


students = sa.Table(
    "students",
    metadata,
    sa.Column("student_id", sa.Integer, primary_key=True),
    sa.Column("full_name", sa.String(190), nullable=False),
    sa.Column("email", sa.String(255), nullable=False, unique=True),
    sa.Column("password_hash", sa.String(255), nullable=False),
    sa.Column("phone", sa.String(20)),
    sa.Column("address", sa.String(300)),
    sa.Column("dob", sa.Date),
    sa.Column("exam_path", sa.String(20)),
    sa.Column("medium", sa.String(20)),
    # NATIONAL curriculum
    sa.Column("ssc_roll", sa.String(50)),
    sa.Column("ssc_registration", sa.String(50)),
    sa.Column("ssc_stream", sa.String(20)),
    sa.Column("ssc_gpa", sa.Float),
    sa.Column("ssc_year", sa.Integer),
    sa.Column("ssc_board", sa.String(50)),
    sa.Column("hsc_roll", sa.String(50)),
    sa.Column("hsc_registration", sa.String(50)),
    sa.Column("hsc_stream", sa.String(20)),
    sa.Column("hsc_gpa", sa.Float),
    sa.Column("hsc_year", sa.Integer),
    sa.Column("hsc_board", sa.String(50)),
    # MADRASHA curriculum
    sa.Column("dakhil_roll", sa.String(50)),
    sa.Column("dakhil_registration", sa.String(50)),
    sa.Column("dakhil_stream", sa.String(20)),
    sa.Column("dakhil_gpa", sa.Float),
    sa.Column("dakhil_year", sa.Integer),
    sa.Column("dakhil_board", sa.String(50)),
    sa.Column("alim_roll", sa.String(50)),
    sa.Column("alim_registration", sa.String(50)),
    sa.Column("alim_stream", sa.String(20)),
    sa.Column("alim_gpa", sa.Float),
    sa.Column("alim_year", sa.Integer),
    sa.Column("alim_board", sa.String(50)),
    sa.Column("created_at", sa.DateTime, server_default=sa.func.now(), nullable=False),
    sa.Column("updated_at", sa.DateTime, server_default=sa.func.now(), nullable=False),
    sa.CheckConstraint("exam_path IN ('NATIONAL', 'MADRASHA')", name="ck_students_exam_path"),
)


institutions = sa.Table(
    "institutions",
    metadata,
    sa.Column("institution_id", sa.Integer, primary_key=True),
    sa.Column("name", sa.String(200), nullable=False, unique=True),
    sa.Column("short_name", sa.String(50)),
    sa.Column("type", sa.String(50)),
    sa.Column("ownership", sa.String(50)),
    sa.Column("email", sa.String(255)),
    sa.Column("phone", sa.String(20)),
    sa.Column("website", sa.String(255)),
    sa.Column("address", sa.String(300)),
    sa.Column("description", sa.Text),
    sa.Column("established_year", sa.Integer),
    sa.Column("logo_url", sa.String(500)),
    sa.Column("created_at", sa.DateTime, server_default=sa.func.now(), nullable=False),
)


admins = sa.Table(
    "admins",
    metadata,
    sa.Column("admin_id", sa.Integer, primary_key=True),
    sa.Column("email", sa.String(255), nullable=False, unique=True),
    sa.Column("password_hash", sa.String(255), nullable=False),
    sa.Column(
        "institution_id",
        sa.Integer,
        sa.ForeignKey("institutions.institution_id", ondelete="SET NULL"),
    ),
    sa.Column("created_at", sa.DateTime, server_default=sa.func.now(), nullable=False),
)


system_admins = sa.Table(
    "system_admins",
    metadata,
    sa.Column("system_admin_id", sa.Integer, primary_key=True),
    sa.Column("email", sa.String(255), nullable=False, unique=True),
    sa.Column("password_hash", sa.String(255), nullable=False),
    sa.Column("created_at", sa.DateTime, server_default=sa.func.now(), nullable=False),
)


units = sa.Table(
    "units",
    metadata,
    sa.Column("unit_id", sa.Integer, primary_key=True),
    sa.Column(
        "institution_id",
        sa.Integer,
        sa.ForeignKey("institutions.institution_id", ondelete="CASCADE"),
        nullable=False,
    ),
    sa.Column("name", sa.String(50), nullable=False),
    sa.Column("description", sa.String(500)),
    sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
    sa.Column("application_deadline", sa.DateTime),
    sa.Column("max_applications", sa.Integer),
    sa.Column("auto_close_after_deadline", sa.Boolean, nullable=False, server_default=sa.true()),
    sa.Column("exam_date", sa.DateTime),
    sa.Column("exam_time", sa.String(50)),
    sa.Column("exam_center", sa.String(100)),
    sa.Column("created_at", sa.DateTime, server_default=sa.func.now(), nullable=False),
    sa.Column("updated_at", sa.DateTime, server_default=sa.func.now(), nullable=False),
)
sa.Index("ix_units_institution_id", units.c.institution_id)


unit_requirements = sa.Table(
    "unit_requirements",
    metadata,
    sa.Column("requirement_id", sa.Integer, primary_key=True),
    sa.Column(
        "unit_id",
        sa.Integer,
        sa.ForeignKey("units.unit_id", ondelete="CASCADE"),
        nullable=False,
    ),
    sa.Column("ssc_stream", sa.String(20)),
    sa.Column("hsc_stream", sa.String(20)),
    sa.Column("min_ssc_gpa", sa.Float),
    sa.Column("min_hsc_gpa", sa.Float),
    sa.Column("min_combined_gpa", sa.Float),
    sa.Column("min_ssc_year", sa.Integer),
    sa.Column("max_ssc_year", sa.Integer),
    sa.Column("min_hsc_year", sa.Integer),
    sa.Column("max_hsc_year", sa.Integer),
)
sa.Index("ix_unit_requirements_unit_id", unit_requirements.c.unit_id)


applications = sa.Table(
    "applications",
    metadata,
    sa.Column("application_id", sa.Integer, primary_key=True),
    sa.Column(
        "student_id",
        sa.Integer,
        sa.ForeignKey("students.student_id", ondelete="CASCADE"),
        nullable=False,
    ),
    sa.Column(
        "unit_id",
        sa.Integer,
        sa.ForeignKey("units.unit_id", ondelete="CASCADE"),
        nullable=False,
    ),
    sa.Column(
        "institution_id",
        sa.Integer,
        sa.ForeignKey("institutions.institution_id", ondelete="CASCADE"),
        nullable=False,
    ),
    sa.Column("applied_at", sa.DateTime, nullable=False),
    sa.Column("center_preference", sa.String(100)),
    sa.Column("notes", sa.Text),
    # NULL while under review, set once on approval
    sa.Column("reviewed_at", sa.DateTime),
    sa.Column("seat_no", sa.String(20)),
    sa.Column("exam_date", sa.DateTime),
    sa.Column("exam_time", sa.String(50)),
    sa.Column("exam_center", sa.String(100)),
    # Sole guard against concurrent duplicate submissions
    sa.UniqueConstraint("student_id", "unit_id", name="uq_applications_student_unit"),
)
sa.Index("ix_applications_institution_id", applications.c.institution_id)
sa.Index("ix_applications_unit_id", applications.c.unit_id)
