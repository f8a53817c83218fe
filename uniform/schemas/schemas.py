"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Annotated, Optional, List, Literal, NamedTuple, Union
from datetime import date, datetime
from enum import Enum


# ============================================================
# ENUMS
# ============================================================

class ExamPath(str, Enum):
    national = "NATIONAL"
    madrasha = "MADRASHA"


class Stream(str, Enum):
    science = "SCIENCE"
    arts = "ARTS"
    commerce = "COMMERCE"


class Medium(str, Enum):
    bangla = "Bangla"
    english = "English"
    arabic = "Arabic"


class ApplicationStatus(str, Enum):
    under_review = "under_review"
    approved = "approved"


# ============================================================
# ACADEMIC RECORD (tagged union on exam_path)
# ============================================================

class ExamResult(NamedTuple):
    """One public exam sitting, whichever curriculum it came from."""
    stream: Optional[Stream]
    gpa: Optional[float]
    year: Optional[int]
    board: Optional[str]


Gpa = Optional[Annotated[float, Field(ge=0, le=5)]]
ExamYear = Optional[Annotated[int, Field(ge=1900, le=2100)]]
ShortText = Optional[Annotated[str, Field(max_length=50)]]


class NationalRecord(BaseModel):
    """SSC / HSC results."""
    exam_path: Literal["NATIONAL"] = "NATIONAL"
    ssc_roll: ShortText = None
    ssc_registration: ShortText = None
    ssc_stream: Optional[Stream] = None
    ssc_gpa: Gpa = None
    ssc_year: ExamYear = None
    ssc_board: ShortText = None
    hsc_roll: ShortText = None
    hsc_registration: ShortText = None
    hsc_stream: Optional[Stream] = None
    hsc_gpa: Gpa = None
    hsc_year: ExamYear = None
    hsc_board: ShortText = None

    @property
    def secondary(self) -> ExamResult:
        return ExamResult(self.ssc_stream, self.ssc_gpa, self.ssc_year, self.ssc_board)

    @property
    def higher_secondary(self) -> ExamResult:
        return ExamResult(self.hsc_stream, self.hsc_gpa, self.hsc_year, self.hsc_board)


class MadrashaRecord(BaseModel):
    """Dakhil / Alim results. Dakhil stands in for SSC, Alim for HSC."""
    exam_path: Literal["MADRASHA"] = "MADRASHA"
    dakhil_roll: ShortText = None
    dakhil_registration: ShortText = None
    dakhil_stream: Optional[Stream] = None
    dakhil_gpa: Gpa = None
    dakhil_year: ExamYear = None
    dakhil_board: ShortText = None
    alim_roll: ShortText = None
    alim_registration: ShortText = None
    alim_stream: Optional[Stream] = None
    alim_gpa: Gpa = None
    alim_year: ExamYear = None
    alim_board: ShortText = None

    @property
    def secondary(self) -> ExamResult:
        return ExamResult(self.dakhil_stream, self.dakhil_gpa, self.dakhil_year, self.dakhil_board)

    @property
    def higher_secondary(self) -> ExamResult:
        return ExamResult(self.alim_stream, self.alim_gpa, self.alim_year, self.alim_board)


AcademicRecord = Annotated[Union[NationalRecord, MadrashaRecord], Field(discriminator="exam_path")]

NATIONAL_FIELDS = [f for f in NationalRecord.model_fields if f != "exam_path"]
MADRASHA_FIELDS = [f for f in MadrashaRecord.model_fields if f != "exam_path"]


# ============================================================
# AUTH SCHEMAS
# ============================================================

class RegisterRequest(BaseModel):
    full_name: str = Field(..., min_length=3, max_length=190)
    email: EmailStr
    phone: Optional[str] = Field(None, pattern=r"^\+8801[3-9]\d{8}$")
    password: str = Field(..., min_length=6, max_length=100)
    password_confirmation: str
    address: Optional[str] = Field(None, max_length=300)
    dob: date
    medium: Optional[Medium] = None
    academic_record: Optional[AcademicRecord] = None

    @field_validator("full_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.password_confirmation:
            raise ValueError("password confirmation does not match")
        return self

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    id: int
    role: str

class DeleteAccountRequest(BaseModel):
    password: str


# ============================================================
# STUDENT SCHEMAS
# ============================================================

class StudentUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=3, max_length=190)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, pattern=r"^\+8801[3-9]\d{8}$")
    address: Optional[str] = Field(None, max_length=300)
    dob: Optional[date] = None
    medium: Optional[Medium] = None
    academic_record: Optional[AcademicRecord] = None

class StudentProfileResponse(BaseModel):
    student_id: int
    full_name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    dob: Optional[date] = None
    exam_path: Optional[ExamPath] = None
    medium: Optional[str] = None
    academic_record: Optional[AcademicRecord] = None
    created_at: datetime
    updated_at: datetime

class AcademicInfoResponse(BaseModel):
    student_id: int
    exam_path: Optional[ExamPath] = None
    medium: Optional[str] = None
    academic_record: Optional[AcademicRecord] = None


# ============================================================
# UNIT SCHEMAS
# ============================================================

class RequirementBase(BaseModel):
    # None = any stream
    ssc_stream: Optional[Stream] = None
    hsc_stream: Optional[Stream] = None
    min_ssc_gpa: Optional[float] = Field(None, ge=0, le=5)
    min_hsc_gpa: Optional[float] = Field(None, ge=0, le=5)
    min_combined_gpa: Optional[float] = Field(None, ge=0, le=10)
    min_ssc_year: Optional[int] = Field(None, ge=1990, le=2100)
    max_ssc_year: Optional[int] = Field(None, ge=1990, le=2100)
    min_hsc_year: Optional[int] = Field(None, ge=1990, le=2100)
    max_hsc_year: Optional[int] = Field(None, ge=1990, le=2100)

    @model_validator(mode="after")
    def year_bounds_ordered(self):
        if self.min_ssc_year and self.max_ssc_year and self.min_ssc_year > self.max_ssc_year:
            raise ValueError("min_ssc_year must not be after max_ssc_year")
        if self.min_hsc_year and self.max_hsc_year and self.min_hsc_year > self.max_hsc_year:
            raise ValueError("min_hsc_year must not be after max_hsc_year")
        return self

    @property
    def stream_combination(self) -> str:
        ssc = self.ssc_stream.value if self.ssc_stream else "ANY"
        hsc = self.hsc_stream.value if self.hsc_stream else "ANY"
        return f"{ssc}-{hsc}"

class RequirementCreate(RequirementBase):
    pass

class RequirementsAdd(BaseModel):
    requirements: List[RequirementCreate] = Field(..., min_length=1)

class UnitRequirement(RequirementBase):
    requirement_id: int
    unit_id: int


UnitName = Annotated[str, Field(min_length=1, max_length=50, pattern=r"^[a-zA-Z0-9\s\-\.]+$")]


class UnitCreate(BaseModel):
    name: UnitName
    description: Optional[str] = Field(None, max_length=500)
    is_active: bool = True
    application_deadline: Optional[datetime] = None
    max_applications: Optional[int] = Field(None, ge=1, le=10_000_000)
    auto_close_after_deadline: bool = True
    exam_date: Optional[datetime] = None
    exam_time: Optional[str] = Field(None, max_length=50)
    exam_center: Optional[str] = Field(None, max_length=100)
    requirements: List[RequirementCreate] = []

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()

class UnitUpdate(BaseModel):
    name: Optional[UnitName] = None
    description: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None
    application_deadline: Optional[datetime] = None
    max_applications: Optional[int] = Field(None, ge=1, le=10_000_000)
    auto_close_after_deadline: Optional[bool] = None
    # None = leave requirements untouched, [] = remove all
    requirements: Optional[List[RequirementCreate]] = None

class UnitExamDetails(BaseModel):
    exam_date: Optional[datetime] = None
    exam_time: Optional[str] = Field(None, max_length=50)
    exam_center: Optional[str] = Field(None, max_length=100)

class UnitResponse(BaseModel):
    unit_id: int
    institution_id: int
    institution_name: Optional[str] = None
    name: str
    description: Optional[str] = None
    is_active: bool
    application_deadline: Optional[datetime] = None
    max_applications: Optional[int] = None
    auto_close_after_deadline: bool
    exam_date: Optional[datetime] = None
    exam_time: Optional[str] = None
    exam_center: Optional[str] = None
    requirements: List[UnitRequirement] = []
    application_count: int = 0
    created_at: datetime
    updated_at: datetime

class UnitListResponse(BaseModel):
    units: List[UnitResponse]
    total: int
    page: int
    page_size: int


# ============================================================
# APPLICATION SCHEMAS
# ============================================================

class ApplicationCreate(BaseModel):
    unit_id: int
    center_preference: Optional[str] = Field(None, max_length=100)

class ApproveRequest(BaseModel):
    seat_no: Optional[str] = Field(None, max_length=20)
    exam_date: Optional[datetime] = None
    exam_time: Optional[str] = Field(None, max_length=50)
    exam_center: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None

class ExamDetailsUpdate(BaseModel):
    seat_no: Optional[str] = Field(None, max_length=20)
    exam_date: Optional[datetime] = None
    exam_time: Optional[str] = Field(None, max_length=50)
    exam_center: Optional[str] = Field(None, max_length=100)

class ApplicationResponse(BaseModel):
    application_id: int
    student_id: int
    unit_id: int
    institution_id: int
    applied_at: datetime
    center_preference: Optional[str] = None
    status: ApplicationStatus
    reviewed_at: Optional[datetime] = None
    seat_no: Optional[str] = None
    exam_date: Optional[datetime] = None
    exam_time: Optional[str] = None
    exam_center: Optional[str] = None
    notes: Optional[str] = None

class ApplicationListItem(ApplicationResponse):
    unit_name: str
    student_name: str
    student_email: str
    student_phone: Optional[str] = None
    exam_path: Optional[ExamPath] = None
    medium: Optional[str] = None
    secondary_board: Optional[str] = None
    higher_secondary_board: Optional[str] = None

class ApplicationGroup(BaseModel):
    unit_id: int
    unit_name: str
    applications: List[ApplicationListItem]

class ApplicationListResponse(BaseModel):
    groups: List[ApplicationGroup]
    total: int
    page: int
    page_size: int

class ApplicantSummary(BaseModel):
    student_id: int
    full_name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    dob: Optional[date] = None
    exam_path: Optional[ExamPath] = None
    medium: Optional[str] = None
    academic_record: Optional[AcademicRecord] = None

class ApplicationDetail(ApplicationResponse):
    unit_name: str
    unit_description: Optional[str] = None
    institution_name: str
    institution_short_name: Optional[str] = None
    student: ApplicantSummary

class StudentApplicationResponse(ApplicationResponse):
    unit_name: str
    institution_name: str
    institution_logo_url: Optional[str] = None

class AdmitCardResponse(BaseModel):
    application_id: int
    student_name: str
    exam_path: Optional[ExamPath] = None
    institution_name: str
    unit_name: str
    seat_no: Optional[str] = None
    exam_date: Optional[datetime] = None
    exam_time: Optional[str] = None
    exam_center: Optional[str] = None
    approved_at: datetime


# ============================================================
# EXPLORE SCHEMAS
# ============================================================

class ExploreUnit(BaseModel):
    unit_id: int
    name: str
    description: Optional[str] = None
    application_deadline: Optional[datetime] = None
    is_active: bool
    is_open: bool
    eligible: bool

class ExploreInstitution(BaseModel):
    institution_id: int
    name: str
    short_name: Optional[str] = None
    type: Optional[str] = None
    ownership: Optional[str] = None
    website: Optional[str] = None
    address: Optional[str] = None
    description: Optional[str] = None
    established_year: Optional[int] = None
    logo_url: Optional[str] = None
    units: List[ExploreUnit] = []


# ============================================================
# SYSTEM ADMIN SCHEMAS
# ============================================================

class InstitutionCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=200)
    short_name: Optional[str] = Field(None, max_length=50)
    type: Optional[str] = Field(None, max_length=50)
    ownership: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    website: Optional[str] = None
    address: Optional[str] = Field(None, max_length=300)
    description: Optional[str] = None
    established_year: Optional[int] = Field(None, ge=1800, le=2100)
    logo_url: Optional[str] = None

class InstitutionResponse(BaseModel):
    institution_id: int
    name: str
    short_name: Optional[str] = None
    type: Optional[str] = None
    ownership: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    address: Optional[str] = None
    description: Optional[str] = None
    established_year: Optional[int] = None
    logo_url: Optional[str] = None
    unit_count: int = 0
    admin_count: int = 0
    created_at: datetime

class InstitutionAdminCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)
    password_confirmation: str
    institution_id: int

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.password_confirmation:
            raise ValueError("password confirmation does not match")
        return self

class AdminResponse(BaseModel):
    admin_id: int
    email: str
    institution_id: Optional[int] = None
    institution_name: Optional[str] = None

class SystemStatsResponse(BaseModel):
    institutions: int
    units: int
    students: int
    applications: int


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True
