"""Form models validated before anything is sent to the backend.

Date windows are measured from ``today``, taken from the validation context
(``Model.model_validate(data, context={"today": date(...)})``) and defaulting
to the local date.
"""

import re
from datetime import date, datetime, timedelta
from enum import StrEnum

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
)

MAX_PAYMENT_PER_HOUR = 1000
MAX_PHOTO_BYTES = 5 * 1024 * 1024
NIC_PATTERN = r"^([0-9]{9}[xXvV]|[0-9]{12})$"
TIME_PATTERN = r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class BehaviourType(StrEnum):
    POSITIVE = "Positive"
    NEGATIVE = "Negative"


class SeverityLevel(StrEnum):
    MINOR = "Minor"
    MODERATE = "Moderate"
    SEVERE = "Severe"


class Gender(StrEnum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class PrisonerGender(StrEnum):
    MALE = "Male"
    FEMALE = "Female"


class PhotoType(StrEnum):
    PROFILE = "Profile"
    FRONT = "Front"
    SIDE = "Side"
    IDENTIFICATION = "Identification"


class PrisonerStatus(StrEnum):
    ACTIVE = "Active"
    RELEASED = "Released"
    TRANSFERRED = "Transferred"
    DECEASED = "Deceased"


class VisitStatus(StrEnum):
    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class PaymentStatus(StrEnum):
    PENDING = "Pending"
    PAID = "Paid"


def _today(info: ValidationInfo) -> date:
    context = info.context or {}
    today = context.get("today")
    if isinstance(today, datetime):
        return today.date()
    if isinstance(today, date):
        return today
    return date.today()


def _within_past_window(value: date, today: date, days: int, label: str) -> date:
    if value > today:
        raise ValueError(f"{label} cannot be in the future")
    if value < today - timedelta(days=days):
        raise ValueError(f"{label} cannot be more than {days} days in the past")
    return value


def _blank_to_none(value: object) -> object:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class FormModel(BaseModel):
    """Base for console forms."""

    model_config = ConfigDict(str_strip_whitespace=True)

    def to_payload(self) -> dict[str, object]:
        """Return the body sent to the backend."""
        return self.model_dump(mode="json", exclude_none=True)


class BehaviourRecordForm(FormModel):
    """Behaviour incident with an optional sentence adjustment."""

    prisoner_id: int = Field(gt=0)
    behaviour_type: BehaviourType
    severity_level: SeverityLevel
    incident_date: date
    description: str = Field(min_length=20, max_length=2000)
    action_taken: str | None = Field(default=None, max_length=1000)
    witness_name: str | None = Field(default=None, max_length=255)
    sentence_adjustment_days: int = Field(default=0, ge=-365, le=365)
    notes: str | None = Field(default=None, max_length=1000)

    _blank_optionals = field_validator(
        "action_taken", "witness_name", "notes", mode="before"
    )(_blank_to_none)

    @field_validator("sentence_adjustment_days", mode="before")
    @classmethod
    def _blank_adjustment(cls, value: object) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            return 0
        return value

    @field_validator("incident_date")
    @classmethod
    def _incident_window(cls, value: date, info: ValidationInfo) -> date:
        return _within_past_window(value, _today(info), 90, "Incident date")

    @field_validator("sentence_adjustment_days")
    @classmethod
    def _adjustment_direction(cls, value: int, info: ValidationInfo) -> int:
        behaviour_type = info.data.get("behaviour_type")
        if (behaviour_type == BehaviourType.POSITIVE and value > 0) or (
            behaviour_type == BehaviourType.NEGATIVE and value < 0
        ):
            raise ValueError(
                "Sentence adjustment direction must match behaviour type "
                "(Positive = reduction, Negative = increase)"
            )
        return value


class WorkRecordForm(FormModel):
    """Paid work carried out by a prisoner."""

    prisoner_id: int = Field(gt=0)
    task_description: str = Field(min_length=10, max_length=1000)
    work_date: date
    hours_worked: float = Field(ge=0.5, le=24)
    payment_amount: float = Field(ge=0)

    @field_validator("work_date")
    @classmethod
    def _work_window(cls, value: date, info: ValidationInfo) -> date:
        return _within_past_window(value, _today(info), 30, "Work date")

    @field_validator("payment_amount")
    @classmethod
    def _payment_ceiling(cls, value: float, info: ValidationInfo) -> float:
        hours = info.data.get("hours_worked")
        if hours is not None and value > hours * MAX_PAYMENT_PER_HOUR:
            raise ValueError("Payment amount seems too high")
        return value


class PrisonForm(FormModel):
    prison_name: str = Field(min_length=1, max_length=100)
    location: str = Field(min_length=1, max_length=100)
    address: str = Field(min_length=1)
    capacity: int = Field(ge=0)
    superintendent_name: str = Field(min_length=1, max_length=100)
    contact_number: str = Field(max_length=20, pattern=r"^[0-9+\-\s()]+$")
    email: str = Field(pattern=EMAIL_PATTERN)
    established_date: date | None = None
    is_active: bool = True

    _blank_established = field_validator("established_date", mode="before")(
        _blank_to_none
    )


class UserForm(FormModel):
    """Staff account; ``password`` is only sent when creating or resetting."""

    employee_full_name: str = Field(min_length=2)
    nic: str = Field(pattern=NIC_PATTERN)
    gender: Gender
    birthday: date
    email: str = Field(pattern=EMAIL_PATTERN)
    address: str = Field(min_length=5)
    username: str = Field(min_length=3)
    password: str | None = Field(default=None, min_length=6)
    role_id: int = Field(gt=0)
    prison_id: int | None = Field(default=None, gt=0)
    is_active: bool = True

    _blank_optionals = field_validator("password", "prison_id", mode="before")(
        _blank_to_none
    )


class VisitorForm(FormModel):
    visitor_name: str = Field(
        min_length=2, max_length=200, pattern=r"^[a-zA-Z\s.'-]+$"
    )
    nic: str = Field(pattern=NIC_PATTERN)
    mobile_number: str = Field(pattern=r"^[0-9]{10}$")
    address: str = Field(min_length=10, max_length=500)


class VisitForm(FormModel):
    """A scheduled visit; lasts 15 minutes to 2 hours within the next 30 days."""

    prisoner_id: int = Field(ge=1)
    visitor_id: int = Field(ge=1)
    relationship: str = Field(min_length=2, max_length=100, pattern=r"^[a-zA-Z\s-]+$")
    visit_date: date
    visit_time_start: str = Field(pattern=TIME_PATTERN)
    visit_time_end: str = Field(pattern=TIME_PATTERN)
    purpose: str | None = Field(default=None, max_length=500)
    notes: str | None = Field(default=None, max_length=1000)

    _blank_optionals = field_validator("purpose", "notes", mode="before")(
        _blank_to_none
    )

    @field_validator("visit_date")
    @classmethod
    def _visit_window(cls, value: date, info: ValidationInfo) -> date:
        today = _today(info)
        if value < today:
            raise ValueError("Visit date cannot be in the past")
        if value > today + timedelta(days=30):
            raise ValueError("Visit date cannot be more than 30 days in the future")
        return value

    @field_validator("visit_time_end")
    @classmethod
    def _visit_duration(cls, value: str, info: ValidationInfo) -> str:
        start = info.data.get("visit_time_start")
        if start is None:
            return value
        duration = _minutes(value) - _minutes(start)
        if duration <= 0:
            raise ValueError("End time must be after start time")
        if not 15 <= duration <= 120:
            raise ValueError("Visit duration must be between 15 minutes and 2 hours")
        return value


def _minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


class BasicDetailsForm(FormModel):
    """Step one of prisoner registration."""

    full_name: str = Field(min_length=2)
    nic: str = Field(min_length=10, max_length=12)
    case_number: str = Field(min_length=1)
    gender: PrisonerGender
    birthday: date
    nationality: str = Field(min_length=2)
    admission_date: date
    expected_release_date: date
    prison_id: int = Field(gt=0)
    cell_number: str | None = None
    social_status: str | None = None

    _blank_optionals = field_validator("cell_number", "social_status", mode="before")(
        _blank_to_none
    )


class BodyMarkForm(FormModel):
    mark_description: str = Field(min_length=3)
    mark_location: str = Field(min_length=1)


class FamilyMemberForm(FormModel):
    family_member_name: str = Field(min_length=2)
    relationship: str = Field(min_length=1)
    contact_number: str = Field(pattern=r"^[0-9]{10}$")
    address: str = Field(min_length=5)
    nic: str = Field(min_length=10, max_length=12)
    emergency_contact: bool = False


class PhotoUpload(BaseModel):
    """An image queued for upload in the photos step."""

    photo_type: PhotoType
    filename: str
    content_type: str
    content: bytes = Field(repr=False)

    @field_validator("content_type")
    @classmethod
    def _image_only(cls, value: str) -> str:
        if not value.startswith("image/"):
            raise ValueError("Please select an image file")
        return value

    @field_validator("content")
    @classmethod
    def _size_limit(cls, value: bytes) -> bytes:
        if len(value) > MAX_PHOTO_BYTES:
            raise ValueError("Image size must be less than 5MB")
        return value


class ListFilters(BaseModel):
    """Query parameters accepted by list endpoints."""

    model_config = ConfigDict(str_strip_whitespace=True)

    search: str | None = None
    facility_id: int | None = Field(default=None, gt=0)
    status: str | None = None
    behaviour_type: BehaviourType | None = None
    severity_level: SeverityLevel | None = None
    payment_status: PaymentStatus | None = None
    gender: str | None = None
    nationality: str | None = None
    location: str | None = None
    is_active: bool | None = None
    prisoner_id: int | None = Field(default=None, gt=0)
    visitor_id: int | None = Field(default=None, gt=0)
    start_date: date | None = None
    end_date: date | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=1000)

    _blank_search = field_validator("search", "status", mode="before")(_blank_to_none)

    @field_validator("end_date")
    @classmethod
    def _ordered_range(cls, value: date | None, info: ValidationInfo) -> date | None:
        start = info.data.get("start_date")
        if value is not None and start is not None and value < start:
            raise ValueError("End date must not be before start date")
        return value

    def to_params(self) -> dict[str, object]:
        """Return backend query parameters, dropping unset filters."""
        params = self.model_dump(mode="json", exclude_none=True)
        facility_id = params.pop("facility_id", None)
        if facility_id is not None:
            params["prison_id"] = facility_id
        params["limit"] = params.pop("page_size")
        return params


def validation_messages(errors: list[dict[str, object]]) -> dict[str, str]:
    """Flatten pydantic errors into ``{field: message}``."""
    messages: dict[str, str] = {}
    for error in errors:
        loc = error.get("loc") or ()
        key = str(loc[-1]) if loc else "root"
        message = str(error.get("msg", "Invalid value"))
        messages.setdefault(key, re.sub(r"^Value error, ", "", message))
    return messages
