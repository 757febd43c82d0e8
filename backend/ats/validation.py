"""Shape and format checks for incoming candidate payloads.

Both entry points return a plain dict with snake_case keys, ready to hand to a
repository, or raise :class:`ats.errors.ValidationError` carrying one
``{"field", "message"}`` entry per problem.
"""
import re
from datetime import date
from typing import Annotated, Any, Dict, List, Optional, Type

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
    ValidationInfo,
    field_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from .errors import ValidationError

PHONE_PATTERN = re.compile(r"^\+?[\d\s()\-]{7,15}$")
ADDRESS_PATTERN = re.compile(r"^[a-zA-Z0-9\s.,\-#/]+$")
EMAIL_MAX_LENGTH = 255

REQUIRED_CANDIDATE_FIELDS = ("first_name", "last_name", "email", "phone", "address")


def _check_phone(value: str) -> str:
    if not PHONE_PATTERN.match(value):
        raise PydanticCustomError(
            "phone_format",
            "Phone must be 7 to 15 characters and may only contain digits, spaces, "
            "parentheses, hyphens and a leading +",
        )
    return value


def _check_address(value: str) -> str:
    if not ADDRESS_PATTERN.match(value):
        raise PydanticCustomError(
            "address_format",
            "Address may only contain letters, numbers, spaces and the characters . , - # /",
        )
    return value


def _check_email_length(value: str) -> str:
    if len(value) > EMAIL_MAX_LENGTH:
        raise PydanticCustomError("email_length", "Email cannot exceed 255 characters")
    return value


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
Email = Annotated[EmailStr, AfterValidator(_check_email_length)]
Phone = Annotated[str, StringConstraints(strip_whitespace=True), AfterValidator(_check_phone)]
Address = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1, max_length=255),
    AfterValidator(_check_address),
]
Label = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
OptionalDate = Annotated[Optional[date], BeforeValidator(_blank_to_none)]


class _Payload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


class _DatedEntry(_Payload):
    # is_current is declared before end_date so it is already validated when
    # the end date is checked
    @field_validator("end_date", check_fields=False)
    @classmethod
    def _end_date_in_range(cls, value: Optional[date], info: ValidationInfo) -> Optional[date]:
        if info.data.get("is_current"):
            return None
        start = info.data.get("start_date")
        if value is not None and start is not None and value < start:
            raise PydanticCustomError("date_range", "End date cannot be earlier than start date")
        return value


class EducationIn(_DatedEntry):
    institution: Label
    degree: Label
    field_of_study: Optional[str] = Field(default=None, max_length=255)
    start_date: OptionalDate = None
    is_current: bool
    end_date: OptionalDate = None
    description: Optional[str] = None


class ExperienceIn(_DatedEntry):
    company: Label
    position: Label
    start_date: date
    is_current: bool
    end_date: OptionalDate = None
    description: Optional[str] = None


class CandidateIn(_Payload):
    first_name: Name
    last_name: Name
    email: Email
    phone: Phone
    address: Address
    educations: Optional[List[EducationIn]] = None
    experiences: Optional[List[ExperienceIn]] = None


class CandidateUpdateIn(_Payload):
    first_name: Optional[Name] = None
    last_name: Optional[Name] = None
    email: Optional[Email] = None
    phone: Optional[Phone] = None
    address: Optional[Address] = None
    educations: Optional[List[EducationIn]] = None
    experiences: Optional[List[ExperienceIn]] = None


def _loc_to_field(loc) -> str:
    return ".".join(str(part) for part in loc) or "body"


def field_errors(exc: PydanticValidationError) -> List[Dict[str, str]]:
    return [{"field": _loc_to_field(err["loc"]), "message": err["msg"]} for err in exc.errors()]


def _raise_for(details: List[Dict[str, str]]) -> None:
    message = "; ".join(f"{d['field']}: {d['message']}" for d in details)
    raise ValidationError(message, details=details)


def parse_payload(schema: Type[BaseModel], data: Any) -> BaseModel:
    if not isinstance(data, dict):
        raise ValidationError(
            "Request body must be a JSON object",
            details=[{"field": "body", "message": "Expected a JSON object"}],
        )
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        _raise_for(field_errors(exc))


def validate_candidate(data: Any) -> Dict[str, Any]:
    payload = parse_payload(CandidateIn, data)
    value = payload.model_dump()
    for collection in ("educations", "experiences"):
        if value[collection] is None:
            value.pop(collection)
    return value


def validate_candidate_update(data: Any) -> Dict[str, Any]:
    """Partial update: only keys present in ``data`` end up in the result."""
    payload = parse_payload(CandidateUpdateIn, data)
    value = payload.model_dump(exclude_unset=True)

    nulls = [name for name in REQUIRED_CANDIDATE_FIELDS if name in value and value[name] is None]
    if nulls:
        _raise_for([{"field": to_camel(name), "message": "Field cannot be null"} for name in nulls])

    for collection in ("educations", "experiences"):
        if collection in value and value[collection] is None:
            value.pop(collection)
    return value
