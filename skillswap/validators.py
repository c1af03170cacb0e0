"""
Request schemas checked by the blueprints before anything reaches the core.

Each ``validate_*`` function runs the decoded JSON body through a pydantic
model. Every problem is reported at once as a single ValidationError whose
``errors`` list holds ``{'field', 'message'}`` pairs keyed by the JSON field
name. On success the cleaned values come back as a dict.
"""
from datetime import datetime, timezone
from typing import Annotated, ClassVar, Dict, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as SchemaError

from skillswap.errors import ValidationError

EMAIL_PATTERN = r'^[^@\s]+@[^@\s]+\.[^@\s]+$'
MIN_DURATION, MAX_DURATION = 15, 480


def to_naive_utc(value: datetime) -> datetime:
    """Naive input is taken as UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _reject_bool(value):
    # JSON true/false must not pass as 1/0
    if isinstance(value, bool):
        raise ValueError('must be an integer')
    return value


def _clean_skills(value: List[str]) -> List[str]:
    return [s.strip() for s in value if s.strip()]


SkillList = Annotated[List[str], AfterValidator(_clean_skills)]


class RequestSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    # Friendly message per JSON field, used for any error on that field
    messages: ClassVar[Dict[str, str]] = {}


class RegistrationRequest(RequestSchema):
    name: str = Field(min_length=2, max_length=100)
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=6)
    bio: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = Field(None, max_length=255)
    skills_to_teach: Optional[SkillList] = Field(None, alias='skillsToTeach')
    skills_to_learn: Optional[SkillList] = Field(None, alias='skillsToLearn')

    messages: ClassVar[Dict[str, str]] = {
        'name': 'Name must be between 2 and 100 characters',
        'email': 'Please enter a valid email',
        'password': 'Password must be at least 6 characters',
    }


class LoginRequest(RequestSchema):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)

    messages: ClassVar[Dict[str, str]] = {
        'email': 'Email is required',
        'password': 'Password is required',
    }


class ProfileUpdate(RequestSchema):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = Field(None, max_length=255)
    avatar: Optional[str] = Field(None, max_length=500)
    skills_to_teach: Optional[SkillList] = Field(None, alias='skillsToTeach')
    skills_to_learn: Optional[SkillList] = Field(None, alias='skillsToLearn')


class AppointmentRequest(RequestSchema):
    teacher_id: int = Field(alias='teacherId')
    skill: str = Field(min_length=1, max_length=255)
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=500)
    scheduled_date: datetime = Field(alias='scheduledDate')
    duration: Optional[int] = Field(None, ge=MIN_DURATION, le=MAX_DURATION)
    meeting_link: Optional[str] = Field(None, alias='meetingLink', max_length=500)

    messages: ClassVar[Dict[str, str]] = {
        'teacherId': 'Teacher ID is required',
        'skill': 'Skill is required',
        'title': 'Title is required',
        'description': 'Description must be less than 500 characters',
        'scheduledDate': 'Valid date is required',
        'duration': f'Duration must be between {MIN_DURATION} and {MAX_DURATION} minutes',
    }

    @field_validator('teacher_id', 'duration', mode='before')
    @classmethod
    def whole_numbers_only(cls, v):
        return _reject_bool(v)

    @field_validator('scheduled_date')
    @classmethod
    def normalize_scheduled_date(cls, v: datetime) -> datetime:
        return to_naive_utc(v)


class StatusUpdate(RequestSchema):
    status: Literal['accepted', 'rejected', 'completed', 'cancelled']
    notes: Optional[str] = Field(None, max_length=1000)

    messages: ClassVar[Dict[str, str]] = {
        'status': 'Invalid status',
        'notes': 'Notes must be less than 1000 characters',
    }


class Feedback(RequestSchema):
    rating: int = Field(ge=1, le=5)
    feedback: Optional[str] = Field(None, max_length=500)

    messages: ClassVar[Dict[str, str]] = {
        'rating': 'Rating must be between 1 and 5',
        'feedback': 'Feedback must be less than 500 characters',
    }

    @field_validator('rating', mode='before')
    @classmethod
    def whole_numbers_only(cls, v):
        return _reject_bool(v)


def _error_message(schema, error):
    field = str(error['loc'][0]) if error['loc'] else 'body'
    if field in schema.messages:
        return field, schema.messages[field]
    if error['type'] == 'value_error':
        return field, f"{field} {error['ctx']['error']}"
    return field, f"{field}: {error['msg']}"


def parse(schema, data):
    """Validate ``data`` against ``schema`` or raise ValidationError listing every bad field."""
    try:
        return schema.model_validate(data if isinstance(data, dict) else {})
    except SchemaError as e:
        errors = []
        for error in e.errors():
            field, message = _error_message(schema, error)
            if not any(existing['field'] == field for existing in errors):
                errors.append({'field': field, 'message': message})
        raise ValidationError(errors[0]['message'], errors=errors)


def validate_registration(data):
    return parse(RegistrationRequest, data).model_dump(exclude_none=True)


def validate_login(data):
    return parse(LoginRequest, data).model_dump()


def validate_profile_update(data):
    """Only the keys present in the body come back, under their JSON names, so absent fields stay unchanged."""
    return parse(ProfileUpdate, data).model_dump(by_alias=True, exclude_unset=True, exclude_none=True)


def validate_appointment_request(data):
    return parse(AppointmentRequest, data).model_dump(exclude_none=True)


def validate_status_update(data):
    return parse(StatusUpdate, data).model_dump(exclude_none=True)


def validate_feedback(data):
    return parse(Feedback, data).model_dump(exclude_none=True)


def page_args(args, default_limit):
    """``page`` and ``limit`` query parameters, clamped to sane values."""
    try:
        page = max(int(args.get('page', 1)), 1)
        limit = min(max(int(args.get('limit', default_limit)), 1), 100)
    except (TypeError, ValueError):
        raise ValidationError('page and limit must be integers')
    return page, limit
