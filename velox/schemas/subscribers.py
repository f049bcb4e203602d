import re
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, field_serializer, field_validator
from email_validator import EmailNotValidError, validate_email

NAME_PATTERN = re.compile(r"^[A-Za-z\s]+$")
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50


def normalize_email(value: str) -> str:
    """Returns the canonical form of an address: validated, Unicode-normalized, lower-cased."""
    result = validate_email(value, check_deliverability=False)
    return result.normalized.lower()


class SubscribeRequest(BaseModel):
    name: str
    email: str

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        value = value.strip()
        if not NAME_MIN_LENGTH <= len(value) <= NAME_MAX_LENGTH:
            raise ValueError(f"Name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters")
        if not NAME_PATTERN.match(value):
            raise ValueError("Name can only contain letters and spaces")
        return value

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        try:
            return normalize_email(value)
        except EmailNotValidError:
            raise ValueError("Please provide a valid email address")


class SubscriberOut(BaseModel):
    """Admin listing row. The unsubscribe token is never listed."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    subscribed_at: datetime
    is_active: bool

    @field_serializer("subscribed_at")
    def serialize_subscribed_at(self, value: datetime) -> str:
        # SQLite hands back naive datetimes; they are stored in UTC
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()


class SubscriberCreatedOut(SubscriberOut):
    unsubscribe_token: str


class SubscriberStats(BaseModel):
    total: int
    active: int
    inactive: int
