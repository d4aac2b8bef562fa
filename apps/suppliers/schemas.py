from datetime import datetime
from typing import Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, Field, constr, field_validator


_OPTIONAL_TEXT = ("email", "phone", "website", "address")


def _blank_to_none(v):
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


def _check_website(v: Optional[str]) -> Optional[str]:
    if v is not None and not v.lower().startswith(("http://", "https://")):
        raise ValueError("Website must start with http:// or https://")
    return v


def _check_email(v: Optional[str]) -> Optional[str]:
    """Reject malformed addresses but store the value exactly as given."""
    if v is not None:
        try:
            validate_email(v, check_deliverability=False)
        except EmailNotValidError as exc:
            raise ValueError(str(exc)) from exc
    return v


class SupplierCreate(BaseModel):
    company_name: constr(strip_whitespace=True, min_length=1, max_length=255)
    email: Optional[constr(max_length=255)] = None
    phone: Optional[constr(max_length=50)] = None
    website: Optional[constr(max_length=500)] = None
    address: Optional[constr(max_length=500)] = None

    @field_validator(*_OPTIONAL_TEXT, mode="before")
    @classmethod
    def _blank_optional(cls, v):
        return _blank_to_none(v)

    @field_validator("website")
    @classmethod
    def _website_url(cls, v):
        return _check_website(v)

    @field_validator("email")
    @classmethod
    def _valid_email(cls, v):
        return _check_email(v)


class SupplierUpdate(BaseModel):
    """
    Partial update; only fields present in the payload change.
    Optional contact fields may be cleared with null or an empty string.
    """
    company_name: Optional[constr(strip_whitespace=True, min_length=1, max_length=255)] = None
    email: Optional[constr(max_length=255)] = None
    phone: Optional[constr(max_length=50)] = None
    website: Optional[constr(max_length=500)] = None
    address: Optional[constr(max_length=500)] = None

    @field_validator(*_OPTIONAL_TEXT, mode="before")
    @classmethod
    def _blank_optional(cls, v):
        return _blank_to_none(v)

    @field_validator("website")
    @classmethod
    def _website_url(cls, v):
        return _check_website(v)

    @field_validator("email")
    @classmethod
    def _valid_email(cls, v):
        return _check_email(v)


class SupplierOut(BaseModel):
    id: str
    workspace_id: str = Field(alias="workspaceId")
    company_name: str = Field(alias="companyName")
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    address: Optional[str] = None
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    model_config = {"populate_by_name": True}
