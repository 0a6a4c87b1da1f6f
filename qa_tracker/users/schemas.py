"""Request bodies for authentication and user endpoints."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, constr

from ..enums import Role


class RegisterRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: constr(min_length=6, max_length=128)
    name: constr(strip_whitespace=True, min_length=1, max_length=255)
    role: Role = Field(Role.QA, description="Defaults to qa")
    whatsapp_number: Optional[constr(strip_whitespace=True, max_length=32)] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[constr(strip_whitespace=True, min_length=1, max_length=255)] = None
    whatsapp_number: Optional[constr(strip_whitespace=True, max_length=32)] = None


class PreferencesUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: Optional[bool] = None
    whatsapp: Optional[bool] = None
