"""Request bodies for the application endpoints."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, constr


class ApplicationCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: constr(strip_whitespace=True, min_length=1, max_length=255)
    description: str = ""
    version: constr(strip_whitespace=True, min_length=1, max_length=50)
    platform: constr(strip_whitespace=True, min_length=1, max_length=100)
    assigned_qas: List[str] = Field(default_factory=list, description="QA user ids")


class ApplicationUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[constr(strip_whitespace=True, min_length=1, max_length=255)] = None
    description: Optional[str] = None
    version: Optional[constr(strip_whitespace=True, min_length=1, max_length=50)] = None
    platform: Optional[constr(strip_whitespace=True, min_length=1, max_length=100)] = None
    assigned_qas: Optional[List[str]] = None


class VersionUpdate(BaseModel):
    version: str = ""
    changelog: str = ""


class ReminderCreate(BaseModel):
    message: Optional[str] = Field(None, max_length=2000)
