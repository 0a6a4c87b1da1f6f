"""Request bodies for the bug report endpoints."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, constr


class BugReportCreate(BaseModel):
    """A new bug report filed by a QA user."""

    model_config = ConfigDict(extra="forbid")

    title: constr(min_length=1, max_length=255) = Field(..., description="Short summary")
    description: str = Field(..., description="What is wrong")
    steps_to_reproduce: str = Field(..., description="How to trigger the bug")
    expected_behavior: str
    actual_behavior: str
    severity: str = Field(..., description="low, medium, high or critical")
    environment: str = Field(..., description="Browser, OS, device ...")
    application_id: str
    screenshots: List[str] = Field(default_factory=list, description="Uploaded screenshot URLs")
    console_errors: Optional[str] = None
    queries: Optional[str] = None


class StatusUpdate(BaseModel):
    status: str


class TesterDecisionCreate(BaseModel):
    decision: str = Field(..., description="fixed, regression or not-fixed")
    comment: str = ""


class CommentCreate(BaseModel):
    text: str = ""
