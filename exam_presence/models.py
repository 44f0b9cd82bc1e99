from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


Role = Literal["student", "admin"]
Status = Literal["online", "testing"]

ROLES = ("student", "admin")


class Handshake(BaseModel):
    """Query parameters sent when a socket opens."""

    user_id: Optional[str] = Field(default=None, alias="userId")
    user_name: Optional[str] = Field(default=None, alias="userName")
    role: Role = "student"
    group_code: Optional[str] = Field(default=None, alias="groupCode")

    @field_validator("user_id", "user_name", "group_code", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip().lower() in ROLES:
            return value.strip().lower()
        return "student"


class StudentEvent(BaseModel):
    # Clients attach arbitrary extra fields; they are echoed back untouched.
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    student_id: str = Field(alias="studentId", min_length=1)


class StartPayload(StudentEvent):
    test_title: str = Field(default="", alias="testTitle")


class FramePayload(StudentEvent):
    pass


class SubmissionPayload(StudentEvent):
    pass


class ParticipantOut(BaseModel):
    id: str
    displayName: str
    role: Role
    groupCode: Optional[str] = None
    status: Status
    currentTestTitle: Optional[str] = None
