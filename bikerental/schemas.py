"""
Pydantic schemas for the bike rental API.

Request bodies accept the camelCase keys the web client sends; Python code
uses the snake_case attribute names.
"""

from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(CamelModel):
    full_name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1)
    role: str = Field(..., min_length=1, max_length=32)


class LoginRequest(CamelModel):
    username: str
    password: str
    recaptcha_token: Optional[str] = None


class UserSummary(BaseModel):
    id: str
    name: str
    email: str
    role: str


class LoginResponse(BaseModel):
    message: str
    user: UserSummary
    token: str


class MessageResponse(BaseModel):
    message: str


class ForgotPasswordRequest(CamelModel):
    email: str


class ResetPasswordRequest(CamelModel):
    token: str
    password: str = Field(..., min_length=1)


class StaffApplicationRequest(CamelModel):
    user_id: Optional[str] = None
    last_name: Optional[str] = None
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    sex: Optional[str] = None
    department: Optional[str] = None
    staff_id: Optional[str] = None
    employee_type: Optional[str] = None
    purpose: Optional[str] = None
    start_date: Optional[str] = None
    duration_days: Optional[Union[int, str]] = None
    employment_cert_path: Optional[str] = None

    def form_fields(self) -> dict:
        return self.model_dump(by_alias=True, exclude={"user_id"})


class ApplicationStatusRequest(CamelModel):
    application_id: str = ""
    status: str = ""


class EvaluationRequest(CamelModel):
    application_id: str
    evaluation: dict = Field(default_factory=dict)


class AssignBikeRequest(CamelModel):
    application_id: str
    bike_id: str


class ApplicationIdRequest(CamelModel):
    application_id: str


class NotifyStatusRequest(CamelModel):
    application_id: str
    status: Optional[str] = None


class CreateBikeRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    plate_number: Optional[str] = None
    device_id: Optional[str] = None


class LeaderboardCreateRequest(CamelModel):
    name: str = Field(..., min_length=1)
    distance_km: float
    co2_saved_kg: float
    user_id: Optional[str] = None


class LeaderboardUpdateRequest(CamelModel):
    id: str
    name: Optional[str] = None
    distance_km: Optional[float] = None
    co2_saved_kg: Optional[float] = None


class IssueUpdateRequest(CamelModel):
    status: Optional[Literal["open", "in_progress", "resolved", "closed"]] = None
    admin_notes: Optional[str] = None


class TrackerPing(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, allow_inf_nan=False
    )

    device_id: str = Field(..., min_length=1)
    latitude: float
    longitude: float
    speed: Optional[float] = None
    heading: Optional[float] = None
    timestamp: Optional[float] = None
    battery: Optional[float] = None


class FaqQuestion(BaseModel):
    question: str = Field(..., max_length=1000)


class FaqAnswer(BaseModel):
    answer: str
    matched: Optional[str] = None
    escalate: bool


class JobStatusResponse(BaseModel):
    job_id: str
    kind: str
    status: str
    error: Optional[str] = None


class JobAcceptedResponse(BaseModel):
    job_id: str
    status: str


class SignUrlResponse(BaseModel):
    url: str
