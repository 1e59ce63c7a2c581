"""
hazard_report.py — Pydantic schemas for crowdsourced coastal hazard reports.

ReportCreate          — what the reporter submits (POST /api/reports)
ReportUpdate          — operator patch (PUT /api/reports/{id})
HazardReport          — a stored report as returned by the API
NearbyReport          — HazardReport + distance from the query point
ReportListResponse    — paginated listing

Python attributes are snake_case (and so are MongoDB documents); the JSON
surface is camelCase through the shared alias generator, so the dashboard
client sees hazardType, resolvedAt, responseTime, ...
"""

from datetime import datetime
from typing import Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


# ── Enumerations ──────────────────────────────────────────────────────────────

HazardType = Literal[
    "Rip Current",
    "Storm Surge",
    "High Waves",
    "Marine Debris",
    "Weather Events",
    "Tsunami",
    "Coastal Erosion",
    "Other",
]
Severity = Literal["Low Risk", "Moderate Risk", "High Risk", "Critical Emergency"]
ReportStatus = Literal["Active", "Under Review", "Resolved", "Closed"]
ReportSource = Literal["Web Form", "Social Media", "API", "Mobile App"]

HAZARD_TYPES: tuple[str, ...] = get_args(HazardType)
SEVERITIES: tuple[str, ...] = get_args(Severity)
REPORT_STATUSES: tuple[str, ...] = get_args(ReportStatus)
REPORT_SOURCES: tuple[str, ...] = get_args(ReportSource)

CRITICAL_SEVERITY = "Critical Emergency"
STATUS_ACTIVE = "Active"
STATUS_RESOLVED = "Resolved"
# Statuses counted as "active right now" on the dashboard
OPEN_STATUSES: tuple[str, ...] = ("Active", "Under Review")

MAX_EVIDENCE = 5
MAX_DESCRIPTION = 1000


class CamelModel(BaseModel):
    """snake_case in Python, camelCase on the wire; accepts either on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Embedded documents ────────────────────────────────────────────────────────

class Location(CamelModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    details: str = Field(..., min_length=1, max_length=500)  # beach / landmark / address


class Attachment(CamelModel):
    """Reference to an evidence file already stored by the upload service."""
    filename: str
    original_name: str = ""
    mime_type: str = ""
    size: int = Field(default=0, ge=0)  # bytes
    url: str


class Contact(CamelModel):
    name: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[EmailStr] = None

    @field_validator("email")
    @classmethod
    def _email_length(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and len(value) > 100:
            raise ValueError("email must be at most 100 characters")
        return value


# ── Requests ──────────────────────────────────────────────────────────────────

class ReportCreate(CamelModel):
    """Payload for POST /api/reports."""
    location: Location
    hazard_type: HazardType
    severity: Severity
    description: str = Field(..., min_length=1, max_length=MAX_DESCRIPTION)
    evidence: list[Attachment] = Field(default_factory=list, max_length=MAX_EVIDENCE)
    contact: Optional[Contact] = None
    source: ReportSource = "Web Form"
    # Explicit override; derived from severity when omitted
    priority: Optional[int] = Field(default=None, ge=1, le=5)


class ReportUpdate(CamelModel):
    """
    Payload for PUT /api/reports/{id}.

    Only these four fields are writable by operators. Anything else in the
    request body is ignored.
    """
    status: Optional[ReportStatus] = None
    assigned_to: Optional[str] = Field(default=None, max_length=100)
    verified: Optional[bool] = None
    verified_by: Optional[str] = Field(default=None, max_length=100)


# ── Stored report ─────────────────────────────────────────────────────────────

class HazardReport(CamelModel):
    """A hazard report as persisted by the ReportStore."""
    id: str
    location: Location
    hazard_type: HazardType
    severity: Severity
    description: str
    evidence: list[Attachment] = Field(default_factory=list)
    contact: Contact = Field(default_factory=Contact)
    status: ReportStatus = STATUS_ACTIVE
    priority: int = Field(ge=1, le=5)
    assigned_to: Optional[str] = None
    resolved_at: Optional[datetime] = None
    response_time: Optional[int] = None   # minutes from created_at to resolved_at
    source: ReportSource = "Web Form"
    verified: bool = False
    verified_by: Optional[str] = None
    verified_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class NearbyReport(HazardReport):
    distance_km: float


# ── Responses ─────────────────────────────────────────────────────────────────

class ReportSubmitResponse(CamelModel):
    message: str = "Report submitted successfully"
    report_id: str
    report: HazardReport


class ReportUpdateResponse(CamelModel):
    message: str = "Report updated successfully"
    report: HazardReport


class MessageResponse(CamelModel):
    message: str


class ReportListResponse(CamelModel):
    reports: list[HazardReport]
    total_pages: int
    current_page: int
    total: int
