"""Call ingestion and listing schemas."""

from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from callgate.models import CallRecord
from callgate.utils.timestamps import as_utc

Direction = Literal["inbound", "outbound"]
DIRECTIONS = ("inbound", "outbound")


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    return str(value).strip()


class CamelModel(BaseModel):
    """Base model speaking camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CallIngestRequest(CamelModel):
    """POST /calls request.

    Every textual field is coerced to a trimmed string rather than rejected.
    Unknown keys, including any account id, are dropped.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    timestamp: Any = None
    contact_name: str = ""
    phone: str = ""
    direction: Direction = "inbound"
    status: str = ""
    summary: str = ""
    external_id: str | None = Field(
        default=None,
        max_length=255,
        validation_alias=AliasChoices("externalId", "callId", "external_id"),
    )

    @field_validator("contact_name", "phone", "status", "summary", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return _coerce_text(v)

    @field_validator("direction", mode="before")
    @classmethod
    def coerce_direction(cls, v: Any) -> str:
        direction = _coerce_text(v).lower()
        return direction if direction in DIRECTIONS else "inbound"

    @field_validator("external_id", mode="before")
    @classmethod
    def coerce_external_id(cls, v: Any) -> str | None:
        external_id = _coerce_text(v)
        return external_id or None


class CallRecordOut(CamelModel):
    """Full stored call row."""

    external_id: str
    account_id: str
    timestamp: datetime
    contact_name: str
    phone: str
    direction: str
    status: str
    summary: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: CallRecord) -> "CallRecordOut":
        return cls(
            external_id=record.external_id,
            account_id=str(record.account_id),
            timestamp=as_utc(record.occurred_at),
            contact_name=record.contact_name or "",
            phone=record.phone or "",
            direction=record.direction or "inbound",
            status=record.status or "",
            summary=record.summary or "",
            created_at=as_utc(record.created_at),
            updated_at=as_utc(record.updated_at),
        )


class CallIngestResponse(CamelModel):
    """POST /calls response."""

    ok: bool = True
    message: str = "Call record saved successfully"
    external_id: str
    record: CallRecordOut


class CallListItem(CamelModel):
    """One row of GET /calls."""

    timestamp: datetime
    contact_name: str
    phone: str
    direction: str
    status: str
    summary: str
    external_id: str

    @classmethod
    def from_record(cls, record: CallRecord) -> "CallListItem":
        return cls(
            timestamp=as_utc(record.occurred_at),
            contact_name=record.contact_name or "",
            phone=record.phone or "",
            direction=record.direction or "inbound",
            status=record.status or "",
            summary=record.summary or "",
            external_id=record.external_id,
        )


class CallSummary(CamelModel):
    """Aggregates over the returned page."""

    total_calls: int
    answered_calls: int
    answer_rate: float
    unique_contacts: int


class CallListResponse(CamelModel):
    """GET /calls response."""

    ok: bool = True
    summary: CallSummary
    data: list[CallListItem] = Field(default_factory=list)
