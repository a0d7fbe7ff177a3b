"""API schemas for client endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field, field_serializer

from cpq.store.base import Record
from cpq.utils.datetime_utils import parse_datetime, to_local


class ClientRequest(BaseModel):
    name: str = Field(min_length=1)
    email: str | None = None
    phone: str | None = None


class ClientResponse(BaseModel):
    id: str
    name: str
    email: str | None
    phone: str | None
    created_at: datetime | None

    @field_serializer("created_at")
    def serialize_created_at(self, dt: datetime | None) -> str | None:
        """Serialize datetime to the local timezone."""
        localized = to_local(dt)
        return localized.isoformat() if localized else None

    @classmethod
    def from_record(cls, record: Record) -> "ClientResponse":
        return cls(
            id=record["id"],
            name=record.get("name") or "",
            email=record.get("email"),
            phone=record.get("phone"),
            created_at=parse_datetime(record.get("created_at")),
        )


class ClientListResponse(BaseModel):
    clients: list[ClientResponse]
    total: int
