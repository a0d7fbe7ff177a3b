"""Client database model."""

from datetime import datetime

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel

from cpq.models.base import new_ulid, utc_now


class Client(SQLModel, table=True):
    """Customer that receives quotes."""

    __tablename__ = "clients"

    id: str = Field(default_factory=new_ulid, primary_key=True, max_length=26)
    tenant_id: str = Field(index=True, max_length=128)
    name: str
    email: str | None = None
    phone: str | None = None
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
