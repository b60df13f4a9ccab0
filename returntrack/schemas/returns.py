from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _empty_to_none(value: object) -> object:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class ExpectedItem(BaseModel):
    """A parcel return the operator is waiting for."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    barcode: str
    # Rows written by the first release of the page used Turkish column names.
    name: str = Field(default="", validation_alias=AliasChoices("name", "isim"))
    phone: str = Field(default="", validation_alias=AliasChoices("phone", "telefon"))
    added_at: Optional[datetime] = None

    @field_validator("name", "phone", mode="before")
    @classmethod
    def _blank_none(cls, value: object) -> object:
        if value is None:
            return ""
        return str(value)

    @field_validator("added_at", mode="before")
    @classmethod
    def _blank_timestamp(cls, value: object) -> object:
        return _empty_to_none(value)


class ReceivedItem(BaseModel):
    """A parcel confirmed physically arrived."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    barcode: str
    added_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("added_at", "received_at")
    )

    @field_validator("added_at", mode="before")
    @classmethod
    def _blank_timestamp(cls, value: object) -> object:
        return _empty_to_none(value)


class MissingItem(ExpectedItem):
    days_pending: Optional[int] = None


class ReturnsSummary(BaseModel):
    expected: int
    received: int
    missing: int
    items: list[MissingItem] = Field(default_factory=list)


class ImportReport(BaseModel):
    files: int
    rows: int
    written: int
    skipped: int
    unique: int


class ScanRequest(BaseModel):
    barcode: str = Field(..., min_length=1)


class ScanResult(BaseModel):
    accepted: bool
    barcode: str = ""
    item: Optional[ReceivedItem] = None


class BarcodeSelection(BaseModel):
    barcodes: list[str] = Field(..., min_length=1)


class DeleteResult(BaseModel):
    status: str = "deleted"
    table: str
    count: Optional[int] = None


class ScannerState(BaseModel):
    state: str
    last_code: str = ""


class StatusOut(BaseModel):
    configured: bool
    backend: str
    status: str
    expected: int
    received: int
    missing: int
    scanner: ScannerState
