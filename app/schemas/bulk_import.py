"""
app/schemas/bulk_import.py

Request and response schemas for the bulk import endpoints.

Payloads use camelCase on the wire; snake_case field names are accepted on
input as well.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RowErrorResponse(_CamelModel):
    row: int = Field(..., ge=1)
    message: str


class BulkImportRequest(_CamelModel):
    dataset: str = ""
    mode: Literal["validate", "commit"] = "commit"
    csv: str | None = None
    validation_token: str | None = None


class ValidateImportResponse(_CamelModel):
    success: bool = True
    valid: bool
    row_count: int = Field(..., ge=0)
    imported: int = 0
    skipped: int = Field(..., ge=0)
    errors: list[RowErrorResponse] = Field(default_factory=list)
    validation_token: str | None = None
    expires_at: datetime | None = None
    ledger_available: bool = True


class CommitImportResponse(_CamelModel):
    success: bool = True
    imported: int = Field(..., ge=0)
    skipped: int = Field(..., ge=0)
    errors: list[RowErrorResponse] = Field(default_factory=list)
    validation_token: str | None = None


class ImportJobResponse(_CamelModel):
    """
    Status view of one import job. The stored CSV text is never returned.
    """

    id: str
    dataset: str
    mode: str
    status: str
    requested_by: str
    row_count: int
    imported_count: int
    skipped_count: int
    error_count: int
    errors: list[RowErrorResponse] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    expires_at: datetime | None = None
    committed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
