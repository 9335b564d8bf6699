"""
app/domain/errors.py

Error taxonomy of the spreadsheet pipeline.

File-level errors stop one file; the batch loop moves on to the next.
Row-level problems are never raised, they become RowRejected entries.
"""

from __future__ import annotations

from typing import Any


class SalesPipelineError(Exception):
    """
    Base class; carries enough context for caller-facing feedback.
    """

    def __init__(self, message: str, *, filename: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.filename = filename

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message}
        if self.filename is not None:
            payload["filename"] = self.filename
        return payload


class PeriodNotFoundError(SalesPipelineError):
    """
    Raised when a filename carries no recognizable month or year.
    """


class UnreadableFileError(SalesPipelineError):
    """
    Raised when bytes cannot be decoded as CSV or as a workbook.
    """


class ForbiddenError(SalesPipelineError):
    """
    Raised when a source file key belongs to another owner.
    """


class NotFoundError(SalesPipelineError):
    """
    Raised when a source file key is unknown to the file registry.
    """


class IngestionPersistenceError(SalesPipelineError):
    """
    Raised when the record store rejects a write.

    inserted is the number of records that remain persisted after the
    failure, so callers can surface partial ingestion.
    """

    def __init__(
        self,
        message: str,
        *,
        received: int,
        inserted: int,
        filename: str | None = None,
    ) -> None:
        super().__init__(message, filename=filename)
        self.received = received
        self.inserted = inserted

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["received"] = self.received
        payload["inserted"] = self.inserted
        return payload


class ChunkInsertError(IngestionPersistenceError):
    """
    Raised when one insert chunk fails; remaining chunks are not attempted.
    """

    def __init__(
        self,
        message: str,
        *,
        received: int,
        inserted: int,
        chunk_index: int,
        filename: str | None = None,
    ) -> None:
        super().__init__(message, received=received, inserted=inserted, filename=filename)
        self.chunk_index = chunk_index

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["chunk_index"] = self.chunk_index
        return payload


class InvalidQuestionError(SalesPipelineError):
    """
    Raised when an assistant question is empty or too long.
    """
