from pydantic import BaseModel


class ItemFailure(BaseModel):
    id: str
    reason: str


class OpenTransactionSummary(BaseModel):
    id: str
    outstanding: int
    total: int


class ReconcileReport(BaseModel):
    scanned: int
    closed: list[str]
    still_open: list[OpenTransactionSummary]
    failures: list[ItemFailure]


class CleanupReport(BaseModel):
    scanned: int
    repaired: list[int]
    failures: list[ItemFailure]


class FlushReport(BaseModel):
    written: int
    pending: int
