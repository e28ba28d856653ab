"""Schemas compteur / Counter schemas."""

from datetime import datetime

from pydantic import BaseModel


class CounterEventRead(BaseModel):
    counter_value: int
    occurred_at: datetime
    source: str
    label: str
    record_id: int | None = None


class MinimumCounterRead(BaseModel):
    vehicle_id: int
    minimum_allowed: int


class CounterInfoRead(BaseModel):
    minimum_allowed: int
    last_event: CounterEventRead | None = None
    total_events: int
    message: str


class CounterValidationRequest(BaseModel):
    vehicle_id: int
    counter_value: int
    occurred_at: datetime


class CounterValidationResult(BaseModel):
    valid: bool
    message: str
    reason: str | None = None
    minimum_allowed: int
    conflicting_event: CounterEventRead | None = None
