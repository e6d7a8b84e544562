from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, StrictBool, field_validator, model_validator

from .precases import PrecaseStatus


def _check_day(v: str) -> str:
    try:
        date.fromisoformat(v)
    except ValueError:
        raise ValueError("Date must be in YYYY-MM-DD format")
    if len(v) != 10:
        raise ValueError("Date must be in YYYY-MM-DD format")
    return v


class WeeklyPrizeCreateBody(BaseModel):
    skinId: str = Field(min_length=1)
    name: str = Field(min_length=1)
    weekStartDate: str
    weekEndDate: str
    description: Optional[str] = None
    image: Optional[str] = None
    weapon: Optional[Dict[str, Any]] = None
    category: Optional[Dict[str, Any]] = None
    pattern: Optional[Dict[str, Any]] = None
    min_float: Optional[float] = None
    max_float: Optional[float] = None
    rarity: Optional[Dict[str, Any]] = None
    stattrak: Optional[bool] = None
    souvenir: Optional[bool] = None
    paint_index: Optional[str] = None
    price: Optional[float] = None

    @field_validator("weekStartDate", "weekEndDate")
    @classmethod
    def valid_day(cls, v: str) -> str:
        return _check_day(v)

    @model_validator(mode="after")
    def ordered_week(self) -> "WeeklyPrizeCreateBody":
        if self.weekEndDate < self.weekStartDate:
            raise ValueError("weekEndDate must not be before weekStartDate")
        return self


class WeeklyPrizeUpdateBody(BaseModel):
    skinId: str = Field(min_length=1)
    status: Optional[PrecaseStatus] = None
    weekStartDate: Optional[str] = None
    weekEndDate: Optional[str] = None
    price: Optional[float] = None

    @field_validator("weekStartDate", "weekEndDate")
    @classmethod
    def valid_day(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("Date cannot be null")
        return _check_day(v)


class WeeklyPrizeAwardBody(BaseModel):
    userId: str
    weeklyPrizeId: str
    weekStartDate: str
    weekEndDate: str

    @field_validator("weekStartDate", "weekEndDate")
    @classmethod
    def valid_day(cls, v: str) -> str:
        return _check_day(v)


class WeeklyPrizeClaimBody(BaseModel):
    userId: str
    weeklyPrizeId: str
    active: StrictBool


class DailyCaseActiveBody(BaseModel):
    prizeId: str = Field(min_length=1)
    newStatus: StrictBool
    userId: str
