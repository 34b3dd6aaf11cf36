"""
Pydantic schemas.

Record models validate rows coming out of the record store; payload models
validate what the screens send; view models are what the API returns.
"""

import datetime
from typing import Generic, List, Literal, Optional, TypeVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator

HEX_COLOR = r"^#[0-9a-fA-F]{6}$"

T = TypeVar("T")


def _as_utc(value):
    # SQLite hands back naive datetimes; everything stored is UTC.
    if isinstance(value, datetime.datetime) and value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


def _check_timezone(value):
    if value is None:
        return value
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"unknown timezone: {value}")
    return value


class _Record(BaseModel):
    id: str
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None

    @field_validator("created_at", "updated_at", mode="after")
    @classmethod
    def stamps_utc(cls, value):
        return _as_utc(value)

    class Config:
        from_attributes = True


# -------------------- Visitors --------------------

class VisitorRecord(_Record):
    """A visitor row. end_time is set exactly when the visit has ended."""
    name: str = Field(..., min_length=1)
    company: Optional[str] = None
    purpose: Optional[str] = None
    host: Optional[str] = None
    start_time: datetime.datetime
    end_time: Optional[datetime.datetime] = None
    is_active: bool
    badge_number: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("start_time", "end_time", mode="after")
    @classmethod
    def times_utc(cls, value):
        return _as_utc(value)

    @model_validator(mode="after")
    def end_time_matches_active(self):
        if (self.end_time is None) != self.is_active:
            raise ValueError("end_time must be set if and only if the visitor is not active")
        return self


class VisitorCheckIn(BaseModel):
    """Check-in form payload."""
    name: str = Field(..., description="Visitor's full name", examples=["Max Mustermann"])
    company: Optional[str] = None
    purpose: Optional[str] = None
    host: Optional[str] = Field(None, description="Person being visited")
    notes: Optional[str] = None


# -------------------- Slideshow --------------------

class SlideshowItemRecord(_Record):
    title: str = Field(..., min_length=1)
    content: Optional[str] = None
    image_url: Optional[str] = None
    display_time: int = Field(..., ge=1, le=60)
    is_active: bool
    order: int
    background_color: str = Field(..., pattern=HEX_COLOR)
    text_color: str = Field(..., pattern=HEX_COLOR)


class SlideCreate(BaseModel):
    title: str = Field(..., min_length=1)
    content: Optional[str] = None
    image_url: Optional[str] = None
    display_time: int = Field(5, ge=1, le=60, description="Seconds")
    is_active: bool = True
    background_color: str = Field("#1e40af", pattern=HEX_COLOR)
    text_color: str = Field("#ffffff", pattern=HEX_COLOR)


class SlideUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    content: Optional[str] = None
    image_url: Optional[str] = None
    display_time: Optional[int] = Field(None, ge=1, le=60)
    is_active: Optional[bool] = None
    background_color: Optional[str] = Field(None, pattern=HEX_COLOR)
    text_color: Optional[str] = Field(None, pattern=HEX_COLOR)


class SlideMove(BaseModel):
    direction: Literal["up", "down"]


# -------------------- Layout --------------------

class LayoutConfigRecord(_Record):
    name: str
    header_enabled: bool
    header_text: str
    header_color: str = Field(..., pattern=HEX_COLOR)
    header_text_color: str = Field(..., pattern=HEX_COLOR)
    footer_enabled: bool
    footer_text: str
    footer_color: str = Field(..., pattern=HEX_COLOR)
    footer_text_color: str = Field(..., pattern=HEX_COLOR)
    background_color: str = Field(..., pattern=HEX_COLOR)
    background_image_url: Optional[str] = None
    primary_color: str = Field(..., pattern=HEX_COLOR)
    secondary_color: str = Field(..., pattern=HEX_COLOR)
    text_color: str = Field(..., pattern=HEX_COLOR)
    is_active: bool


class LayoutUpdate(BaseModel):
    name: Optional[str] = None
    header_enabled: Optional[bool] = None
    header_text: Optional[str] = None
    header_color: Optional[str] = Field(None, pattern=HEX_COLOR)
    header_text_color: Optional[str] = Field(None, pattern=HEX_COLOR)
    footer_enabled: Optional[bool] = None
    footer_text: Optional[str] = None
    footer_color: Optional[str] = Field(None, pattern=HEX_COLOR)
    footer_text_color: Optional[str] = Field(None, pattern=HEX_COLOR)
    background_color: Optional[str] = Field(None, pattern=HEX_COLOR)
    background_image_url: Optional[str] = None
    primary_color: Optional[str] = Field(None, pattern=HEX_COLOR)
    secondary_color: Optional[str] = Field(None, pattern=HEX_COLOR)
    text_color: Optional[str] = Field(None, pattern=HEX_COLOR)


# -------------------- System settings --------------------

class SystemSettingsRecord(_Record):
    site_name: str
    logo_url: Optional[str] = None
    company_name: str
    language: Literal["de", "en"]
    timezone: str
    slideshow_interval: int = Field(..., ge=1)
    auto_checkout_time: int = Field(..., ge=0, le=23)
    max_upload_size: int = Field(..., ge=1)
    tablet_display_mode: Literal["auto", "landscape", "portrait"]
    visitor_display_limit: int = Field(..., ge=1)
    enable_notifications: bool
    enable_auto_checkout: bool

    @field_validator("timezone")
    @classmethod
    def known_timezone(cls, value):
        return _check_timezone(value)


class SettingsUpdate(BaseModel):
    site_name: Optional[str] = None
    logo_url: Optional[str] = None
    company_name: Optional[str] = None
    language: Optional[Literal["de", "en"]] = None
    timezone: Optional[str] = None
    slideshow_interval: Optional[int] = Field(None, ge=1)
    auto_checkout_time: Optional[int] = Field(None, ge=0, le=23)
    max_upload_size: Optional[int] = Field(None, ge=1)
    tablet_display_mode: Optional[Literal["auto", "landscape", "portrait"]] = None
    visitor_display_limit: Optional[int] = Field(None, ge=1)
    enable_notifications: Optional[bool] = None
    enable_auto_checkout: Optional[bool] = None

    @field_validator("timezone")
    @classmethod
    def known_timezone(cls, value):
        return _check_timezone(value)


# -------------------- View models --------------------

class VisitorStats(BaseModel):
    """Dashboard counters."""
    today_count: int = 0
    active_count: int = 0
    week_count: int = 0
    average_stay: int = Field(0, description="Average completed stay in whole minutes")


class DashboardOut(BaseModel):
    stats: VisitorStats
    active_visitors: List[VisitorRecord]
    recent_visitors: List[VisitorRecord]


class DisplaySnapshot(BaseModel):
    """Everything a kiosk display renders."""
    site_name: str
    company_name: str
    layout: LayoutConfigRecord
    slides: List[SlideshowItemRecord]
    visitors: List[VisitorRecord]
    slideshow_interval: int
    generated_at: datetime.datetime


class NoticeResponse(BaseModel, Generic[T]):
    """Result of an action together with the notice the screen shows."""
    notice: str
    data: Optional[T] = None


class AutoCheckoutResult(BaseModel):
    checked_out: int
