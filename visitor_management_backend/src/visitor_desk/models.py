"""
SQLAlchemy ORM models for the visitor desk.
Entities: Visitor, SlideshowItem, LayoutConfig, SystemSettings.
"""

import uuid

from sqlalchemy import (
    Column,
    String,
    Integer,
    DateTime,
    Text,
    func,
    Boolean,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _new_id():
    return uuid.uuid4().hex


# PUBLIC_INTERFACE
class Visitor(Base):
    """
    Visitor model.
    One row per check-in; checkout sets end_time and clears is_active.
    """
    __tablename__ = "visitors"

    id = Column(String(32), primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    company = Column(String, nullable=True)
    purpose = Column(String, nullable=True)
    host = Column(String, nullable=True)     # person being visited
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    badge_number = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


# PUBLIC_INTERFACE
class SlideshowItem(Base):
    """
    SlideshowItem model.
    Content shown in rotation on the kiosk display.
    """
    __tablename__ = "slideshow_items"

    id = Column(String(32), primary_key=True, default=_new_id)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=True)
    image_url = Column(String, nullable=True)
    display_time = Column(Integer, nullable=False, default=5)    # seconds
    is_active = Column(Boolean, nullable=False, default=True)
    order = Column(Integer, nullable=False, default=1)
    background_color = Column(String(7), nullable=False, default="#1e40af")
    text_color = Column(String(7), nullable=False, default="#ffffff")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


# PUBLIC_INTERFACE
class LayoutConfig(Base):
    """
    LayoutConfig model.
    Branding for the public screens; one row is active at a time.
    """
    __tablename__ = "layout_configs"

    id = Column(String(32), primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    header_enabled = Column(Boolean, nullable=False, default=True)
    header_text = Column(String, nullable=False, default="")
    header_color = Column(String(7), nullable=False)
    header_text_color = Column(String(7), nullable=False)
    footer_enabled = Column(Boolean, nullable=False, default=True)
    footer_text = Column(String, nullable=False, default="")
    footer_color = Column(String(7), nullable=False)
    footer_text_color = Column(String(7), nullable=False)
    background_color = Column(String(7), nullable=False)
    background_image_url = Column(String, nullable=True)
    primary_color = Column(String(7), nullable=False)
    secondary_color = Column(String(7), nullable=False)
    text_color = Column(String(7), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


# PUBLIC_INTERFACE
class SystemSettings(Base):
    """
    SystemSettings model.
    Singleton row with site-wide settings.
    """
    __tablename__ = "system_settings"

    id = Column(String(32), primary_key=True, default=_new_id)
    site_name = Column(String, nullable=False)
    logo_url = Column(String, nullable=True)
    company_name = Column(String, nullable=False)
    language = Column(String(5), nullable=False, default="de")
    timezone = Column(String, nullable=False, default="Europe/Berlin")
    slideshow_interval = Column(Integer, nullable=False, default=10)    # seconds
    auto_checkout_time = Column(Integer, nullable=False, default=18)    # hour of day
    max_upload_size = Column(Integer, nullable=False, default=20)       # MB
    tablet_display_mode = Column(String, nullable=False, default="auto")
    visitor_display_limit = Column(Integer, nullable=False, default=10)
    enable_notifications = Column(Boolean, nullable=False, default=True)
    enable_auto_checkout = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


TABLES = {
    Visitor.__tablename__: Visitor,
    SlideshowItem.__tablename__: SlideshowItem,
    LayoutConfig.__tablename__: LayoutConfig,
    SystemSettings.__tablename__: SystemSettings,
}
