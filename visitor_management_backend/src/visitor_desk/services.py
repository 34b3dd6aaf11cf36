"""
Services behind the check-in form, the admin screens and the kiosk display.

Each service issues record store calls and validates every row it gets back
against the schemas before handing it on. Store failures surface as
StoreError carrying the notice key for the failed action.
"""

import datetime
import logging
from typing import List, Optional
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from .exceptions import (
    AlreadyCheckedOut,
    MalformedRecord,
    NotFound,
    RecordValidationError,
    StoreError,
    VisitorDeskError,
)
from .schemas import (
    DashboardOut,
    DisplaySnapshot,
    LayoutConfigRecord,
    LayoutUpdate,
    SettingsUpdate,
    SlideCreate,
    SlideshowItemRecord,
    SlideUpdate,
    SystemSettingsRecord,
    VisitorCheckIn,
    VisitorRecord,
)
from .stats import compute_visitor_stats
from .store import DEFAULT_LAYOUT, DEFAULT_SYSTEM_SETTINGS, RecordStore, utcnow

logger = logging.getLogger(__name__)

RECENT_VISITORS = 10


def _unwrap(result, notice_key: str):
    if not result.ok:
        raise StoreError(result.error, notice_key)
    return result.data


def _validate(schema, row):
    try:
        return schema.model_validate(row)
    except ValidationError as ex:
        logger.error(f"Malformed {schema.__name__} row {row.get('id')}: {ex}")
        raise MalformedRecord(f"malformed {schema.__name__} row: {ex}") from ex


def _validate_all(schema, rows) -> list:
    return [_validate(schema, row) for row in rows]


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


# PUBLIC_INTERFACE
class SettingsService:
    """
    System settings singleton.

    `language` and `timezone` hold the values from the last successful read.
    Callers that depend on them go through `refresh()`, which reloads them
    from the store and keeps the last known values when the store fails.
    """

    def __init__(self, store: RecordStore, default_timezone: str = "Europe/Berlin"):
        self.store = store
        self.language = DEFAULT_SYSTEM_SETTINGS["language"]
        self.timezone = default_timezone

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def _remember(self, record: SystemSettingsRecord) -> SystemSettingsRecord:
        self.language = record.language
        self.timezone = record.timezone
        return record

    def get(self) -> SystemSettingsRecord:
        """Returns the settings, creating the defaults on first use."""
        rows = _unwrap(
            self.store.fetch_all("system_settings", order_by="created_at", limit=1),
            "load_settings_failed",
        )
        if rows:
            return self._remember(_validate(SystemSettingsRecord, rows[0]))
        logger.info("No system settings found, creating defaults")
        values = dict(DEFAULT_SYSTEM_SETTINGS, timezone=self.timezone)
        row = _unwrap(self.store.insert_one("system_settings", values), "load_settings_failed")
        return self._remember(_validate(SystemSettingsRecord, row))

    def refresh(self) -> "SettingsService":
        """Reloads language and timezone from the store."""
        try:
            self.get()
        except VisitorDeskError as ex:
            logger.warning(f"Could not reload system settings, using {self.language}/{self.timezone}: {ex}")
        return self

    def save(self, settings_id: str, payload: SettingsUpdate) -> SystemSettingsRecord:
        values = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None or k == "logo_url"}
        row = _unwrap(self.store.update_by_id("system_settings", settings_id, values), "save_failed")
        if row is None:
            raise NotFound(f"system settings {settings_id} not found")
        logger.info(f"System settings {settings_id} updated: {sorted(values)}")
        return self._remember(_validate(SystemSettingsRecord, row))


# PUBLIC_INTERFACE
class VisitorService:
    """
    Check-in, check-out and the dashboard view over the visitors table.
    """

    def __init__(self, store: RecordStore, settings: SettingsService, clock=utcnow):
        self.store = store
        self.settings = settings
        self.clock = clock

    def _get(self, visitor_id: str, notice_key: str) -> VisitorRecord:
        rows = _unwrap(self.store.fetch_all("visitors", filters={"id": visitor_id}), notice_key)
        if not rows:
            raise NotFound(f"visitor {visitor_id} not found")
        return _validate(VisitorRecord, rows[0])

    def _next_badge_number(self, now: datetime.datetime) -> str:
        midnight = now.astimezone(self.settings.tzinfo).replace(hour=0, minute=0, second=0, microsecond=0)
        # stored times are UTC; SQLite compares them as text
        since = midnight.astimezone(datetime.timezone.utc)
        rows = _unwrap(self.store.fetch_all("visitors", at_least={"start_time": since}), "check_in_failed")
        return f"B{len(rows) + 1:03d}"

    def check_in(self, payload: VisitorCheckIn) -> VisitorRecord:
        """
        Registers a visitor as present from now on.
        Blank optional fields are stored as null; a blank name is rejected.
        """
        name = payload.name.strip()
        if not name:
            raise RecordValidationError("name is required", "name_required")
        self.settings.refresh()
        now = self.clock()
        values = {
            "name": name,
            "company": _blank_to_none(payload.company),
            "purpose": _blank_to_none(payload.purpose),
            "host": _blank_to_none(payload.host),
            "notes": _blank_to_none(payload.notes),
            "start_time": now,
            "end_time": None,
            "is_active": True,
            "badge_number": self._next_badge_number(now),
        }
        row = _unwrap(self.store.insert_one("visitors", values), "check_in_failed")
        visitor = _validate(VisitorRecord, row)
        logger.info(f"Visitor {visitor.id} checked in (badge {visitor.badge_number})")
        return visitor

    def check_out(self, visitor_id: str) -> VisitorRecord:
        """
        Ends a visit. Checking out twice is an error and writes nothing; the
        write only applies while the visitor is still active, so concurrent
        checkouts end the visit once.
        """
        visitor = self._get(visitor_id, "check_out_failed")
        if visitor.is_active:
            row = _unwrap(
                self.store.update_by_id(
                    "visitors",
                    visitor_id,
                    {"end_time": self.clock(), "is_active": False},
                    expected={"is_active": True},
                ),
                "check_out_failed",
            )
            if row is not None:
                logger.info(f"Visitor {visitor_id} checked out")
                return _validate(VisitorRecord, row)
            # ended or removed since it was read
            visitor = self._get(visitor_id, "check_out_failed")
        raise AlreadyCheckedOut(f"visitor {visitor_id} already checked out at {visitor.end_time}")

    def list_active(self, limit: Optional[int] = None) -> List[VisitorRecord]:
        rows = _unwrap(
            self.store.fetch_all(
                "visitors", filters={"is_active": True}, order_by="start_time", descending=True, limit=limit
            ),
            "load_visitors_failed",
        )
        return _validate_all(VisitorRecord, rows)

    def list_all(self, skip: int = 0, limit: Optional[int] = None) -> List[VisitorRecord]:
        """All visitors, newest first; `skip` and `limit` page through them."""
        rows = _unwrap(
            self.store.fetch_all("visitors", order_by="start_time", descending=True, limit=limit, offset=skip),
            "load_visitors_failed",
        )
        return _validate_all(VisitorRecord, rows)

    def dashboard(self, now: Optional[datetime.datetime] = None) -> DashboardOut:
        self.settings.refresh()
        try:
            visitors = self.list_all()
        except StoreError as ex:
            raise StoreError(str(ex), "load_dashboard_failed") from ex
        stats = compute_visitor_stats(visitors, now=now or self.clock(), tz=self.settings.tzinfo)
        return DashboardOut(
            stats=stats,
            active_visitors=[v for v in visitors if v.is_active],
            recent_visitors=visitors[:RECENT_VISITORS],
        )

    def auto_checkout(self, now: Optional[datetime.datetime] = None) -> int:
        """
        Checks out everyone who arrived before today's auto-checkout hour,
        once that hour has passed. Returns how many visits were ended.
        """
        settings = self.settings.get()
        if not settings.enable_auto_checkout:
            return 0
        local_now = (now or self.clock()).astimezone(self.settings.tzinfo)
        if local_now.hour < settings.auto_checkout_time:
            return 0
        cutoff = local_now.replace(hour=settings.auto_checkout_time, minute=0, second=0, microsecond=0)
        count = 0
        for visitor in self.list_active():
            if visitor.start_time >= cutoff:
                continue
            try:
                self.check_out(visitor.id)
            except (AlreadyCheckedOut, NotFound):
                continue
            count += 1
        if count:
            logger.info(f"Auto-checkout ended {count} visit(s)")
        return count


# PUBLIC_INTERFACE
class SlideshowService:
    """
    Slideshow content management. Slides are kept in `order` ascending.
    """

    NULLABLE = ("content", "image_url")

    def __init__(self, store: RecordStore):
        self.store = store

    def list_all(self) -> List[SlideshowItemRecord]:
        rows = _unwrap(self.store.fetch_all("slideshow_items", order_by="order"), "load_slides_failed")
        return _validate_all(SlideshowItemRecord, rows)

    def list_active(self) -> List[SlideshowItemRecord]:
        rows = _unwrap(
            self.store.fetch_all("slideshow_items", filters={"is_active": True}, order_by="order"),
            "load_slides_failed",
        )
        return _validate_all(SlideshowItemRecord, rows)

    def get(self, slide_id: str) -> SlideshowItemRecord:
        rows = _unwrap(self.store.fetch_all("slideshow_items", filters={"id": slide_id}), "load_slides_failed")
        if not rows:
            raise NotFound(f"slide {slide_id} not found")
        return _validate(SlideshowItemRecord, rows[0])

    def create(self, payload: SlideCreate) -> SlideshowItemRecord:
        slides = self.list_all()
        values = payload.model_dump()
        values["order"] = max(s.order for s in slides) + 1 if slides else 1
        row = _unwrap(self.store.insert_one("slideshow_items", values), "save_failed")
        slide = _validate(SlideshowItemRecord, row)
        logger.info(f"Slide {slide.id} created at position {slide.order}")
        return slide

    def update(self, slide_id: str, payload: SlideUpdate) -> SlideshowItemRecord:
        values = {
            k: v for k, v in payload.model_dump(exclude_unset=True).items()
            if v is not None or k in self.NULLABLE
        }
        row = _unwrap(self.store.update_by_id("slideshow_items", slide_id, values), "save_failed")
        if row is None:
            raise NotFound(f"slide {slide_id} not found")
        logger.info(f"Slide {slide_id} updated: {sorted(values)}")
        return _validate(SlideshowItemRecord, row)

    def delete(self, slide_id: str):
        deleted = _unwrap(self.store.delete_by_id("slideshow_items", slide_id), "delete_failed")
        if not deleted:
            raise NotFound(f"slide {slide_id} not found")
        logger.info(f"Slide {slide_id} deleted")

    def toggle_active(self, slide_id: str) -> SlideshowItemRecord:
        slide = self.get(slide_id)
        row = _unwrap(
            self.store.update_by_id("slideshow_items", slide_id, {"is_active": not slide.is_active}),
            "toggle_failed",
        )
        if row is None:
            raise NotFound(f"slide {slide_id} not found")
        return _validate(SlideshowItemRecord, row)

    def move(self, slide_id: str, direction: str) -> List[SlideshowItemRecord]:
        """
        Swaps a slide's order with its neighbour. Moving the first slide up
        or the last one down changes nothing.
        """
        slides = self.list_all()
        index = next((i for i, s in enumerate(slides) if s.id == slide_id), None)
        if index is None:
            raise NotFound(f"slide {slide_id} not found")
        target = index - 1 if direction == "up" else index + 1
        if target < 0 or target >= len(slides):
            return slides
        slide, other = slides[index], slides[target]
        _unwrap(self.store.update_by_id("slideshow_items", slide.id, {"order": other.order}), "move_failed")
        result = self.store.update_by_id("slideshow_items", other.id, {"order": slide.order})
        if not result.ok:
            # put the first slide back so orders stay unique
            self.store.update_by_id("slideshow_items", slide.id, {"order": slide.order})
            raise StoreError(result.error, "move_failed")
        return self.list_all()


# PUBLIC_INTERFACE
class LayoutService:
    """
    Active layout/branding configuration.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    def get_active(self) -> LayoutConfigRecord:
        """Returns the active layout, creating the standard one when none exists."""
        rows = _unwrap(
            self.store.fetch_all("layout_configs", filters={"is_active": True}, order_by="created_at", limit=1),
            "load_layout_failed",
        )
        if rows:
            return _validate(LayoutConfigRecord, rows[0])
        logger.info("No active layout found, creating the standard layout")
        row = _unwrap(self.store.insert_one("layout_configs", dict(DEFAULT_LAYOUT)), "load_layout_failed")
        return _validate(LayoutConfigRecord, row)

    def save(self, layout_id: str, payload: LayoutUpdate) -> LayoutConfigRecord:
        values = {
            k: v for k, v in payload.model_dump(exclude_unset=True).items()
            if v is not None or k == "background_image_url"
        }
        row = _unwrap(self.store.update_by_id("layout_configs", layout_id, values), "save_failed")
        if row is None:
            raise NotFound(f"layout {layout_id} not found")
        logger.info(f"Layout {layout_id} updated: {sorted(values)}")
        return _validate(LayoutConfigRecord, row)


# PUBLIC_INTERFACE
class VisitorDesk:
    """
    Bundles the services over one record store.
    """

    def __init__(self, store: RecordStore, default_timezone: str = "Europe/Berlin", clock=utcnow):
        self.store = store
        self.clock = clock
        self.settings = SettingsService(store, default_timezone)
        self.visitors = VisitorService(store, self.settings, clock)
        self.slides = SlideshowService(store)
        self.layout = LayoutService(store)

    def display_snapshot(self) -> DisplaySnapshot:
        """Everything the kiosk display shows, read in one pass."""
        settings = self.settings.get()
        return DisplaySnapshot(
            site_name=settings.site_name,
            company_name=settings.company_name,
            layout=self.layout.get_active(),
            slides=self.slides.list_active(),
            visitors=self.visitors.list_active(limit=settings.visitor_display_limit),
            slideshow_interval=settings.slideshow_interval,
            generated_at=self.clock(),
        )
