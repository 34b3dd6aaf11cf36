from __future__ import annotations

import datetime

import pytest

from visitor_desk.exceptions import AlreadyCheckedOut, MalformedRecord, NotFound, RecordValidationError, StoreError
from visitor_desk.schemas import LayoutUpdate, SettingsUpdate, SlideCreate, SlideUpdate, VisitorCheckIn
from visitor_desk.services import VisitorDesk
from visitor_desk.store import DEFAULT_SYSTEM_SETTINGS, MemoryRecordStore, StoreResult

from conftest import NOW, FailingStore, FakeClock

UTC = datetime.timezone.utc


def local(hour: int, minute: int = 0) -> datetime.datetime:
    # Europe/Berlin is UTC+2 on 2026-10-18
    return datetime.datetime(2026, 10, 18, hour - 2, minute, tzinfo=UTC)


# -------------------- Visitors --------------------

def test_check_in_creates_active_visitor(desk):
    visitor = desk.visitors.check_in(
        VisitorCheckIn(name="  Max Mustermann ", company="Beispiel GmbH", purpose="", host="  ", notes=None)
    )

    assert visitor.name == "Max Mustermann"
    assert visitor.company == "Beispiel GmbH"
    assert visitor.purpose is None
    assert visitor.host is None
    assert visitor.is_active
    assert visitor.end_time is None
    assert visitor.start_time == NOW
    assert visitor.badge_number == "B001"


def test_badge_numbers_count_todays_visitors(desk, clock):
    clock.set(NOW - datetime.timedelta(days=1))
    desk.visitors.check_in(VisitorCheckIn(name="Yesterday"))

    clock.set(NOW)
    first = desk.visitors.check_in(VisitorCheckIn(name="Ada"))
    second = desk.visitors.check_in(VisitorCheckIn(name="Grace"))

    assert first.badge_number == "B001"
    assert second.badge_number == "B002"


def test_blank_name_is_rejected(desk):
    with pytest.raises(RecordValidationError) as excinfo:
        desk.visitors.check_in(VisitorCheckIn(name="   "))

    assert excinfo.value.notice_key == "name_required"
    assert desk.visitors.list_all() == []


def test_check_out_ends_visit_once(desk, clock):
    visitor = desk.visitors.check_in(VisitorCheckIn(name="Ada"))
    clock.advance(minutes=45)

    checked_out = desk.visitors.check_out(visitor.id)

    assert not checked_out.is_active
    assert checked_out.end_time == NOW + datetime.timedelta(minutes=45)

    clock.advance(minutes=10)
    with pytest.raises(AlreadyCheckedOut):
        desk.visitors.check_out(visitor.id)

    stored = desk.visitors.list_all()[0]
    assert stored.end_time == checked_out.end_time
    assert not stored.is_active


def test_check_out_unknown_visitor(desk):
    with pytest.raises(NotFound):
        desk.visitors.check_out("missing")


def test_list_active_newest_first(desk, clock):
    for name in ("first", "second", "third"):
        desk.visitors.check_in(VisitorCheckIn(name=name))
        clock.advance(minutes=5)
    desk.visitors.check_out(desk.visitors.list_all()[0].id)

    active = desk.visitors.list_active()

    assert [v.name for v in active] == ["second", "first"]
    assert [v.name for v in desk.visitors.list_active(limit=1)] == ["second"]


def test_dashboard(desk, clock):
    clock.set(local(9))
    done = desk.visitors.check_in(VisitorCheckIn(name="Ada"))
    clock.set(local(10, 30))
    desk.visitors.check_out(done.id)
    clock.set(local(11))
    desk.visitors.check_in(VisitorCheckIn(name="Grace"))
    clock.set(local(12))

    dashboard = desk.visitors.dashboard()

    assert dashboard.stats.today_count == 2
    assert dashboard.stats.active_count == 1
    assert dashboard.stats.week_count == 2
    assert dashboard.stats.average_stay == 90
    assert [v.name for v in dashboard.active_visitors] == ["Grace"]
    assert [v.name for v in dashboard.recent_visitors] == ["Grace", "Ada"]


def test_auto_checkout_after_configured_hour(desk, clock):
    clock.set(local(8))
    early = desk.visitors.check_in(VisitorCheckIn(name="Early"))

    clock.set(local(17))
    assert desk.visitors.auto_checkout() == 0

    clock.set(local(18, 30))
    late = desk.visitors.check_in(VisitorCheckIn(name="Late"))
    clock.set(local(19))

    assert desk.visitors.auto_checkout() == 1
    assert [v.id for v in desk.visitors.list_active()] == [late.id]
    ended = next(v for v in desk.visitors.list_all() if v.id == early.id)
    assert ended.end_time == local(19)


def test_auto_checkout_disabled(desk, clock):
    settings = desk.settings.get()
    desk.settings.save(settings.id, SettingsUpdate(enable_auto_checkout=False))
    clock.set(local(8))
    desk.visitors.check_in(VisitorCheckIn(name="Ada"))
    clock.set(local(22))

    assert desk.visitors.auto_checkout() == 0
    assert len(desk.visitors.list_active()) == 1


# -------------------- Slideshow --------------------

def _slides(desk, *titles):
    return [desk.slides.create(SlideCreate(title=t)) for t in titles]


def test_create_appends_in_order(desk):
    a, b = _slides(desk, "A", "B")

    assert (a.order, b.order) == (1, 2)
    assert b.display_time == 5
    assert b.background_color == "#1e40af"


def test_create_after_delete_keeps_orders_unique(desk):
    a, b, c = _slides(desk, "A", "B", "C")
    desk.slides.delete(a.id)

    d = desk.slides.create(SlideCreate(title="D"))

    assert d.order == 4
    assert [s.title for s in desk.slides.list_all()] == ["B", "C", "D"]


def test_update_is_partial(desk):
    (slide,) = _slides(desk, "A")

    updated = desk.slides.update(slide.id, SlideUpdate(content="Hallo", display_time=8))

    assert updated.title == "A"
    assert updated.content == "Hallo"
    assert updated.display_time == 8
    assert updated.order == slide.order


def test_toggle_and_list_active(desk):
    a, b = _slides(desk, "A", "B")

    hidden = desk.slides.toggle_active(a.id)

    assert not hidden.is_active
    assert [s.title for s in desk.slides.list_active()] == ["B"]
    assert desk.slides.toggle_active(a.id).is_active


def test_move_swaps_with_neighbour(desk):
    a, b, c = _slides(desk, "A", "B", "C")

    assert [s.title for s in desk.slides.move(c.id, "up")] == ["A", "C", "B"]
    assert [s.title for s in desk.slides.move(a.id, "down")] == ["C", "A", "B"]


def test_move_at_edges_is_noop(desk):
    a, b = _slides(desk, "A", "B")

    assert [s.title for s in desk.slides.move(a.id, "up")] == ["A", "B"]
    assert [s.title for s in desk.slides.move(b.id, "down")] == ["A", "B"]


def test_missing_slide(desk):
    with pytest.raises(NotFound):
        desk.slides.update("missing", SlideUpdate(title="x"))
    with pytest.raises(NotFound):
        desk.slides.delete("missing")
    with pytest.raises(NotFound):
        desk.slides.move("missing", "up")


# -------------------- Layout & settings --------------------

def test_layout_default_created_once(desk):
    first = desk.layout.get_active()
    second = desk.layout.get_active()

    assert first.id == second.id
    assert first.name == "Standard Layout"
    assert first.primary_color == "#1e40af"


def test_layout_save(desk):
    layout = desk.layout.get_active()

    saved = desk.layout.save(layout.id, LayoutUpdate(header_text="Willkommen", footer_enabled=False))

    assert saved.header_text == "Willkommen"
    assert not saved.footer_enabled
    assert saved.primary_color == layout.primary_color
    with pytest.raises(NotFound):
        desk.layout.save("missing", LayoutUpdate(header_text="x"))


def test_settings_defaults_and_save(desk):
    settings = desk.settings.get()
    assert settings.company_name == "Vitasco GmbH"
    assert settings.slideshow_interval == 10
    assert desk.settings.get().id == settings.id

    saved = desk.settings.save(settings.id, SettingsUpdate(language="en", slideshow_interval=4))

    assert saved.language == "en"
    assert saved.slideshow_interval == 4
    assert desk.settings.language == "en"


def test_display_snapshot_limits_visitors(desk, clock):
    settings = desk.settings.get()
    desk.settings.save(settings.id, SettingsUpdate(visitor_display_limit=2))
    for name in ("a", "b", "c"):
        desk.visitors.check_in(VisitorCheckIn(name=name))
        clock.advance(minutes=1)
    _slides(desk, "A", "B")
    desk.slides.toggle_active(desk.slides.list_all()[0].id)

    snapshot = desk.display_snapshot()

    assert [v.name for v in snapshot.visitors] == ["c", "b"]
    assert [s.title for s in snapshot.slides] == ["B"]
    assert snapshot.company_name == "Vitasco GmbH"
    assert snapshot.layout.name == "Standard Layout"
    assert snapshot.slideshow_interval == 10


# -------------------- Failures --------------------

def test_store_failure_carries_notice_key():
    desk = VisitorDesk(FailingStore())

    with pytest.raises(StoreError) as excinfo:
        desk.visitors.check_in(VisitorCheckIn(name="Ada"))
    assert excinfo.value.notice_key == "check_in_failed"

    with pytest.raises(StoreError) as excinfo:
        desk.visitors.dashboard()
    assert excinfo.value.notice_key == "load_dashboard_failed"

    with pytest.raises(StoreError) as excinfo:
        desk.slides.list_all()
    assert excinfo.value.notice_key == "load_slides_failed"
    assert "connection refused" in str(excinfo.value)


def test_malformed_row_is_rejected_at_the_boundary():
    store = MemoryRecordStore()
    store.insert_one("visitors", {"name": "Broken", "start_time": NOW, "end_time": NOW, "is_active": True})
    desk = VisitorDesk(store)

    with pytest.raises(MalformedRecord):
        desk.visitors.list_all()


# -------------------- Stored settings --------------------

def _store_settings(store, **overrides):
    store.insert_one("system_settings", dict(DEFAULT_SYSTEM_SETTINGS, **overrides))


def test_stored_timezone_sets_the_local_day(store):
    _store_settings(store, language="en", timezone="America/New_York")
    now = datetime.datetime(2026, 10, 18, 5, 0, tzinfo=UTC)
    # 23:00 on the 17th in New York, already the 18th in Berlin
    store.insert_one("visitors", {"name": "Late", "start_time": now - datetime.timedelta(hours=2), "is_active": True})
    store.insert_one("visitors", {"name": "Early", "start_time": now - datetime.timedelta(minutes=30), "is_active": True})
    desk = VisitorDesk(store, default_timezone="Europe/Berlin", clock=FakeClock(now))

    stats = desk.visitors.dashboard().stats

    assert stats.today_count == 1
    assert stats.week_count == 2
    assert desk.settings.language == "en"


def test_stored_timezone_sets_badge_day(store):
    _store_settings(store, timezone="America/New_York")
    now = datetime.datetime(2026, 10, 18, 5, 0, tzinfo=UTC)
    store.insert_one("visitors", {"name": "Late", "start_time": now - datetime.timedelta(hours=2), "is_active": True})
    store.insert_one("visitors", {"name": "Early", "start_time": now - datetime.timedelta(minutes=30), "is_active": True})
    desk = VisitorDesk(store, default_timezone="Europe/Berlin", clock=FakeClock(now))

    visitor = desk.visitors.check_in(VisitorCheckIn(name="Ada"))

    assert visitor.badge_number == "B002"


def test_settings_refresh_keeps_last_values_when_store_fails():
    desk = VisitorDesk(FailingStore(), default_timezone="America/New_York")
    desk.settings.language = "en"

    assert desk.settings.refresh().language == "en"
    assert desk.settings.timezone == "America/New_York"


def test_malformed_old_row_does_not_block_check_in(desk, store):
    yesterday = NOW - datetime.timedelta(days=1)
    store.insert_one("visitors", {"name": "Broken", "start_time": yesterday, "end_time": yesterday, "is_active": True})

    visitor = desk.visitors.check_in(VisitorCheckIn(name="Ada"))

    assert visitor.badge_number == "B001"


class StaleReads:
    """Store that answers the next visitor lookup with rows read earlier."""

    def __init__(self, store, rows):
        self.store = store
        self.rows = rows

    def fetch_all(self, table, filters=None, **kwargs):
        if self.rows is not None and table == "visitors" and filters and "id" in filters:
            rows, self.rows = self.rows, None
            return StoreResult.success(rows)
        return self.store.fetch_all(table, filters=filters, **kwargs)

    def __getattr__(self, name):
        return getattr(self.store, name)


def test_concurrent_check_out_ends_visit_once(desk, store, clock):
    visitor = desk.visitors.check_in(VisitorCheckIn(name="Ada"))
    before = store.fetch_all("visitors", filters={"id": visitor.id}).data
    clock.advance(minutes=30)
    first = desk.visitors.check_out(visitor.id)

    clock.advance(minutes=5)
    other = VisitorDesk(StaleReads(store, before), default_timezone="Europe/Berlin", clock=clock)
    with pytest.raises(AlreadyCheckedOut):
        other.visitors.check_out(visitor.id)

    stored = desk.visitors.list_all()[0]
    assert stored.end_time == first.end_time
    assert not stored.is_active


def test_list_all_pages(desk, clock):
    for name in ("a", "b", "c", "d"):
        desk.visitors.check_in(VisitorCheckIn(name=name))
        clock.advance(minutes=1)

    assert [v.name for v in desk.visitors.list_all(skip=1, limit=2)] == ["c", "b"]
