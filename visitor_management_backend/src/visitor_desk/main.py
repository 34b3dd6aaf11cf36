from fastapi import FastAPI, APIRouter, Depends, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.status import (
    HTTP_201_CREATED,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_502_BAD_GATEWAY,
)
from contextlib import asynccontextmanager
from typing import List, Optional
import asyncio
import logging
import time

from .config import Settings, get_settings
from .exceptions import AlreadyCheckedOut, MalformedRecord, NotFound, RecordValidationError, StoreError, VisitorDeskError
from .notices import notice
from .rotator import SlideRotator
from .scheduler import start_scheduler, stop_scheduler
from .schemas import (
    AutoCheckoutResult,
    DashboardOut,
    DisplaySnapshot,
    LayoutConfigRecord,
    LayoutUpdate,
    NoticeResponse,
    SettingsUpdate,
    SlideCreate,
    SlideMove,
    SlideshowItemRecord,
    SlideUpdate,
    SystemSettingsRecord,
    VisitorCheckIn,
    VisitorRecord,
)
from .services import VisitorDesk
from .store import MemoryRecordStore, build_record_store

logger = logging.getLogger(__name__)

OPENAPI_TAGS = [
    {"name": "visitor", "description": "Public check-in and check-out"},
    {"name": "admin", "description": "Admin dashboard, slideshow, layout and settings"},
    {"name": "display", "description": "Tablet kiosk display"},
]

ERROR_STATUS = [
    (NotFound, HTTP_404_NOT_FOUND),
    (AlreadyCheckedOut, HTTP_409_CONFLICT),
    (MalformedRecord, HTTP_502_BAD_GATEWAY),
    (RecordValidationError, HTTP_422_UNPROCESSABLE_ENTITY),
    (StoreError, HTTP_502_BAD_GATEWAY),
]

router = APIRouter()


# -------------------- Dependencies --------------------

def get_desk(request: Request) -> VisitorDesk:
    return request.app.state.desk


def _language(desk: VisitorDesk) -> str:
    return desk.settings.refresh().language


# -------------------- Health Check --------------------

# PUBLIC_INTERFACE
@router.get("/", tags=["admin"])
def health_check(request: Request):
    """
    Health check endpoint.
    ---
    Returns {"message": "Healthy"} and whether the app runs on demo data.
    """
    return {"message": "Healthy", "demo_mode": request.app.state.demo_mode}


# -------------------- Visitor Check-in / Check-out --------------------

# PUBLIC_INTERFACE
@router.post(
    "/api/visitors",
    response_model=NoticeResponse[VisitorRecord],
    status_code=HTTP_201_CREATED,
    tags=["visitor"],
)
def check_in(payload: VisitorCheckIn, desk: VisitorDesk = Depends(get_desk)):
    """
    Check-in form submission.
    Creates an active visitor record starting now and assigns a badge number.
    """
    visitor = desk.visitors.check_in(payload)
    return NoticeResponse[VisitorRecord](notice=notice("check_in_success", _language(desk)), data=visitor)


# PUBLIC_INTERFACE
@router.get("/api/visitors/active", response_model=List[VisitorRecord], tags=["visitor"])
def list_active_visitors(limit: Optional[int] = Query(None, ge=1), desk: VisitorDesk = Depends(get_desk)):
    """
    Visitors currently in the building, newest first.
    """
    return desk.visitors.list_active(limit=limit)


# PUBLIC_INTERFACE
@router.post(
    "/api/visitors/{visitor_id}/checkout",
    response_model=NoticeResponse[VisitorRecord],
    tags=["visitor"],
)
def check_out(visitor_id: str, desk: VisitorDesk = Depends(get_desk)):
    """
    Ends a visit. A second checkout of the same visitor answers 409.
    """
    visitor = desk.visitors.check_out(visitor_id)
    return NoticeResponse[VisitorRecord](notice=notice("check_out_success", _language(desk)), data=visitor)


# -------------------- Admin Dashboard --------------------

# PUBLIC_INTERFACE
@router.get("/api/admin/visitors", response_model=List[VisitorRecord], tags=["admin"])
def get_visitors(
    skip: int = Query(0, ge=0),
    limit: int = Query(25, ge=1),
    desk: VisitorDesk = Depends(get_desk),
):
    """
    List all visitors (newest first, paginated).
    """
    return desk.visitors.list_all(skip=skip, limit=limit)


# PUBLIC_INTERFACE
@router.get("/api/admin/dashboard", response_model=DashboardOut, tags=["admin"])
def get_dashboard(desk: VisitorDesk = Depends(get_desk)):
    """
    Dashboard counters plus the active and most recent visitors.
    """
    return desk.visitors.dashboard()


# PUBLIC_INTERFACE
@router.post("/api/admin/auto-checkout", response_model=NoticeResponse[AutoCheckoutResult], tags=["admin"])
def trigger_auto_checkout(desk: VisitorDesk = Depends(get_desk)):
    """
    Runs the auto-checkout job immediately.
    """
    count = desk.visitors.auto_checkout()
    return NoticeResponse[AutoCheckoutResult](
        notice=notice("auto_checkout_done", _language(desk)),
        data=AutoCheckoutResult(checked_out=count),
    )


# -------------------- Slideshow Management --------------------

# PUBLIC_INTERFACE
@router.get("/api/admin/slides", response_model=List[SlideshowItemRecord], tags=["admin"])
def list_slides(desk: VisitorDesk = Depends(get_desk)):
    """
    All slides in display order, inactive ones included.
    """
    return desk.slides.list_all()


# PUBLIC_INTERFACE
@router.post(
    "/api/admin/slides",
    response_model=NoticeResponse[SlideshowItemRecord],
    status_code=HTTP_201_CREATED,
    tags=["admin"],
)
def create_slide(payload: SlideCreate, desk: VisitorDesk = Depends(get_desk)):
    """
    Adds a slide at the end of the slideshow.
    """
    slide = desk.slides.create(payload)
    return NoticeResponse[SlideshowItemRecord](notice=notice("slide_created", _language(desk)), data=slide)


# PUBLIC_INTERFACE
@router.patch("/api/admin/slides/{slide_id}", response_model=NoticeResponse[SlideshowItemRecord], tags=["admin"])
def update_slide(slide_id: str, payload: SlideUpdate, desk: VisitorDesk = Depends(get_desk)):
    slide = desk.slides.update(slide_id, payload)
    return NoticeResponse[SlideshowItemRecord](notice=notice("slide_updated", _language(desk)), data=slide)


# PUBLIC_INTERFACE
@router.delete("/api/admin/slides/{slide_id}", response_model=NoticeResponse[str], tags=["admin"])
def delete_slide(slide_id: str, desk: VisitorDesk = Depends(get_desk)):
    desk.slides.delete(slide_id)
    return NoticeResponse[str](notice=notice("slide_deleted", _language(desk)), data=slide_id)


# PUBLIC_INTERFACE
@router.post(
    "/api/admin/slides/{slide_id}/toggle",
    response_model=NoticeResponse[SlideshowItemRecord],
    tags=["admin"],
)
def toggle_slide(slide_id: str, desk: VisitorDesk = Depends(get_desk)):
    """
    Shows or hides a slide on the kiosk display.
    """
    slide = desk.slides.toggle_active(slide_id)
    key = "slide_activated" if slide.is_active else "slide_deactivated"
    return NoticeResponse[SlideshowItemRecord](notice=notice(key, _language(desk)), data=slide)


# PUBLIC_INTERFACE
@router.post(
    "/api/admin/slides/{slide_id}/move",
    response_model=NoticeResponse[List[SlideshowItemRecord]],
    tags=["admin"],
)
def move_slide(slide_id: str, payload: SlideMove, desk: VisitorDesk = Depends(get_desk)):
    """
    Moves a slide one position up or down; returns the reordered list.
    """
    slides = desk.slides.move(slide_id, payload.direction)
    return NoticeResponse[List[SlideshowItemRecord]](notice=notice("slide_moved", _language(desk)), data=slides)


# -------------------- Layout & Settings --------------------

# PUBLIC_INTERFACE
@router.get("/api/admin/layout", response_model=LayoutConfigRecord, tags=["admin"])
def get_layout(desk: VisitorDesk = Depends(get_desk)):
    """
    Active layout; the standard layout is created on first access.
    """
    return desk.layout.get_active()


# PUBLIC_INTERFACE
@router.put("/api/admin/layout/{layout_id}", response_model=NoticeResponse[LayoutConfigRecord], tags=["admin"])
def save_layout(layout_id: str, payload: LayoutUpdate, desk: VisitorDesk = Depends(get_desk)):
    layout = desk.layout.save(layout_id, payload)
    return NoticeResponse[LayoutConfigRecord](notice=notice("layout_saved", _language(desk)), data=layout)


# PUBLIC_INTERFACE
@router.get("/api/admin/settings", response_model=SystemSettingsRecord, tags=["admin"])
def get_system_settings(desk: VisitorDesk = Depends(get_desk)):
    """
    System settings; defaults are created on first access.
    """
    return desk.settings.get()


# PUBLIC_INTERFACE
@router.put("/api/admin/settings/{settings_id}", response_model=NoticeResponse[SystemSettingsRecord], tags=["admin"])
def save_system_settings(settings_id: str, payload: SettingsUpdate, desk: VisitorDesk = Depends(get_desk)):
    settings = desk.settings.save(settings_id, payload)
    return NoticeResponse[SystemSettingsRecord](notice=notice("settings_saved", _language(desk)), data=settings)


# -------------------- Kiosk Display --------------------

# PUBLIC_INTERFACE
@router.get("/api/display", response_model=DisplaySnapshot, tags=["display"])
def get_display_snapshot(desk: VisitorDesk = Depends(get_desk)):
    """
    Content for a kiosk display that rotates slides on its own.
    """
    return desk.display_snapshot()


# PUBLIC_INTERFACE
@router.websocket("/ws/display")
async def display_feed(websocket: WebSocket):
    """
    Live feed for one kiosk display.
    Sends {"type": "snapshot"} on connect and on every refresh, and
    {"type": "slide"} each time the slideshow advances. The display's slide
    timer is cleared when it disconnects.
    """
    desk: VisitorDesk = websocket.app.state.desk
    refresh_seconds = websocket.app.state.settings.DISPLAY_REFRESH_SECONDS
    await websocket.accept()

    try:
        snapshot = await run_in_threadpool(desk.display_snapshot)
    except VisitorDeskError as ex:
        logger.error(f"Display feed could not load content: {ex}")
        language = await run_in_threadpool(_language, desk)
        await websocket.send_json({"type": "error", "notice": notice(ex.notice_key, language)})
        await websocket.close(code=1011)
        return

    async def send_slide(index, slide):
        await websocket.send_json({"type": "slide", "index": index, "slide": jsonable_encoder(slide)})

    rotator = SlideRotator(snapshot.slides, snapshot.slideshow_interval, on_change=send_slide)

    async def refresh():
        while True:
            await asyncio.sleep(refresh_seconds)
            try:
                fresh = await run_in_threadpool(desk.display_snapshot)
            except VisitorDeskError as ex:
                logger.warning(f"Display refresh failed, keeping previous content: {ex}")
                continue
            rotator.replace_slides(fresh.slides)
            rotator.interval = fresh.slideshow_interval
            await websocket.send_json(
                {"type": "snapshot", "index": rotator.index, "snapshot": jsonable_encoder(fresh)}
            )

    await websocket.send_json({"type": "snapshot", "index": rotator.index, "snapshot": jsonable_encoder(snapshot)})
    rotator.start()
    refresher = asyncio.create_task(refresh())
    try:
        while True:
            # displays only listen; reading detects the disconnect
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("Kiosk display disconnected")
    finally:
        refresher.cancel()
        await asyncio.gather(refresher, return_exceptions=True)
        await rotator.stop()


# -------------------- Error Handling --------------------

async def visitor_desk_error_handler(request: Request, exc: VisitorDeskError):
    status_code = next((code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 500)
    language = await run_in_threadpool(_language, request.app.state.desk)
    return JSONResponse(
        status_code=status_code,
        content={"notice": notice(exc.notice_key, language), "error": str(exc)},
    )


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    language = await run_in_threadpool(_language, request.app.state.desk)
    return JSONResponse(
        status_code=HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "notice": notice("invalid_record", language),
            "error": "request validation failed",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


# -------------------- App Factory --------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = None
    if app.state.settings.ENABLE_SCHEDULER:
        scheduler = start_scheduler(app.state.desk, app.state.settings.AUTO_CHECKOUT_POLL_MINUTES)
    yield
    if scheduler is not None:
        stop_scheduler(scheduler)


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, store=None) -> FastAPI:
    """
    Builds the FastAPI app.

    Args:
        settings: Deployment settings; read from the environment when omitted.
        store: Record store to use; built from the settings when omitted.
    """
    settings = settings or get_settings()
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    store = store if store is not None else build_record_store(settings)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="API for the visitor desk: check-in form, admin dashboard, slideshow and kiosk display.",
        version="1.0.0",
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.desk = VisitorDesk(store, default_timezone=settings.DEFAULT_TIMEZONE)
    app.state.demo_mode = isinstance(store, MemoryRecordStore)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],  # Restrict to frontend origin
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Process-Time"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log each request with its status and timing"""
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = f"{process_time:.4f}"
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({process_time:.3f}s)")
        return response

    app.add_exception_handler(VisitorDeskError, visitor_desk_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.include_router(router)
    return app


app = create_app()
