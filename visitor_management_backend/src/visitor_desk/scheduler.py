from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
import logging

from .exceptions import VisitorDeskError

logger = logging.getLogger(__name__)


def run_auto_checkout(desk) -> int:
    """Scheduled job: end visits past the configured checkout hour."""
    try:
        return desk.visitors.auto_checkout()
    except VisitorDeskError as e:
        logger.error(f"Auto-checkout failed: {e}")
        return 0


def start_scheduler(desk, poll_minutes: int) -> BackgroundScheduler:
    """Start the auto-checkout job in a background thread."""
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        run_auto_checkout,
        trigger=IntervalTrigger(minutes=poll_minutes),
        args=[desk],
        id="auto_checkout",
        name="Check out visitors after the auto-checkout hour",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(f"Scheduler started, auto-checkout every {poll_minutes} min")
    return scheduler


def stop_scheduler(scheduler: BackgroundScheduler):
    """Stop scheduler without waiting for running jobs"""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
