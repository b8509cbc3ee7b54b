# APScheduler maintenance runner
from __future__ import annotations
import logging
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from analysis.jobs.engagement_report import EngagementReporter
from core.config import settings
from core.logging import setup_json_logging
from jobs.cleanup_interactions import run as cleanup_interactions

log = logging.getLogger("runner")


def safe(fn):
    def _wrap():
        try:
            fn()
        except Exception:
            log.exception("Job failed: %s", getattr(fn, "__name__", "unknown"))
    _wrap.__name__ = getattr(fn, "__name__", "job")
    return _wrap


def engagement_report():
    with EngagementReporter() as reporter:
        reporter.build_report(period="week")


def build_scheduler() -> BlockingScheduler:
    sched = BlockingScheduler(timezone="UTC")
    # daily at 03:00
    sched.add_job(safe(cleanup_interactions), CronTrigger(hour="3", minute="0"), id="cleanup_interactions")
    # every hour at minute 15
    sched.add_job(safe(engagement_report), CronTrigger(minute="15"), id="engagement_report")
    return sched


if __name__ == "__main__":
    setup_json_logging(settings.log_level)
    sched = build_scheduler()
    log.info("Scheduler starting (UTC)...")
    try:
        sched.start()
    except (KeyboardInterrupt, SystemExit):
        log.info("Scheduler stopped.")
