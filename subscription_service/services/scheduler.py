"""Time-based sweep scheduling.

Three independent jobs on an APScheduler background scheduler:
- expire_subscriptions: fixed interval (hourly by default)
- daily_maintenance_tasks: daily cron (02:00 by default)
- send_expiry_reminders: daily cron (09:00 by default)

Each entry point can also be called directly (ops endpoints, tests).
"""

from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from subscription_service.logging_config import bind_context, get_logger, unbind_context
from subscription_service.models import SchedulerConfig, SweepResult
from subscription_service.services.subscription_engine import SubscriptionEngine

logger = get_logger(__name__)


class SubscriptionScheduler:
    """Drives the lifecycle sweeps on their own clocks.

    A sweep that raises is caught and logged here so the process keeps
    running and the next tick still fires.

    Args:
        engine: Subscription lifecycle engine
        settings: Cadence settings (defaults if missing)
        scheduler: optional pre-built APScheduler scheduler
    """

    def __init__(
            self,
            engine: SubscriptionEngine,
            settings: Optional[SchedulerConfig] = None,
            scheduler: Optional[BackgroundScheduler] = None,
    ):
        self.engine = engine
        self.settings = settings or SchedulerConfig()
        self._scheduler = scheduler or BackgroundScheduler(timezone=self.settings.timezone)

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def _run_sweep(self, name: str, sweep: Callable[[], SweepResult]) -> Optional[SweepResult]:
        bind_context(sweep=name)
        logger.info("sweep_started")
        try:
            result = sweep()
        except Exception as e:
            logger.error(
                "sweep_failed",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return None
        finally:
            unbind_context("sweep")

        if result.error:
            logger.error("sweep_aborted", sweep=name, error=result.error, affected=result.affected)
        elif result.failures:
            logger.warning(
                "sweep_completed_with_failures",
                sweep=name,
                affected=result.affected,
                failed=len(result.failures),
            )
        else:
            logger.info("sweep_completed", sweep=name, selected=result.selected, affected=result.affected)
        return result

    def expire_subscriptions(self) -> Optional[SweepResult]:
        """Expire ACTIVE subscriptions past their end date."""
        return self._run_sweep("expire_subscriptions", self.engine.expire_subscriptions)

    def daily_maintenance_tasks(self) -> Optional[SweepResult]:
        """Log status statistics, then cancel stale PENDING subscriptions."""

        def maintenance() -> SweepResult:
            counts = self.engine.get_status_counts()
            logger.info(
                "subscription_stats",
                **{status.value.lower(): count for status, count in counts.items()},
            )
            result = self.engine.cleanup_stale_pending()
            result.sweep = "daily_maintenance_tasks"
            return result

        return self._run_sweep("daily_maintenance_tasks", maintenance)

    def send_expiry_reminders(self) -> Optional[SweepResult]:
        """Notify owners of subscriptions ending on the reminder day."""
        return self._run_sweep("send_expiry_reminders", self.engine.send_expiry_reminders)

    def start(self) -> None:
        """Register the three jobs and start the background scheduler."""
        if not self.settings.enabled:
            logger.info("scheduler_disabled", message="Sweeps only run when triggered manually")
            return
        if self._scheduler.running:
            return

        self._scheduler.add_job(
            self.expire_subscriptions,
            trigger=IntervalTrigger(minutes=self.settings.expiry_interval_minutes),
            id="expire_subscriptions",
            name="Expire subscriptions past their end date",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.add_job(
            self.daily_maintenance_tasks,
            trigger=CronTrigger(
                hour=self.settings.maintenance_hour,
                minute=self.settings.maintenance_minute,
                timezone=self.settings.timezone,
            ),
            id="daily_maintenance_tasks",
            name="Subscription stats and stale pending cleanup",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.add_job(
            self.send_expiry_reminders,
            trigger=CronTrigger(
                hour=self.settings.reminder_hour,
                minute=self.settings.reminder_minute,
                timezone=self.settings.timezone,
            ),
            id="send_expiry_reminders",
            name="Expiry reminder notifications",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        self._scheduler.start()
        logger.info(
            "scheduler_started",
            jobs=[job.id for job in self._scheduler.get_jobs()],
            timezone=self.settings.timezone,
        )

    def shutdown(self, wait: bool = True) -> None:
        """Stop the scheduler, letting running sweeps finish when wait is True."""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
            logger.info("scheduler_stopped")
