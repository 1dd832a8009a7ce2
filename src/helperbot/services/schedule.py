"""Monthly USD sell-rate reminder, fired by an APScheduler cron trigger."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable

from apscheduler.schedulers.base import BaseScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from .currency import RateSource, usd_sell_rate
from .notify import Notifier
from ..errors import ToolError
from ..events.store import EventStore

RATE_DAY = 25
RATE_HOUR = 9
RATE_MINUTE = 0
JOB_ID = "currency_rate"
# a late wakeup (sleep, suspend) still delivers the month's reminder
MISFIRE_GRACE_SECONDS = 3600


def rate_trigger(timezone: Any = None) -> CronTrigger:
    return CronTrigger(day=RATE_DAY, hour=RATE_HOUR, minute=RATE_MINUTE, timezone=timezone)


@dataclass
class RateReminder:
    rates: RateSource
    notifier: Notifier
    events: EventStore | None = None
    clock: Callable[[], datetime] = datetime.now
    last_sent: date | None = None

    def fire(self) -> bool:
        return self.tick(self.clock())

    def tick(self, now: datetime) -> bool:
        """Send the reminder unless it already went out on `now`'s date."""
        if self.last_sent == now.date():
            return False
        try:
            rate = usd_sell_rate(self.rates)
            if rate is None:
                return False
            self.notifier.notify(f"USD to VND: {rate:,.0f}", "Currency Rate")
        except ToolError as e:
            # the next month's run still happens
            if self.events:
                self.events.append("schedule.failed", {"error": str(e)})
            return False
        self.last_sent = now.date()
        if self.events:
            self.events.append("schedule.sent", {"rate": rate})
        return True


def build_scheduler(reminder: RateReminder, scheduler: BaseScheduler | None = None, timezone: Any = None) -> BaseScheduler:
    scheduler = scheduler or BlockingScheduler()
    scheduler.add_job(
        reminder.fire,
        trigger=rate_trigger(timezone),
        id=JOB_ID,
        replace_existing=True,
        misfire_grace_time=MISFIRE_GRACE_SECONDS,
        coalesce=True,
    )
    return scheduler


def run_scheduler(reminder: RateReminder, scheduler: BaseScheduler | None = None) -> None:
    """Blocks until interrupted."""
    build_scheduler(reminder, scheduler).start()
