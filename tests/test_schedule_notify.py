"""Tests for the monthly rate reminder and the desktop notifier commands."""

from __future__ import annotations

import subprocess
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from fakes import RecordingNotifier, StubRates
from helperbot.errors import UpstreamError
from helperbot.pomodoro.marker import LivenessMarker
from helperbot.pomodoro.timer import Phase, PomodoroTimer
from helperbot.services.notify import DesktopNotifier
from helperbot.services.schedule import JOB_ID, RateReminder, build_scheduler, rate_trigger
from helperbot.util.subprocess import CmdResult, run_cmd

DUE = datetime(2024, 5, 25, 9, 0)


# --------------------------------------------------------------------------- #
# Trigger and scheduler                                                        #
# --------------------------------------------------------------------------- #

def test_trigger_fires_on_the_25th_at_nine():
    trigger = rate_trigger(timezone.utc)
    assert isinstance(trigger, CronTrigger)

    nxt = trigger.get_next_fire_time(None, datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc))
    assert (nxt.month, nxt.day, nxt.hour, nxt.minute) == (5, 25, 9, 0)

    # past this month's slot -> next month
    nxt = trigger.get_next_fire_time(None, datetime(2024, 5, 25, 9, 0, 30, tzinfo=timezone.utc))
    assert (nxt.month, nxt.day, nxt.hour, nxt.minute) == (6, 25, 9, 0)


def test_build_scheduler_registers_one_cron_job(rates):
    reminder = RateReminder(rates=rates, notifier=RecordingNotifier())
    scheduler = build_scheduler(reminder, BackgroundScheduler(timezone=timezone.utc), timezone=timezone.utc)

    jobs = scheduler.get_jobs()
    assert [j.id for j in jobs] == [JOB_ID]
    assert isinstance(jobs[0].trigger, CronTrigger)
    assert jobs[0].func == reminder.fire
    assert jobs[0].misfire_grace_time == 3600

    # rebuilding replaces instead of duplicating
    build_scheduler(reminder, scheduler, timezone=timezone.utc)
    assert len(scheduler.get_jobs()) == 1


# --------------------------------------------------------------------------- #
# Reminder                                                                     #
# --------------------------------------------------------------------------- #

def test_reminder_sends_once_per_day(rates):
    notifier = RecordingNotifier()
    reminder = RateReminder(rates=rates, notifier=notifier)
    assert reminder.tick(DUE)
    assert not reminder.tick(DUE.replace(minute=1))
    assert notifier.sent == [("Currency Rate", "USD to VND: 26,400")]

    assert reminder.tick(datetime(2024, 6, 25, 9, 0))
    assert len(notifier.sent) == 2


def test_fire_uses_injected_clock(rates):
    notifier = RecordingNotifier()
    reminder = RateReminder(rates=rates, notifier=notifier, clock=lambda: DUE)
    assert reminder.fire()
    assert reminder.last_sent == DUE.date()


def test_reminder_records_failures(rates, events):
    reminder = RateReminder(rates=rates, notifier=RecordingNotifier(fail=True), events=events)
    assert not reminder.tick(DUE)
    assert reminder.last_sent is None
    assert len(events.of_type("schedule.failed")) == 1

    reminder.notifier = RecordingNotifier()
    assert reminder.tick(DUE)
    assert len(events.of_type("schedule.sent")) == 1


def test_reminder_without_usd_quote():
    notifier = RecordingNotifier()
    assert not RateReminder(rates=StubRates({}), notifier=notifier).tick(DUE)
    assert notifier.sent == []


# --------------------------------------------------------------------------- #
# Notifier                                                                     #
# --------------------------------------------------------------------------- #

def test_macos_notification_command():
    with patch("helperbot.services.notify.run_cmd", return_value=CmdResult(0, "", "")) as run:
        DesktopNotifier(platform="darwin").notify('Say "hi"', "Title")
    cmd = run.call_args[0][0]
    assert cmd[:2] == ["osascript", "-e"]
    assert cmd[2] == 'display notification "Say \\"hi\\"" with title "Title" sound name "Glass"'


def test_linux_notification_command():
    with patch("helperbot.services.notify.shutil.which", return_value="/usr/bin/notify-send"), \
            patch("helperbot.services.notify.run_cmd", return_value=CmdResult(0, "", "")) as run:
        DesktopNotifier(platform="linux").notify("Break!", "Pomodoro")
    assert run.call_args[0][0] == ["notify-send", "--app-name=helperbot", "Pomodoro", "Break!"]


def test_notification_failures():
    with pytest.raises(UpstreamError, match="unsupported platform"):
        DesktopNotifier(platform="win32").notify("x")
    with patch("helperbot.services.notify.run_cmd", return_value=CmdResult(1, "", "boom")):
        with pytest.raises(UpstreamError, match="boom"):
            DesktopNotifier(platform="darwin").notify("x")


def test_run_cmd_reports_timeouts_and_launch_errors():
    with patch("helperbot.util.subprocess.subprocess.run", side_effect=subprocess.TimeoutExpired(["osascript"], 15)):
        res = run_cmd(["osascript", "-e", "x"], timeout=15)
    assert not res.ok
    assert res.returncode == 124
    assert "timed out after 15 seconds" in res.stderr

    with patch("helperbot.util.subprocess.subprocess.run", side_effect=PermissionError("denied")):
        res = run_cmd(["notify-send"])
    assert res.returncode == 126
    assert "denied" in res.stderr


def test_hung_notifier_becomes_upstream_error():
    with patch("helperbot.util.subprocess.subprocess.run", side_effect=subprocess.TimeoutExpired(["osascript"], 15)):
        with pytest.raises(UpstreamError, match="timed out"):
            DesktopNotifier(platform="darwin").notify("x")


def test_hung_notifier_does_not_stop_the_timer(tmp_path, events):
    timer = PomodoroTimer(
        marker=LivenessMarker(tmp_path / ".pomodoro.pid"),
        notifier=DesktopNotifier(platform="darwin"),
        work_seconds=0,
        break_seconds=0,
        events=events,
        sleep=lambda s: None,
        max_sessions=2,
    )
    with patch("helperbot.util.subprocess.subprocess.run", side_effect=subprocess.TimeoutExpired(["osascript"], 15)):
        timer.run()
    assert timer.state.session_count == 2
    assert timer.state.phase is Phase.IDLE
    assert len(events.of_type("pomodoro.work")) == 2
    assert len(events.of_type("pomodoro.notify_failed")) == 6


def test_reminder_survives_hung_notifier(rates, events):
    reminder = RateReminder(rates=rates, notifier=DesktopNotifier(platform="darwin"), events=events)
    with patch("helperbot.util.subprocess.subprocess.run", side_effect=subprocess.TimeoutExpired(["osascript"], 15)):
        assert not reminder.tick(DUE)
    assert "timed out" in events.of_type("schedule.failed")[0].data["error"]
