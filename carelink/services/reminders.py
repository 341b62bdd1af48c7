# carelink/services/reminders.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from carelink.db.store import DocumentStore
from carelink.realtime.hub import RealtimeHub
from carelink.services.ids import now_ms
from carelink.services.notifications import announce, build_notification
from carelink.services.push import PushDispatcher

logger = logging.getLogger(__name__)


def _due_time(appt: Dict[str, Any]) -> Optional[int]:
    try:
        return int(appt.get("time"))
    except (TypeError, ValueError):
        return None


class ReminderScanner:
    """
    Every tick, find appointments with time in (now, now + window_ms]
    and raise an `appointment` notification for each.

    Dedup
    - dedup_window_ms == 0: no memory between ticks. An appointment that is
      still inside the window on the next tick gets reminded again.
    - dedup_window_ms > 0: an appointment reminded less than dedup_window_ms ago
      is skipped. The memory is in-process only (lost on restart).
    """

    def __init__(
        self,
        store: DocumentStore,
        hub: RealtimeHub,
        dispatcher: PushDispatcher,
        window_ms: int = 60_000,
        dedup_window_ms: int = 0,
    ):
        self.store = store
        self.hub = hub
        self.dispatcher = dispatcher
        self.window_ms = window_ms
        self.dedup_window_ms = dedup_window_ms
        self._reminded_at: Dict[str, int] = {}

    def _is_duplicate(self, appt_id: str, now: int) -> bool:
        if self.dedup_window_ms <= 0:
            return False
        last = self._reminded_at.get(appt_id)
        return last is not None and now - last < self.dedup_window_ms

    def _forget_expired(self, now: int) -> None:
        if self.dedup_window_ms <= 0:
            return
        self._reminded_at = {
            k: t for k, t in self._reminded_at.items() if now - t < self.dedup_window_ms
        }

    def _select(self, appointments: List[Dict[str, Any]], now: int, window_end: int) -> List[Dict[str, Any]]:
        due_now = []
        for appt in appointments:
            due = _due_time(appt)
            if due is None or not (now < due <= window_end):
                continue
            appt_id = str(appt.get("id"))
            if self._is_duplicate(appt_id, now):
                logger.info("[reminders] skip duplicate appointment id=%s", appt_id)
                continue
            due_now.append(appt)
        return due_now

    async def scan(self, now: Optional[int] = None) -> List[Dict[str, Any]]:
        """Run one tick. Returns the appointments reminded on this tick."""
        now = now if now is not None else now_ms()
        window_end = now + self.window_ms
        self._forget_expired(now)

        reminders = []
        # read-only pass first, the document is only rewritten when something is due
        if self._select(self.store.load()["appointments"], now, window_end):
            with self.store.transaction() as doc:
                for appt in self._select(doc["appointments"], now, window_end):
                    n = build_notification(
                        "appointment", f"Upcoming: {appt.get('title')}", appointment=appt
                    )
                    doc["notifications"].append(n)
                    self._reminded_at[str(appt.get("id"))] = now
                    reminders.append((appt, n))

        logger.info(
            "[reminders] now=%s window=(%s, %s] reminded=%d", now, now, window_end, len(reminders)
        )

        for appt, n in reminders:
            recipients = [appt.get("forUser")]
            await self.hub.publish("appointmentReminder", {"appointment": appt}, recipients)
            await announce(self.hub, self.dispatcher, n, recipients)

        return [appt for appt, _ in reminders]

    async def tick(self) -> None:
        # scheduler entry point: one failed tick must not stop the job
        try:
            await self.scan()
        except Exception:
            logger.exception("[reminders] scan failed")


def build_scheduler(scanner: ReminderScanner, interval_seconds: int = 60) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        scanner.tick,
        IntervalTrigger(seconds=interval_seconds),
        id="appointment_reminders",
        max_instances=1,
        coalesce=True,
    )
    return scheduler
