"""
Check-in reminder scheduler.

Each persisted leg gets up to two single-shot timers, 24 h and 3 h before
its departure instant. Trigger instants are stored on the record at
insert time so `rearm_pending` can restore unfired reminders when the
process starts.

Per process, at most one timer is armed per (record id, offset) and each
pair fires at most once. Firing notifies first, then writes the flag.
"""

import logging
import threading
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from errors import PersistenceFailure
from notifications import NotificationCapability, reminder_notification
from status import REMINDER_OFFSETS, as_utc, record_departure, utc_now

logger = logging.getLogger(__name__)

_Key = Tuple[str, str]


class CheckinScheduler:

    def __init__(
        self,
        gateway,
        notifier: NotificationCapability,
        clock: Callable[[], datetime] = utc_now,
        timer_factory: Callable = threading.Timer,
    ):
        self.gateway = gateway
        self.notifier = notifier
        self.clock = clock
        self.timer_factory = timer_factory
        self._lock = threading.Lock()
        self._armed: Dict[_Key, object] = {}
        self._fired: Set[_Key] = set()

    # ── Arming ────────────────────────────────────────────────────────────────

    def trigger_instants(self, record) -> Dict[str, Optional[datetime]]:
        """Persisted instants when present, otherwise derived from departure."""
        stored = {"24h": record.remind_24h_at, "3h": record.remind_3h_at}
        departure = None
        instants = {}
        for name, (lead, _flag) in REMINDER_OFFSETS.items():
            if stored.get(name) is not None:
                instants[name] = as_utc(stored[name])
                continue
            if departure is None:
                departure = record_departure(record)
            instants[name] = departure - lead if departure else None
        return instants

    def schedule(self, record, now: Optional[datetime] = None) -> List[str]:
        """Arm the record's future, unfired reminders. Returns the offsets armed."""
        now = as_utc(now or self.clock())
        armed = []
        for name, trigger in self.trigger_instants(record).items():
            _lead, flag = REMINDER_OFFSETS[name]
            key = (record.id, name)

            if getattr(record, flag):
                continue
            if trigger is None:
                logger.warning("No departure instant for %s; %s reminder not armed", record.id, name)
                continue
            if trigger <= now:
                logger.info("Skipping %s reminder for %s: trigger %s already passed",
                            name, record.flight_number, trigger.isoformat())
                continue

            with self._lock:
                if key in self._armed or key in self._fired:
                    continue
                timer = self.timer_factory(
                    (trigger - now).total_seconds(), self._fire, args=(record, name)
                )
                timer.daemon = True
                self._armed[key] = timer
                timer.start()
            armed.append(name)
            logger.debug("Armed %s reminder for %s at %s", name, record.id, trigger.isoformat())
        return armed

    def rearm_pending(self, records: Iterable, now: Optional[datetime] = None) -> int:
        """Restore reminders for records loaded at startup."""
        count = 0
        for record in records:
            if record.checkin_completed:
                continue
            count += len(self.schedule(record, now=now))
        logger.info("Re-armed %d pending check-in reminder(s)", count)
        return count

    # ── Firing ────────────────────────────────────────────────────────────────

    def _fire(self, record, name: str) -> None:
        key = (record.id, name)
        with self._lock:
            if key in self._fired:
                return
            self._armed.pop(key, None)
            self._fired.add(key)

        channel = self.notifier.notify(reminder_notification(record, name))
        logger.info("Sent %s reminder for %s via %s", name, record.flight_number, channel)

        try:
            self.gateway.mark_alert_fired(record.user_id, record.id, name)
        except PersistenceFailure as e:
            logger.error("Reminder %s for %s delivered but flag not saved: %s", name, record.id, e)

    # ── Cancellation ──────────────────────────────────────────────────────────

    def cancel(self, record_id: str) -> int:
        with self._lock:
            keys = [k for k in self._armed if k[0] == record_id]
            timers = [self._armed.pop(k) for k in keys]
        for timer in timers:
            timer.cancel()
        return len(timers)

    def shutdown(self) -> None:
        with self._lock:
            timers = list(self._armed.values())
            self._armed.clear()
        for timer in timers:
            timer.cancel()
        logger.info("Scheduler stopped, %d timer(s) cancelled", len(timers))

    @property
    def armed(self) -> Set[_Key]:
        with self._lock:
            return set(self._armed)
