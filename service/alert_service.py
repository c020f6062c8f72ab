# service/alert_service.py
# Critical overdue-dose monitor. The app drives OverdueMonitor.tick from a
# Clock interval; on Android the same monitor runs in the background
# service through main_loop().

import time
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Set, Tuple

from adherence import OverdueDose, day_key, dose_key, overdue_critical
from applog import logger, setup_logging
from config import APP_NAME, OVERDUE_CRITICAL_MINUTES, TICK_SECONDS, default_paths
from records import Medicine
from settings import Settings
from storage import open_store
from strings import format_lateness, tr

try:
    from jnius import autoclass
except Exception:
    autoclass = None


def notify(title: str, text: str):
    if autoclass is None:
        logger.warning(f"[notification] {title}: {text}")
        return
    try:
        PythonService = autoclass("org.kivy.android.PythonService")
        service = PythonService.mService
        Context = autoclass("android.content.Context")
        NotificationManager = autoclass("android.app.NotificationManager")
        NotificationChannel = autoclass("android.app.NotificationChannel")
        Notification = autoclass("android.app.Notification")
        Build = autoclass("android.os.Build")

        channel_id = "dosewise_critical"
        nm = service.getSystemService(Context.NOTIFICATION_SERVICE)

        if Build.VERSION.SDK_INT >= 26:
            ch = NotificationChannel(channel_id, "DoseWise critical alerts", NotificationManager.IMPORTANCE_HIGH)
            ch.setDescription("Doses more than 30 minutes overdue")
            nm.createNotificationChannel(ch)
            builder = Notification.Builder(service, channel_id)
        else:
            builder = Notification.Builder(service)

        builder.setContentTitle(title)
        builder.setContentText(text)
        builder.setSmallIcon(service.getApplicationInfo().icon)
        builder.setAutoCancel(True)

        nid = int(time.time()) & 0x7fffffff
        nm.notify(nid, builder.build())
    except Exception:
        logger.exception("android notification failed")


class OverdueMonitor:
    """
    Re-evaluates the catalog against "now" and reports critically overdue
    doses. Each (medicine, day, time) slot is notified once; the full
    current list is still returned on every tick for the blocking dialog.
    """

    def __init__(self,
                 load_medicines: Callable[[], Sequence[Medicine]],
                 notify: Callable[[str, str], None] = notify,
                 notifications_enabled: Callable[[], bool] = lambda: True,
                 threshold_minutes: int = OVERDUE_CRITICAL_MINUTES,
                 language: Callable[[], str] = lambda: "en"):
        self.load_medicines = load_medicines
        self.notify = notify
        self.notifications_enabled = notifications_enabled
        self.threshold_minutes = threshold_minutes
        self.language = language
        self._fired: Set[Tuple[str, str]] = set()
        self._fired_day: Optional[str] = None

    def tick(self, now: Optional[datetime] = None) -> List[OverdueDose]:
        now = now or datetime.now()
        if not self.notifications_enabled():
            return []
        try:
            medicines = list(self.load_medicines())
        except Exception:
            logger.exception("overdue check: loading medicines failed")
            return []

        today = day_key(now)
        if self._fired_day != today:
            self._fired = set()
            self._fired_day = today

        overdue = overdue_critical(medicines, now, self.threshold_minutes)
        lang = self.language()
        for o in overdue:
            k = (o.medicine.id, dose_key(now, o.time))
            if k in self._fired:
                continue
            self._fired.add(k)
            text = f"{o.medicine.name} • {o.medicine.dosage} @ {o.time} ({format_lateness(lang, o.minutes_late)})"
            logger.info(f"critical overdue: med_id={o.medicine.id} time={o.time} late={o.minutes_late}m")
            try:
                self.notify(tr(lang, "criticalAlert"), text)
            except Exception:
                logger.exception("notify failed")
        return overdue


def main_loop():
    paths = default_paths()
    setup_logging(paths.log_path)
    store = open_store(paths)

    def prefs() -> Settings:
        return Settings.from_prefs(store.load_preferences())

    monitor = OverdueMonitor(
        load_medicines=store.load_medicines,
        notify=notify,
        notifications_enabled=lambda: prefs().critical_notifications,
        language=lambda: prefs().language,
    )
    logger.info(f"{APP_NAME} alert service started base={paths.base_dir}")

    while True:
        monitor.tick()
        time.sleep(TICK_SECONDS)


if __name__ == "__main__":
    main_loop()
