# main.py
# DoseWise (KivyMD): medicine schedule, dose confirmation, health
# measurements, adherence statistics and family profiles, stored in an
# AES-GCM encrypted SQLite file.
#
# Run:   python main.py
#
# Buildozer notes (in buildozer.spec):
#   requirements = python3,kivy,kivymd==1.1.1,pyjnius,cryptography
#   services = Alerts:service/alert_service.py
#   android.permissions = POST_NOTIFICATIONS,WAKE_LOCK,VIBRATE

from datetime import datetime
from typing import Dict, List, Optional

from kivy.clock import Clock
from kivy.core.window import Window
from kivy.graphics import Color, Line, RoundedRectangle
from kivy.lang import Builder
from kivy.metrics import dp
from kivy.properties import ListProperty, NumericProperty, StringProperty
from kivy.uix.widget import Widget
from kivy.utils import platform as _kivy_platform

from kivymd.app import MDApp
from kivymd.uix.boxlayout import MDBoxLayout
from kivymd.uix.button import MDFlatButton, MDIconButton, MDRaisedButton
from kivymd.uix.dialog import MDDialog
from kivymd.uix.label import MDLabel
from kivymd.uix.list import IconLeftWidget, OneLineListItem, TwoLineIconListItem
from kivymd.uix.menu import MDDropdownMenu
from kivymd.uix.pickers import MDTimePicker
from kivymd.uix.progressbar import MDProgressBar
from kivymd.uix.textfield import MDTextField

import family
import trends
from adherence import (DoseStatus, adherence_streak, daily_dose_count, day_completion,
                       is_critical, most_late_first, overall_adherence,
                       overdue_critical, today_schedule, trailing_adherence,
                       type_distribution)
from applog import RING, clear_log, logger, setup_logging
from config import (APP_NAME, FREQUENCIES, MEASUREMENT_KINDS, MEDICINE_TYPES,
                    PERIOD_DAYS, TICK_SECONDS, default_paths)
from records import Medicine, ValidationError, new_measurement, new_medicine, parse_hm
from service.alert_service import OverdueMonitor
from settings import Settings, SettingsStore
from storage import open_store
from strings import (format_lateness, format_long_date, frequency_label, kind_label,
                     tr, type_label)

if _kivy_platform != "android" and hasattr(Window, "size"):
    Window.size = (420, 760)

STATUS_ICONS = {
    DoseStatus.TAKEN: ("check-circle", (0.13, 0.70, 0.33, 1)),
    DoseStatus.OVERDUE: ("alert-circle", (0.86, 0.15, 0.15, 1)),
    DoseStatus.DUE_SOON: ("clock-alert-outline", (0.96, 0.55, 0.10, 1)),
    DoseStatus.UPCOMING: ("clock-outline", (0.23, 0.51, 0.96, 1)),
}
CRITICAL_ICON = ("alert-octagon", (0.70, 0.05, 0.05, 1))

# systolic/value first, diastolic second
TREND_COLORS = [(0.86, 0.15, 0.15, 1), (0.23, 0.51, 0.96, 1)]


# -------------------------
# Widgets
# -------------------------
class GlassCard(Widget):
    radius = NumericProperty(dp(22))

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.bind(pos=self._redraw, size=self._redraw)

    def _redraw(self, *_):
        self.canvas.clear()
        x, y = self.pos
        w, h = self.size
        r = float(self.radius)
        with self.canvas:
            Color(0.23, 0.51, 0.96, 0.10)
            RoundedRectangle(pos=(x, y), size=(w, h), radius=[r])
            Color(0.23, 0.51, 0.96, 0.25)
            Line(rounded_rectangle=[x, y, w, h, r], width=dp(1.2))


class ProgressRing(Widget):
    """Today's completion as a circular gauge."""
    percent = NumericProperty(0)

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.bind(pos=self._redraw, size=self._redraw, percent=self._redraw)

    def _redraw(self, *_):
        self.canvas.clear()
        cx, cy = self.center
        r = min(self.width, self.height) / 2 - dp(4)
        with self.canvas:
            Color(0.5, 0.5, 0.5, 0.25)
            Line(circle=(cx, cy, r), width=dp(3))
            Color(0.13, 0.70, 0.33, 1)
            if self.percent > 0:
                Line(circle=(cx, cy, r, 0, 360.0 * min(self.percent, 100) / 100.0), width=dp(3))


class TrendChart(Widget):
    """Measurement trend: one polyline per series on a shared scale."""
    series = ListProperty([])

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.bind(pos=self._redraw, size=self._redraw, series=self._redraw)

    def _redraw(self, *_):
        self.canvas.clear()
        lines = [s for s in self.series if s]
        if not lines:
            return
        lo = min(min(s) for s in lines)
        hi = max(max(s) for s in lines)
        span = float(hi - lo) or 1.0
        pad = dp(10)
        x0, y0 = self.x + pad, self.y + pad
        w, h = max(self.width - 2 * pad, 1), max(self.height - 2 * pad, 1)
        with self.canvas:
            for color, values in zip(TREND_COLORS, lines):
                Color(*color)
                step = w / (len(values) - 1) if len(values) > 1 else 0
                pts = []
                for i, v in enumerate(values):
                    pts += [x0 + i * step, y0 + (v - lo) / span * h]
                if len(values) > 1:
                    Line(points=pts, width=dp(1.6))
                for i in range(0, len(pts), 2):
                    Line(circle=(pts[i], pts[i + 1], dp(2.5)), width=dp(1.2))


# -------------------------
# Kivy KV
# -------------------------
KV = """
<GlassCard>:
    size_hint: 1, None

<ProgressRing>:
    size_hint: None, None
    size: "64dp", "64dp"

MDScreen:
    MDBoxLayout:
        orientation: "vertical"

        MDTopAppBar:
            title: app.tx("appTitle", app.lang)
            elevation: 4
            right_action_items: [["bell", lambda x: app.show_critical_alert()], ["refresh", lambda x: app.refresh_all()]]

        ScreenManager:
            id: screen_manager

            MDScreen:
                name: "home"
                MDBoxLayout:
                    orientation: "vertical"
                    padding: "12dp"
                    spacing: "10dp"

                    FloatLayout:
                        size_hint_y: None
                        height: "120dp"
                        GlassCard:
                            pos: self.parent.pos
                            size: self.parent.size
                        MDBoxLayout:
                            orientation: "horizontal"
                            padding: "16dp"
                            spacing: "12dp"
                            pos: self.parent.pos
                            size: self.parent.size

                            MDBoxLayout:
                                orientation: "vertical"
                                spacing: "4dp"
                                MDLabel:
                                    text: app.tx("welcomeBack", app.lang)
                                    bold: True
                                    font_style: "H6"
                                MDLabel:
                                    id: home_date
                                    text: ""
                                    theme_text_color: "Secondary"
                                MDLabel:
                                    id: streak_label
                                    text: ""
                                    theme_text_color: "Secondary"

                            MDBoxLayout:
                                orientation: "vertical"
                                size_hint_x: None
                                width: "72dp"
                                ProgressRing:
                                    id: progress_ring
                                    pos_hint: {"center_x": 0.5}
                                MDLabel:
                                    id: today_progress
                                    text: "0%"
                                    halign: "center"
                                    size_hint_y: None
                                    height: "20dp"

                    MDBoxLayout:
                        size_hint_y: None
                        height: "32dp"
                        MDLabel:
                            text: app.tx("todaySchedule", app.lang)
                            bold: True
                        MDFlatButton:
                            text: "+ " + app.tx("addMedicine", app.lang)
                            on_release: app.show_add_dialog()

                    ScrollView:
                        MDList:
                            id: schedule_list

                    MDBoxLayout:
                        size_hint_y: None
                        height: "28dp"
                        MDLabel:
                            id: active_count
                            text: ""
                            theme_text_color: "Secondary"
                        MDLabel:
                            id: adherence_today
                            text: ""
                            theme_text_color: "Secondary"

            MDScreen:
                name: "measurements"
                MDBoxLayout:
                    orientation: "vertical"
                    padding: "12dp"
                    spacing: "10dp"

                    MDBoxLayout:
                        size_hint_y: None
                        height: "44dp"
                        spacing: "6dp"
                        MDFlatButton:
                            text: app.tx("bloodPressure", app.lang)
                            on_release: app.set_measurement_kind("blood-pressure")
                        MDFlatButton:
                            text: app.tx("glucose", app.lang)
                            on_release: app.set_measurement_kind("glucose")
                        MDFlatButton:
                            text: app.tx("weight", app.lang)
                            on_release: app.set_measurement_kind("weight")

                    FloatLayout:
                        size_hint_y: None
                        height: "84dp"
                        GlassCard:
                            pos: self.parent.pos
                            size: self.parent.size
                        MDBoxLayout:
                            orientation: "vertical"
                            padding: "14dp"
                            pos: self.parent.pos
                            size: self.parent.size
                            MDLabel:
                                id: latest_value
                                text: ""
                                bold: True
                            MDLabel:
                                id: average_value
                                text: ""
                                theme_text_color: "Secondary"

                    MDBoxLayout:
                        size_hint_y: None
                        height: "24dp"
                        MDLabel:
                            text: app.tx("trend", app.lang)
                            bold: True
                        MDLabel:
                            id: trend_range
                            text: ""
                            halign: "right"
                            theme_text_color: "Secondary"

                    FloatLayout:
                        size_hint_y: None
                        height: "120dp"
                        GlassCard:
                            pos: self.parent.pos
                            size: self.parent.size
                        TrendChart:
                            id: trend_chart
                            pos: self.parent.pos
                            size: self.parent.size

                    ScrollView:
                        MDList:
                            id: measurement_list

                    MDRaisedButton:
                        text: app.tx("addMeasurement", app.lang)
                        on_release: app.show_measurement_dialog()

            MDScreen:
                name: "statistics"
                MDBoxLayout:
                    orientation: "vertical"
                    padding: "12dp"
                    spacing: "10dp"

                    MDBoxLayout:
                        size_hint_y: None
                        height: "44dp"
                        spacing: "6dp"
                        MDFlatButton:
                            text: app.tx("week", app.lang)
                            on_release: app.set_period("week")
                        MDFlatButton:
                            text: app.tx("month", app.lang)
                            on_release: app.set_period("month")
                        MDFlatButton:
                            text: app.tx("year", app.lang)
                            on_release: app.set_period("year")

                    MDGridLayout:
                        cols: 2
                        size_hint_y: None
                        height: "72dp"
                        MDLabel:
                            id: stat_adherence
                            text: ""
                        MDLabel:
                            id: stat_streak
                            text: ""
                        MDLabel:
                            id: stat_medicines
                            text: ""
                        MDLabel:
                            id: stat_doses
                            text: ""

                    ScrollView:
                        MDBoxLayout:
                            id: adherence_bars
                            orientation: "vertical"
                            spacing: "4dp"
                            size_hint_y: None
                            height: self.minimum_height

                    MDLabel:
                        text: app.tx("typeDistribution", app.lang)
                        bold: True
                        size_hint_y: None
                        height: "28dp"

                    ScrollView:
                        size_hint_y: 0.5
                        MDList:
                            id: type_list

            MDScreen:
                name: "profile"
                MDBoxLayout:
                    orientation: "vertical"
                    padding: "12dp"
                    spacing: "10dp"

                    FloatLayout:
                        size_hint_y: None
                        height: "96dp"
                        GlassCard:
                            pos: self.parent.pos
                            size: self.parent.size
                        MDBoxLayout:
                            orientation: "vertical"
                            padding: "14dp"
                            pos: self.parent.pos
                            size: self.parent.size
                            MDLabel:
                                id: active_profile
                                text: ""
                                bold: True
                                font_style: "H6"
                            MDLabel:
                                id: profile_summary
                                text: ""
                                theme_text_color: "Secondary"

                    MDLabel:
                        text: app.tx("familyMembers", app.lang)
                        bold: True
                        size_hint_y: None
                        height: "28dp"

                    ScrollView:
                        MDList:
                            id: family_list

                    MDBoxLayout:
                        size_hint_y: None
                        height: "48dp"
                        spacing: "10dp"
                        MDRaisedButton:
                            text: app.tx("addFamilyMember", app.lang)
                            on_release: app.show_member_dialog()
                        MDRaisedButton:
                            text: app.tx("settings", app.lang)
                            on_release: app.switch_screen("settings")

            MDScreen:
                name: "settings"
                MDBoxLayout:
                    orientation: "vertical"
                    padding: "12dp"
                    spacing: "10dp"

                    MDLabel:
                        text: app.tx("appearance", app.lang)
                        bold: True
                        size_hint_y: None
                        height: "28dp"
                    MDBoxLayout:
                        size_hint_y: None
                        height: "44dp"
                        spacing: "10dp"
                        MDRaisedButton:
                            text: app.tx("lightMode", app.lang)
                            on_release: app.set_theme("light")
                        MDRaisedButton:
                            text: app.tx("darkMode", app.lang)
                            on_release: app.set_theme("dark")

                    MDLabel:
                        text: app.tx("language", app.lang)
                        bold: True
                        size_hint_y: None
                        height: "28dp"
                    MDBoxLayout:
                        size_hint_y: None
                        height: "44dp"
                        spacing: "10dp"
                        MDRaisedButton:
                            text: "العربية"
                            on_release: app.settings.set_language("ar")
                        MDRaisedButton:
                            text: "English"
                            on_release: app.settings.set_language("en")

                    MDBoxLayout:
                        size_hint_y: None
                        height: "44dp"
                        MDLabel:
                            text: app.tx("criticalNotifications", app.lang)
                        MDRaisedButton:
                            id: notif_toggle
                            text: ""
                            on_release: app.settings.toggle_critical_notifications()

                    MDLabel:
                        text: app.tx("debugLog", app.lang)
                        bold: True
                        size_hint_y: None
                        height: "28dp"

                    ScrollView:
                        MDLabel:
                            id: debug_log
                            text: ""
                            size_hint_y: None
                            height: self.texture_size[1]

                    MDRaisedButton:
                        text: app.tx("clearLog", app.lang)
                        on_release: app.clear_debug_log()

        MDBottomNavigation:
            MDBottomNavigationItem:
                name: "nav_home"
                text: app.tx("home", app.lang)
                icon: "home"
                on_tab_press: app.switch_screen("home")
            MDBottomNavigationItem:
                name: "nav_measurements"
                text: app.tx("measurements", app.lang)
                icon: "heart-pulse"
                on_tab_press: app.switch_screen("measurements")
            MDBottomNavigationItem:
                name: "nav_statistics"
                text: app.tx("statistics", app.lang)
                icon: "chart-bar"
                on_tab_press: app.switch_screen("statistics")
            MDBottomNavigationItem:
                name: "nav_profile"
                text: app.tx("profile", app.lang)
                icon: "account"
                on_tab_press: app.switch_screen("profile")
"""


# -------------------------
# App
# -------------------------
class DoseWiseApp(MDApp):
    lang = StringProperty("ar")

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.paths = default_paths()
        self.store = None
        self.settings: Optional[SettingsStore] = None
        self.monitor: Optional[OverdueMonitor] = None
        self.medicines: List[Medicine] = []
        self.period = "week"
        self.measurement_kind = "blood-pressure"
        self._alert_dialog: Optional[MDDialog] = None
        self._alert_pending = False
        self._add_dialog: Optional[MDDialog] = None
        self._measurement_dialog: Optional[MDDialog] = None
        self._member_dialog: Optional[MDDialog] = None
        self._menu: Optional[MDDropdownMenu] = None
        self._time_list: List[str] = []

    def tx(self, key: str, _lang: Optional[str] = None) -> str:
        # KV passes app.lang so labels rebind on language change
        return tr(self.lang, key)

    def build(self):
        setup_logging(self.paths.log_path)
        self.store = open_store(self.paths)
        self.settings = SettingsStore(self.store)
        self.settings.subscribe(self._on_settings_changed)
        self.title = APP_NAME
        self.theme_cls.primary_palette = "Blue"
        self._apply_settings(self.settings.current)
        return Builder.load_string(KV)

    def on_start(self):
        logger.info(f"app start platform={_kivy_platform} base={self.paths.base_dir}")

        try:
            if not self.store.load_family():
                self.store.save_family(family.ensure_default([]))
        except Exception:
            logger.exception("seeding default family member failed")

        self.monitor = OverdueMonitor(
            load_medicines=lambda: self.medicines,
            notify=self._on_new_overdue,
            notifications_enabled=lambda: self.settings.current.critical_notifications,
            language=lambda: self.lang,
        )

        self.root.ids.screen_manager.current = "home"
        Clock.schedule_once(lambda *_: self.refresh_all(), 0.3)
        Clock.schedule_interval(lambda *_: self.on_tick(), TICK_SECONDS)

    # -------------------------
    # Settings
    # -------------------------
    def _apply_settings(self, s: Settings):
        self.theme_cls.theme_style = "Dark" if s.theme == "dark" else "Light"
        self.lang = s.language

    def _on_settings_changed(self, s: Settings):
        self._apply_settings(s)
        self.refresh_all()

    def set_theme(self, theme: str):
        if self.settings.current.theme != theme:
            self.settings.toggle_theme()

    # -------------------------
    # Navigation / refresh
    # -------------------------
    def switch_screen(self, name: str):
        self.root.ids.screen_manager.current = name
        if name == "home":
            self.refresh_home()
        elif name == "measurements":
            self.refresh_measurements()
        elif name == "statistics":
            self.refresh_statistics()
        elif name == "profile":
            self.refresh_profile()
        elif name == "settings":
            self.refresh_settings()

    def reload_medicines(self):
        self.medicines = self.store.load_medicines()

    def refresh_all(self):
        self.reload_medicines()
        self.refresh_home()
        self.refresh_measurements()
        self.refresh_statistics()
        self.refresh_profile()
        self.refresh_settings()

    def on_tick(self):
        self.refresh_home()
        self.monitor.tick()
        if self._alert_pending and self._alert_dialog is None:
            self.show_critical_alert()
        self._alert_pending = False

    def _on_new_overdue(self, title: str, text: str):
        logger.info(f"[in-app alert] {title}: {text}")
        self._alert_pending = True

    def _update_streak(self, now: datetime) -> int:
        streak = adherence_streak(self.medicines, now)
        if streak != self.store.load_streak():
            self.store.save_streak(streak)
        return streak

    def refresh_home(self):
        try:
            now = datetime.now()
            ids = self.root.ids
            ids.home_date.text = format_long_date(self.lang, now.date())
            ids.streak_label.text = f"{self._update_streak(now)} {self.tx('days')} • {self.tx('streak')}"

            pct = day_completion(self.medicines, now)
            ids.progress_ring.percent = pct
            ids.today_progress.text = f"{pct}%"
            ids.active_count.text = f"{len(self.medicines)} {self.tx('activeMedicines')}"
            ids.adherence_today.text = f"{pct}% {self.tx('adherenceRate')}"

            sl = ids.schedule_list
            sl.clear_widgets()
            if not self.medicines:
                sl.add_widget(OneLineListItem(text=self.tx("noMedicines"),
                                              on_release=lambda *_: self.show_add_dialog()))
                return
            for dose in today_schedule(self.medicines, now):
                med = dose.medicine
                icon, color = STATUS_ICONS[dose.status]
                if dose.status == DoseStatus.OVERDUE and is_critical(med, dose.time, now):
                    icon, color = CRITICAL_ICON
                item = TwoLineIconListItem(
                    text=f"{med.name}  •  {med.dosage}",
                    secondary_text=f"{dose.time}  •  {self.tx('status_' + dose.status.value)}  •  {type_label(self.lang, med.type)}",
                )
                item.add_widget(IconLeftWidget(icon=icon, theme_icon_color="Custom", icon_color=color))
                if dose.status != DoseStatus.TAKEN:
                    item.on_release = lambda m_id=med.id, hm=dose.time: self.confirm_dose(m_id, hm)
                sl.add_widget(item)
        except Exception:
            logger.exception("refresh_home failed")

    # -------------------------
    # Dose confirmation
    # -------------------------
    def confirm_dose(self, med_id: str, hm: str):
        med = next((m for m in self.medicines if m.id == med_id), None)
        if med is None:
            return

        def take(*_):
            try:
                self.take_dose(med_id, hm)
            finally:
                dialog.dismiss()

        dialog = MDDialog(
            title=f"{med.name} • {med.dosage}",
            text=f"{self.tx('scheduled')} {hm}",
            buttons=[
                MDFlatButton(text=self.tx("cancel"), on_release=lambda *_: dialog.dismiss()),
                MDRaisedButton(text=self.tx("confirm"), on_release=take),
            ],
        )
        dialog.open()

    def take_dose(self, med_id: str, hm: str):
        try:
            self.medicines = self.store.take_dose(self.medicines, med_id, hm, datetime.now())
            self.refresh_home()
            self.refresh_statistics()
        except Exception:
            logger.exception("mark taken failed")

    # -------------------------
    # Critical alert
    # -------------------------
    def show_critical_alert(self):
        if not self.settings.current.critical_notifications:
            return
        overdue = overdue_critical(self.medicines, datetime.now())
        if not overdue:
            return
        if self._alert_dialog is not None:
            self._alert_dialog.dismiss()

        lines = [self.tx("overdueMessage"), ""]
        for o in most_late_first(overdue):
            lines.append(f"{o.medicine.name} • {o.medicine.dosage}")
            lines.append(f"    {self.tx('scheduled')} {o.time}  •  {format_lateness(self.lang, o.minutes_late)}")

        def closed(*_):
            self._alert_dialog = None

        def view(*_):
            self._alert_dialog.dismiss()
            self.switch_screen("home")

        self._alert_dialog = MDDialog(
            title=f"{self.tx('criticalAlert')} ({len(overdue)} {self.tx('overdueCount')})",
            text="\n".join(lines),
            buttons=[
                MDFlatButton(text=self.tx("dismiss"), on_release=lambda *_: self._alert_dialog.dismiss()),
                MDRaisedButton(text=self.tx("viewMedicines"), on_release=view),
            ],
        )
        self._alert_dialog.bind(on_dismiss=closed)
        self._alert_dialog.open()

    # -------------------------
    # Add medicine dialog (with time picker)
    # -------------------------
    def _open_menu(self, caller, values: List[str], label, on_pick):
        if self._menu:
            self._menu.dismiss()
        items = [
            {"viewclass": "OneLineListItem", "text": label(self.lang, v),
             "on_release": lambda v=v: (on_pick(v), self._menu.dismiss())}
            for v in values
        ]
        self._menu = MDDropdownMenu(caller=caller, items=items, width_mult=4)
        self._menu.open()

    def show_add_dialog(self):
        self._time_list = ["08:00"]
        chosen: Dict[str, str] = {"type": MEDICINE_TYPES[0], "frequency": FREQUENCIES[0]}

        content = MDBoxLayout(orientation="vertical", spacing="10dp", padding="10dp", size_hint_y=None)
        content.bind(minimum_height=content.setter("height"))

        name = MDTextField(hint_text=self.tx("medicineName"), helper_text_mode="on_error")
        dosage = MDTextField(hint_text=self.tx("dosage"))
        type_btn = MDFlatButton(text=f"{self.tx('medicineType')}: {type_label(self.lang, chosen['type'])}")
        freq_btn = MDFlatButton(text=f"{self.tx('frequency')}: {frequency_label(self.lang, chosen['frequency'])}")

        def pick_type(v):
            chosen["type"] = v
            type_btn.text = f"{self.tx('medicineType')}: {type_label(self.lang, v)}"

        def pick_freq(v):
            chosen["frequency"] = v
            freq_btn.text = f"{self.tx('frequency')}: {frequency_label(self.lang, v)}"

        type_btn.bind(on_release=lambda btn: self._open_menu(btn, MEDICINE_TYPES, type_label, pick_type))
        freq_btn.bind(on_release=lambda btn: self._open_menu(btn, FREQUENCIES, frequency_label, pick_freq))

        times_label = MDLabel(text=self.tx("medicationTimes"), bold=True, size_hint_y=None, height="24dp")
        times_box = MDBoxLayout(orientation="vertical", spacing="6dp", size_hint_y=None)
        times_box.bind(minimum_height=times_box.setter("height"))

        def redraw_times():
            times_box.clear_widgets()
            for i, t in enumerate(self._time_list):
                row = MDBoxLayout(orientation="horizontal", spacing="8dp", size_hint_y=None, height="38dp")
                row.add_widget(MDLabel(text=t, size_hint_x=1))
                if len(self._time_list) > 1:
                    row.add_widget(MDIconButton(icon="close", on_release=lambda _, i=i: remove_time(i)))
                times_box.add_widget(row)

        def add_time_from_picker(*_):
            picker = MDTimePicker()

            def on_save(_, time_obj):
                # repeated times are separate dose slots
                self._time_list.append(parse_hm(f"{time_obj.hour}:{time_obj.minute:02d}"))
                redraw_times()
            picker.bind(on_save=on_save)
            picker.open()

        def remove_time(i: int):
            if len(self._time_list) > 1:
                del self._time_list[i]
                redraw_times()

        add_time_btn = MDRaisedButton(text=self.tx("addAnotherTime"), on_release=add_time_from_picker)

        for w in (name, dosage, type_btn, freq_btn, times_label, times_box, add_time_btn):
            content.add_widget(w)
        redraw_times()

        def save(*_):
            try:
                med = new_medicine(name.text, dosage.text, chosen["type"], self._time_list,
                                   chosen["frequency"])
            except ValidationError as e:
                name.helper_text = self.tx(e.message_key)
                name.error = True
                return
            try:
                self.medicines = self.store.add_medicine(med)
            except Exception:
                logger.exception("add medicine failed")
                name.helper_text = self.tx("saveFailed")
                name.error = True
                return
            self._add_dialog.dismiss()
            self.refresh_all()

        self._add_dialog = MDDialog(
            title=self.tx("addNewMedicine"),
            type="custom",
            content_cls=content,
            buttons=[
                MDFlatButton(text=self.tx("cancel"), on_release=lambda *_: self._add_dialog.dismiss()),
                MDRaisedButton(text=self.tx("saveMedicine"), on_release=save),
            ],
        )
        self._add_dialog.open()

    # -------------------------
    # Measurements
    # -------------------------
    def set_measurement_kind(self, kind: str):
        self.measurement_kind = kind
        self.refresh_measurements()

    def refresh_measurements(self):
        try:
            now = datetime.now()
            kind = self.measurement_kind
            log = self.store.load_measurements()
            ids = self.root.ids

            newest = trends.latest(log, kind)
            avg = trends.average(log, kind)
            label = kind_label(self.lang, kind)
            ids.latest_value.text = (f"{label} • {self.tx('latest')}: {newest.display_value}"
                                     if newest else f"{label} • {self.tx('noMeasurements')}")
            ids.average_value.text = f"{self.tx('average')}: {avg}" if avg else ""

            points = trends.chart_series(log, kind)
            if kind == "blood-pressure":
                ids.trend_chart.series = [[p["systolic"] for p in points],
                                          [p["diastolic"] for p in points]]
            else:
                ids.trend_chart.series = [[p["value"] for p in points]]
            ids.trend_range.text = f"{points[0]['date']} - {points[-1]['date']}" if points else ""

            ml = ids.measurement_list
            ml.clear_widgets()
            for m in trends.for_kind(log, kind):
                when = trends.relative_day(m.timestamp, now)
                if when in ("today", "yesterday"):
                    when = self.tx(when)
                sub = f"{when} {m.timestamp.strftime('%H:%M')}"
                if m.note:
                    sub += f"  •  {m.note}"
                item = TwoLineIconListItem(text=m.display_value, secondary_text=sub)
                item.add_widget(IconLeftWidget(icon="heart-pulse"))
                ml.add_widget(item)
        except Exception:
            logger.exception("refresh_measurements failed")

    def show_measurement_dialog(self):
        chosen = {"kind": self.measurement_kind}

        content = MDBoxLayout(orientation="vertical", spacing="10dp", padding="10dp", size_hint_y=None)
        content.bind(minimum_height=content.setter("height"))

        kind_btn = MDFlatButton(text=kind_label(self.lang, chosen["kind"]))
        systolic = MDTextField(hint_text=self.tx("systolic"), input_filter="int")
        diastolic = MDTextField(hint_text=self.tx("diastolic"), input_filter="int")
        value = MDTextField(hint_text=self.tx("value"), input_filter="float", helper_text_mode="on_error")
        notes = MDTextField(hint_text=self.tx("notes"))
        fields = MDBoxLayout(orientation="vertical", spacing="10dp", size_hint_y=None)
        fields.bind(minimum_height=fields.setter("height"))

        def layout_fields():
            fields.clear_widgets()
            if chosen["kind"] == "blood-pressure":
                fields.add_widget(systolic)
                fields.add_widget(diastolic)
            else:
                fields.add_widget(value)

        def pick_kind(v):
            chosen["kind"] = v
            kind_btn.text = kind_label(self.lang, v)
            layout_fields()

        kind_btn.bind(on_release=lambda btn: self._open_menu(btn, MEASUREMENT_KINDS, kind_label, pick_kind))
        for w in (kind_btn, fields, notes):
            content.add_widget(w)
        layout_fields()

        def save(*_):
            try:
                m = new_measurement(chosen["kind"], value=value.text, systolic=systolic.text,
                                    diastolic=diastolic.text, note=notes.text)
            except ValidationError as e:
                target = systolic if chosen["kind"] == "blood-pressure" else value
                target.helper_text = self.tx(e.message_key)
                target.error = True
                return
            try:
                self.store.append_measurement(m)
            except Exception:
                logger.exception("add measurement failed")
                target = systolic if chosen["kind"] == "blood-pressure" else value
                target.helper_text = self.tx("saveFailed")
                target.error = True
                return
            self._measurement_dialog.dismiss()
            self.measurement_kind = m.kind
            self.refresh_measurements()
            self.refresh_profile()

        self._measurement_dialog = MDDialog(
            title=self.tx("addMeasurement"),
            type="custom",
            content_cls=content,
            buttons=[
                MDFlatButton(text=self.tx("cancel"), on_release=lambda *_: self._measurement_dialog.dismiss()),
                MDRaisedButton(text=self.tx("save"), on_release=save),
            ],
        )
        self._measurement_dialog.open()

    # -------------------------
    # Statistics
    # -------------------------
    def set_period(self, period: str):
        self.period = period
        self.refresh_statistics()

    def refresh_statistics(self):
        try:
            now = datetime.now()
            ids = self.root.ids
            series = trailing_adherence(self.medicines, now, PERIOD_DAYS[self.period])

            ids.stat_adherence.text = f"{overall_adherence(series)}% {self.tx('adherenceRate')}"
            ids.stat_streak.text = f"{self.store.load_streak()} {self.tx('streak')}"
            ids.stat_medicines.text = f"{len(self.medicines)} {self.tx('activeMedicines')}"
            ids.stat_doses.text = f"{daily_dose_count(self.medicines)} {self.tx('dailyDoses')}"

            bars = ids.adherence_bars
            bars.clear_widgets()
            for day in reversed(series):
                row = MDBoxLayout(orientation="horizontal", spacing="8dp", size_hint_y=None, height="22dp")
                row.add_widget(MDLabel(text=day.label, size_hint_x=None, width="48dp"))
                row.add_widget(MDProgressBar(value=day.percentage))
                row.add_widget(MDLabel(text=f"{day.percentage}%", size_hint_x=None, width="44dp"))
                bars.add_widget(row)

            tl = ids.type_list
            tl.clear_widgets()
            for med_type, count in type_distribution(self.medicines).items():
                tl.add_widget(OneLineListItem(text=f"{type_label(self.lang, med_type)}: {count}"))
            for med in self.medicines:
                tl.add_widget(OneLineListItem(
                    text=f"{med.name} ({med.dosage})  •  {len(med.times)} {self.tx('timesPerDay')}"))
        except Exception:
            logger.exception("refresh_statistics failed")

    # -------------------------
    # Profile / family
    # -------------------------
    def refresh_profile(self):
        try:
            ids = self.root.ids
            members = family.ensure_default(self.store.load_family())
            active = family.active_member(members)
            ids.active_profile.text = active.name if active else ""
            summary = family.profile_summary(len(self.medicines), self.store.load_streak(),
                                             len(self.store.load_measurements()))
            ids.profile_summary.text = (
                f"{summary['medicines']} {self.tx('activeMedicines')}  •  "
                f"{summary['streak']} {self.tx('days')}  •  "
                f"{summary['measurements']} {self.tx('measurements')}"
            )

            fl = ids.family_list
            fl.clear_widgets()
            for m in members:
                item = TwoLineIconListItem(
                    text=m.name,
                    secondary_text=f"{m.relation}" + (f"  •  {self.tx('active')}" if m.is_active else ""),
                )
                item.add_widget(IconLeftWidget(icon="account-check" if m.is_active else "account"))
                item.on_release = lambda m_id=m.id: self.switch_member(m_id)
                fl.add_widget(item)
        except Exception:
            logger.exception("refresh_profile failed")

    def switch_member(self, member_id: str):
        try:
            members = family.switch_member(family.ensure_default(self.store.load_family()), member_id)
            self.store.save_family(members)
            logger.info(f"active family member: {member_id}")
            self.refresh_profile()
        except Exception:
            logger.exception("switch member failed")

    def show_member_dialog(self):
        content = MDBoxLayout(orientation="vertical", spacing="10dp", padding="10dp", size_hint_y=None)
        content.bind(minimum_height=content.setter("height"))
        name = MDTextField(hint_text=self.tx("name"), helper_text_mode="on_error")
        relation = MDTextField(hint_text=self.tx("relation"))
        content.add_widget(name)
        content.add_widget(relation)

        def save(*_):
            members = family.ensure_default(self.store.load_family())
            try:
                members = family.add_member(members, name.text, relation.text)
            except ValidationError as e:
                name.helper_text = self.tx(e.message_key)
                name.error = True
                return
            try:
                self.store.save_family(members)
                self._member_dialog.dismiss()
                self.refresh_profile()
            except Exception:
                logger.exception("add member failed")

        self._member_dialog = MDDialog(
            title=self.tx("addFamilyMember"),
            type="custom",
            content_cls=content,
            buttons=[
                MDFlatButton(text=self.tx("cancel"), on_release=lambda *_: self._member_dialog.dismiss()),
                MDRaisedButton(text=self.tx("save"), on_release=save),
            ],
        )
        self._member_dialog.open()

    # -------------------------
    # Settings screen
    # -------------------------
    def refresh_settings(self):
        try:
            ids = self.root.ids
            ids.notif_toggle.text = "ON" if self.settings.current.critical_notifications else "OFF"
            ids.debug_log.text = RING.text()
        except Exception:
            logger.exception("refresh_settings failed")

    def clear_debug_log(self):
        clear_log(self.paths.log_path)
        self.root.ids.debug_log.text = ""
        logger.info("log cleared")


# -------------------------
# Entrypoint
# -------------------------
def main():
    DoseWiseApp().run()


if __name__ == "__main__":
    main()
