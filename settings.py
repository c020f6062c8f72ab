# settings.py
# App-wide settings (theme, language, critical notifications). Loaded once
# from the preferences bucket, changed only through the setters below, and
# pushed to subscribers after every change.

from dataclasses import asdict, dataclass, replace
from typing import Callable, List

from applog import logger

THEMES = ("light", "dark")
LANGUAGES = ("ar", "en")


@dataclass(frozen=True)
class Settings:
    theme: str = "light"
    language: str = "ar"
    critical_notifications: bool = True

    @property
    def text_direction(self) -> str:
        return "rtl" if self.language == "ar" else "ltr"

    @classmethod
    def from_prefs(cls, prefs: dict) -> "Settings":
        s = cls()
        theme = prefs.get("theme")
        if theme in THEMES:
            s = replace(s, theme=theme)
        lang = prefs.get("language")
        if lang in LANGUAGES:
            s = replace(s, language=lang)
        notif = prefs.get("critical_notifications")
        if isinstance(notif, bool):
            s = replace(s, critical_notifications=notif)
        return s


class SettingsStore:
    def __init__(self, store):
        self._store = store
        self._subscribers: List[Callable[[Settings], None]] = []
        self._current = Settings.from_prefs(store.load_preferences())

    @property
    def current(self) -> Settings:
        return self._current

    def subscribe(self, callback: Callable[[Settings], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        return unsubscribe

    def _apply(self, new: Settings):
        if new == self._current:
            return
        self._current = new
        self._store.save_preferences(asdict(new))
        logger.info(f"settings changed: {asdict(new)}")
        for cb in list(self._subscribers):
            cb(new)

    def toggle_theme(self):
        self._apply(replace(self._current,
                            theme="dark" if self._current.theme == "light" else "light"))

    def set_language(self, language: str):
        if language not in LANGUAGES:
            raise ValueError(f"unsupported language {language!r}")
        self._apply(replace(self._current, language=language))

    def toggle_critical_notifications(self):
        self._apply(replace(self._current,
                            critical_notifications=not self._current.critical_notifications))
