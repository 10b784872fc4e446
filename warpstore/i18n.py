# warpstore/i18n.py
"""
Localized messages.

The current locale is held in a context variable so every request or task can
render messages for its own receiver without passing the locale around.
Lookups fall back from the full locale ("de_DE") to the language ("de"), then
to the default locale and finally to the key itself.
"""
import contextvars
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)

FALLBACK_LOCALE = "en"

CATALOGS: Dict[str, Dict[str, str]] = {
    "en": {
        "default-welcome-message": "Welcome to '%warp%'!",
        "info.heading": "Information about",
        "info.created-by": "Created by:",
        "info.created-by-you": "(you)",
        "info.location": "Location:",
        "info.location.position": "{x}, {y}, {z} in '{world}'",
        "info.invited-players": "Invited players:",
        "info.invited-groups": "Invited groups:",
        "info.creation-date": "Creation date:",
        "info.visits": "Visits:",
        "info.visits.per-day": "{visits} times ({per_day:.2f} per day)",
        "error.no-such-warp": "There is no warp named '{warp}'.",
        "error.warp-name-taken": "A warp named '{warp}' already exists.",
        "error.no-permission.modify": "You are not allowed to modify '{warp}'.",
        "error.no-permission.use": "You are not allowed to use '{warp}'.",
        "error.storage-unavailable": "Storage unavailable",
        "limit.private.reached": "You have reached your limit of {limit} private warps.",
        "warp.private": "'{warp}' is now private.",
        "warp.public": "'{warp}' is now public.",
        "warp.welcome-message.changed": "The welcome message of '{warp}' has been changed.",
    },
    "de": {
        "default-welcome-message": "Willkommen bei '%warp%'!",
        "info.heading": "Informationen zu",
        "info.created-by": "Erstellt von:",
        "info.created-by-you": "(dir)",
        "info.location": "Position:",
        "info.location.position": "{x}, {y}, {z} in '{world}'",
        "info.invited-players": "Eingeladene Spieler:",
        "info.invited-groups": "Eingeladene Gruppen:",
        "info.creation-date": "Erstellt am:",
        "info.visits": "Besuche:",
        "info.visits.per-day": "{visits} mal ({per_day:.2f} pro Tag)",
        "error.no-such-warp": "Es gibt keinen Warp mit dem Namen '{warp}'.",
        "error.warp-name-taken": "Es gibt bereits einen Warp mit dem Namen '{warp}'.",
        "error.no-permission.modify": "Du darfst '{warp}' nicht bearbeiten.",
        "error.no-permission.use": "Du darfst '{warp}' nicht benutzen.",
        "error.storage-unavailable": "Speicher nicht verfügbar",
        "limit.private.reached": "Du hast dein Limit von {limit} privaten Warps erreicht.",
        "warp.private": "'{warp}' ist jetzt privat.",
        "warp.public": "'{warp}' ist jetzt öffentlich.",
        "warp.welcome-message.changed": "Die Willkommensnachricht von '{warp}' wurde geändert.",
    },
}

# Short date-time patterns, one per language.
DATE_TIME_FORMATS: Dict[str, str] = {
    "en": "%m/%d/%y, %I:%M %p",
    "de": "%d.%m.%y, %H:%M",
}

_current_locale: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "warpstore_locale", default=None
)


def _candidates(locale: str) -> List[str]:
    """Lookup chain for a locale, most specific first."""
    normalized = locale.replace("-", "_")
    chain = [normalized]
    language = normalized.split("_", 1)[0].lower()
    if language not in chain:
        chain.append(language)
    default = LocaleManager.get_default_locale()
    for locale_name in (default, FALLBACK_LOCALE):
        if locale_name not in chain:
            chain.append(locale_name)
    return chain


class LocaleManager:
    """Holds the default locale and the locale of the current context."""

    _default_locale: str = FALLBACK_LOCALE

    @classmethod
    def get_default_locale(cls) -> str:
        return cls._default_locale

    @classmethod
    def set_default_locale(cls, locale: str) -> None:
        cls._default_locale = locale

    @classmethod
    def get_locale(cls) -> str:
        return _current_locale.get() or cls._default_locale

    @classmethod
    def set_locale(cls, locale: Optional[str]) -> contextvars.Token:
        return _current_locale.set(locale)

    @classmethod
    def reset(cls, token: contextvars.Token) -> None:
        _current_locale.reset(token)

    @classmethod
    @contextmanager
    def using(cls, locale: Optional[str]) -> Iterator[None]:
        """Render messages under the given locale for the duration of the block."""
        token = cls.set_locale(locale)
        try:
            yield
        finally:
            cls.reset(token)


class DynamicMessages:
    """Resolves message keys against the catalogs under the current locale."""

    def __init__(self, catalogs: Optional[Dict[str, Dict[str, str]]] = None):
        self.catalogs = catalogs if catalogs is not None else CATALOGS

    def get_string(self, key: str, **kwargs) -> str:
        for locale in _candidates(LocaleManager.get_locale()):
            template = self.catalogs.get(locale, {}).get(key)
            if template is not None:
                return template.format(**kwargs) if kwargs else template
        logger.warning(f"Missing message key '{key}'")
        return key


def format_datetime(value: datetime, locale: Optional[str] = None) -> str:
    """Format a timestamp with the short date-time pattern of the locale."""
    for candidate in _candidates(locale or LocaleManager.get_locale()):
        pattern = DATE_TIME_FORMATS.get(candidate)
        if pattern is not None:
            return value.astimezone().strftime(pattern)
    return value.isoformat()
