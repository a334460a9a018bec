import logging
from translations import TRANSLATIONS

logger = logging.getLogger("utils.i18n")

DEFAULT_LOCALE = "ar"

LOCALE_MAP = {
    "Arabic": "ar",
    "العربية": "ar",
    "English": "en",
    "ar": "ar",
    "en": "en",
}


def t(locale, key, **kwargs):
    """
    Translation helper with safe fallback
    """

    lang = LOCALE_MAP.get(locale, DEFAULT_LOCALE)
    translations = TRANSLATIONS.get(lang, {})

    if key not in translations:
        logger.warning("Missing translation: %s.%s", lang, key)

    text = translations.get(
        key,
        TRANSLATIONS[DEFAULT_LOCALE].get(key, key)
    )

    return text.format(**kwargs) if kwargs else text
