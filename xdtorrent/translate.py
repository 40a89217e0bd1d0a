"""Message translation backed by gettext catalogues."""

from __future__ import annotations

import gettext
import os
import sys
from typing import Optional

DEFAULT_LOCALE = "en_US"
DOMAIN = "default"

if sys.platform.startswith("linux"):
    PATH = "/usr/share/XD/translations"
    ENV = "LC_ALL"
elif os.name == "nt":
    PATH = "translations"
    ENV = ""
else:
    PATH = "/usr/local/XD/translations"
    ENV = "LC_ALL"


class _Catalog:
    def __init__(self) -> None:
        self.translations: gettext.NullTranslations = gettext.NullTranslations()


_catalog = _Catalog()


def configure(path, locale: str, domain: str) -> None:
    """Load the catalogue for ``locale`` and ``domain`` under ``path``."""
    _catalog.translations = gettext.translation(
        domain, localedir=os.fspath(path), languages=[locale], fallback=True
    )


def translate(message: str) -> str:
    return _catalog.translations.gettext(message)


def translate_plural(singular: str, plural: str, n: int) -> str:
    return _catalog.translations.ngettext(singular, plural, n)


def error_text(err: Optional[BaseException]) -> str:
    """Translated text of an error, or an empty string for None."""
    if err is None:
        return ""
    return translate(str(err))


configure(PATH, (os.environ.get(ENV, "") if ENV else "") or DEFAULT_LOCALE, DOMAIN)