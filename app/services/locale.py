"""
Locale Negotiation
------------------
Path-prefix locale routing: every page lives under ``/<locale>/``.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class LocaleDecision:
    locale: str
    redirect_to: str | None = None
    persist_locale: bool = False

    @property
    def is_redirect(self) -> bool:
        return self.redirect_to is not None


def parse_accept_language(header: str | None) -> list[str]:
    """Primary language subtags from an Accept-Language header, best first."""
    if not header:
        return []
    weighted = []
    for position, part in enumerate(header.split(",")):
        pieces = [p.strip() for p in part.split(";")]
        tag = pieces[0].lower()
        if not tag or tag == "*":
            continue
        quality = 1.0
        for param in pieces[1:]:
            if param.startswith("q="):
                try:
                    quality = float(param[2:])
                except ValueError:
                    quality = 0.0
        if quality <= 0:
            continue
        weighted.append((-quality, position, tag.split("-")[0]))
    weighted.sort()
    return [tag for _, _, tag in weighted]


def path_locale(path: str, supported: list[str]) -> str | None:
    """Locale prefix of ``path`` if it is a supported one."""
    segment = path.lstrip("/").split("/", 1)[0]
    return segment if segment in supported else None


def is_path_under(path: str, prefixes: list[str]) -> bool:
    for prefix in prefixes:
        prefix = prefix.rstrip("/")
        if path == prefix or path.startswith(prefix + "/"):
            return True
    return False


def preferred_locale(
    locale_cookie: str | None, accept_language: str | None, settings
) -> str:
    if locale_cookie in settings.supported_locales:
        return locale_cookie
    for tag in parse_accept_language(accept_language):
        if tag in settings.supported_locales:
            return tag
    return settings.default_locale


def negotiate_locale(
    path: str,
    query: str,
    locale_cookie: str | None,
    accept_language: str | None,
    settings,
) -> LocaleDecision:
    """Decide the request's locale and whether it needs a prefix redirect.

    Depends only on the path, the locale cookie and Accept-Language, never
    on session cookies.
    """
    current = path_locale(path, settings.supported_locales)
    if current is not None:
        return LocaleDecision(locale=current, persist_locale=locale_cookie != current)

    locale = preferred_locale(locale_cookie, accept_language, settings)
    if is_path_under(path, settings.locale_exempt_prefixes):
        return LocaleDecision(locale=locale)

    target = f"/{locale}" if path in ("", "/") else f"/{locale}{path}"
    if query:
        target = f"{target}?{query}"
    return LocaleDecision(locale=locale, redirect_to=target)
