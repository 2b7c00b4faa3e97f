from __future__ import annotations

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from core.i18n import set_locale


SUPPORTED_LOCALES = ("es", "en")
DEFAULT_LOCALE = "en"


def _pick_from_accept_language(header: str) -> list[str]:
    """Language tags from Accept-Language ordered by q weight.

    Examples:
      'es-PE,es;q=0.9,en;q=0.8' -> ['es-PE', 'es', 'en']
    """
    weighted = []
    for index, part in enumerate(header.split(",")):
        lang, _, params = part.strip().partition(";")
        if not lang:
            continue
        q = 1.0
        params = params.strip()
        if params.startswith("q="):
            try:
                q = float(params[2:])
            except ValueError:
                q = 0.0
        weighted.append((-q, index, lang.strip()))
    return [lang for _, _, lang in sorted(weighted)]


def _normalize(lang: str | None) -> str | None:
    """Map a browser tag (es-PE, en_US, ...) to a supported locale."""
    if not lang:
        return None
    primary = lang.replace("_", "-").split("-", 1)[0].lower()
    return primary if primary in SUPPORTED_LOCALES else None


def resolve_locale(request: Request) -> str:
    """Priority: ?lang=xx > X-Lang > Accept-Language > default 'en'."""
    explicit = _normalize(request.query_params.get("lang") or request.headers.get("X-Lang"))
    if explicit:
        return explicit
    for candidate in _pick_from_accept_language(request.headers.get("Accept-Language", "")):
        locale = _normalize(candidate)
        if locale:
            return locale
    return DEFAULT_LOCALE


class LocaleMiddleware(BaseHTTPMiddleware):
    """Resolve the customer-facing locale for gateway messages."""

    async def dispatch(self, request: Request, call_next):
        locale = resolve_locale(request)
        set_locale(locale)
        request.state.locale = locale
        return await call_next(request)
