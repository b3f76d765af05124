"""
Session Repair Pass
-------------------
Classifies every request cookie as healthy, repaired or expire and builds
the sanitized cookie set plus the expiry directives for the response.
"""

import logging
from collections.abc import Iterable

from app.models import (
    CookieEntry,
    CookieMutation,
    EncodingTag,
    RepairOutcome,
    RepairReport,
    RepairStatus,
    SanitizedCookieSet,
)
from app.services.cookie_codec import CookieCodec

logger = logging.getLogger(__name__)


def classify_cookie(entry: CookieEntry, codec: CookieCodec) -> RepairOutcome:
    """Decide the terminal state of a single cookie."""
    tag = entry.encoding_tag
    if tag is EncodingTag.NONE:
        # Entries built elsewhere may not carry a tag yet
        tag = codec.detect_encoding(entry.raw_value)
    if tag is EncodingTag.NONE:
        return RepairOutcome(entry=entry, status=RepairStatus.HEALTHY)

    result = codec.attempt_decode(entry.raw_value, tag)
    if result.ok:
        return RepairOutcome(
            entry=entry, status=RepairStatus.REPAIRED, repaired_value=result.value
        )
    return RepairOutcome(entry=entry, status=RepairStatus.EXPIRE)


def repair_cookies(
    entries: Iterable[CookieEntry],
    codec: CookieCodec,
    *,
    secure: bool = True,
    samesite: str = "lax",
) -> RepairReport:
    """Run the repair pass over one request's cookies.

    A failure while handling one entry marks only that entry for expiry;
    the rest of the pass carries on.

    Args:
        entries: Cookies as read from the request, in transport order.
        codec: Codec holding the configured encoding prefixes.
        secure: Secure flag for queued expiry directives.
        samesite: SameSite attribute for queued expiry directives.

    Returns:
        RepairReport with per-entry outcomes, the sanitized set and the
        expiry directives.
    """
    outcomes: list[RepairOutcome] = []
    pairs: list[tuple[str, str]] = []
    expiries: list[CookieMutation] = []

    for entry in entries:
        try:
            outcome = classify_cookie(entry, codec)
        except Exception:
            logger.warning(f"Error processing cookie {entry.name}, expiring it", exc_info=True)
            outcome = RepairOutcome(entry=entry, status=RepairStatus.EXPIRE)

        outcomes.append(outcome)

        if outcome.status is RepairStatus.HEALTHY:
            pairs.append((entry.name, entry.raw_value))
            if entry.is_auth_related:
                logger.debug(f"Cookie {entry.name} is healthy")
        elif outcome.status is RepairStatus.REPAIRED:
            pairs.append((entry.name, outcome.repaired_value))
            logger.info(f"Recovered cookie {entry.name} from prefixed encoding")
        else:
            expiries.append(
                CookieMutation.expire(entry.name, secure=secure, samesite=samesite)
            )
            logger.warning(f"Expired unparseable cookie: {entry.name}")

    return RepairReport(
        outcomes=outcomes,
        sanitized=SanitizedCookieSet(tuple(pairs)),
        expiry_directives=expiries,
    )
