"""
Cookie Codec
------------
Detects and reverses the encoding-prefix artifact on session cookie values
(``base64-<payload>`` / ``base64url-<payload>``).
"""

import base64
import binascii
import json
from collections.abc import Mapping

from app.models import DecodeResult, EncodingTag

DEFAULT_PREFIXES: dict[str, EncodingTag] = {
    "base64-": EncodingTag.BASE64,
    "base64url-": EncodingTag.BASE64URL,
}


class CookieCodec:
    """Encode/decode cookie values according to a prefix table.

    The prefix table maps a textual marker to the encoding it announces. It
    comes from configuration so a change in the upstream cookie format only
    needs a settings change.

    Args:
        prefixes: Mapping of value prefix to encoding tag (or its name).
    """

    def __init__(self, prefixes: Mapping[str, EncodingTag | str] | None = None):
        table = DEFAULT_PREFIXES if prefixes is None else prefixes
        # Longest first so overlapping markers resolve to the most specific one
        self._prefixes: list[tuple[str, EncodingTag]] = sorted(
            ((prefix, EncodingTag(tag)) for prefix, tag in table.items() if prefix),
            key=lambda item: len(item[0]),
            reverse=True,
        )

    @classmethod
    def from_settings(cls, settings) -> "CookieCodec":
        return cls(settings.cookie_encoding_prefixes)

    def _match(self, raw_value: str) -> tuple[str, EncodingTag] | None:
        for prefix, tag in self._prefixes:
            if tag is not EncodingTag.NONE and raw_value.startswith(prefix):
                return prefix, tag
        return None

    def detect_encoding(self, raw_value) -> EncodingTag:
        """Return the encoding announced by the value's prefix, or NONE."""
        if not isinstance(raw_value, str):
            return EncodingTag.NONE
        match = self._match(raw_value)
        return match[1] if match else EncodingTag.NONE

    def attempt_decode(self, raw_value: str, encoding_tag: EncodingTag) -> DecodeResult:
        """Strip the marker and base64-decode the payload.

        Never raises: every failure (unknown marker, bad alphabet, truncated
        payload, non UTF-8 bytes) is reported as ``DecodeResult(ok=False)``.
        """
        if encoding_tag is EncodingTag.NONE:
            return DecodeResult(ok=True, value=raw_value)
        if not isinstance(raw_value, str):
            return DecodeResult.failure()

        match = self._match(raw_value)
        if match is None or match[1] is not encoding_tag:
            return DecodeResult.failure()

        return self.decode_payload(raw_value[len(match[0]):])

    def decode_payload(self, payload: str) -> DecodeResult:
        """Decode a bare base64/base64url payload (no marker). Never raises."""
        normalized = payload.replace("-", "+").replace("_", "/")
        normalized += "=" * (-len(normalized) % 4)

        try:
            decoded = base64.b64decode(normalized, validate=True).decode("utf-8")
        except (ValueError, binascii.Error, UnicodeDecodeError):
            return DecodeResult.failure()

        try:
            json.loads(decoded)
        except ValueError:
            return DecodeResult(ok=True, value=decoded)
        return DecodeResult(ok=True, value=decoded, was_json=True)

    def encode_value(self, value: str, encoding_tag: EncodingTag) -> str:
        """Produce ``<prefix><payload>`` for ``encoding_tag`` (inverse of attempt_decode)."""
        if encoding_tag is EncodingTag.NONE:
            return value

        prefix = self.prefix_for(encoding_tag)
        raw = value.encode("utf-8")
        if encoding_tag is EncodingTag.BASE64URL:
            payload = base64.urlsafe_b64encode(raw)
        else:
            payload = base64.b64encode(raw)
        return prefix + payload.decode("ascii").rstrip("=")

    def prefix_for(self, encoding_tag: EncodingTag) -> str:
        # Shortest marker is the canonical one for writing
        candidates = [p for p, tag in self._prefixes if tag is encoding_tag]
        if not candidates:
            raise ValueError(f"No prefix configured for encoding {encoding_tag.value!r}")
        return min(candidates, key=len)
