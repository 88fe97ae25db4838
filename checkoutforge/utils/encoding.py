"""
Encoding utilities for fuzzing payloads.

Provides the encoding schemes a genome can be rendered with.
"""

import base64
import urllib.parse


# Left unescaped by browser-style component encoding (encodeURIComponent)
COMPONENT_SAFE = "!*'()"

class Encoder:
    """Handles the encoding schemes applied to string payloads."""

    @staticmethod
    def url_encode(payload: str, safe: str = "") -> str:
        """URL encode a payload."""
        return urllib.parse.quote(payload, safe=safe)

    @staticmethod
    def url_decode(payload: str) -> str:
        """URL decode a payload."""
        return urllib.parse.unquote(payload)

    @staticmethod
    def double_url_encode(payload: str, safe: str = "") -> str:
        """Double URL encode for bypassing filters."""
        return urllib.parse.quote(urllib.parse.quote(payload, safe=safe), safe=safe)

    @staticmethod
    def unicode_encode(payload: str) -> str:
        """Convert to JavaScript Unicode escapes, one \\uHHHH per UTF-16 code unit."""
        units = payload.encode("utf-16-be", errors="surrogatepass")
        return "".join(
            f"\\u{int.from_bytes(units[i:i + 2], 'big'):04x}" for i in range(0, len(units), 2)
        )

    @staticmethod
    def base64_encode(payload: str) -> str:
        """Base64 encode a payload."""
        return base64.b64encode(payload.encode()).decode()

    @classmethod
    def encode(cls, payload: str, scheme: str) -> str:
        """Apply a named scheme. Unknown names and "raw" leave the payload as is."""
        if scheme == "url":
            return cls.url_encode(payload, safe=COMPONENT_SAFE)
        if scheme == "double_url":
            return cls.double_url_encode(payload, safe=COMPONENT_SAFE)
        if scheme == "base64":
            return cls.base64_encode(payload)
        if scheme == "unicode":
            return cls.unicode_encode(payload)
        return payload

    @classmethod
    def get_all_encodings(cls, payload: str) -> dict[str, str]:
        """Get all encoding variants of a payload."""
        return {
            "original": payload,
            "url_encoded": cls.url_encode(payload),
            "double_url": cls.double_url_encode(payload),
            "base64": cls.base64_encode(payload),
            "unicode_js": cls.unicode_encode(payload),
        }
