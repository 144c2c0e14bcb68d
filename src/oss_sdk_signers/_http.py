"""
Copyright The oss-sdk-signers Authors. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0
"""

import re
from dataclasses import dataclass, field
from typing import Self
from urllib.parse import urlsplit

from .exceptions import MalformedUrlError

# Characters that may never appear unescaped in a URI reference.
_ILLEGAL_URI_CHARS = re.compile(r'[\x00-\x20\x7f"<>\\^`{|}]')
_BAD_PERCENT_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


@dataclass(frozen=True, kw_only=True)
class URI:
    """Raw components of a URL.

    ``path`` and ``query`` keep their percent-encoding exactly as supplied;
    nothing is decoded or re-encoded.
    """

    path: str
    query: str | None = None
    scheme: str | None = None
    host: str | None = None
    port: int | None = None
    fragment: str | None = None

    @classmethod
    def from_string(cls, url: str) -> Self:
        """Split ``url`` into its raw components.

        :raises MalformedUrlError: if ``url`` is not a valid URI reference.
        """
        match = _ILLEGAL_URI_CHARS.search(url)
        if match is not None:
            raise MalformedUrlError(
                f"Illegal character {match.group()!r} at index {match.start()} "
                f"in URL: {url!r}"
            )
        match = _BAD_PERCENT_ESCAPE.search(url)
        if match is not None:
            raise MalformedUrlError(
                f"Malformed percent escape at index {match.start()} in URL: {url!r}"
            )

        try:
            parts = urlsplit(url)
            port = parts.port
        except ValueError as e:
            raise MalformedUrlError(f"Unable to parse URL {url!r}: {e}") from e

        if parts.scheme and not parts.netloc and not parts.path.startswith("/"):
            # e.g. "mailto:someone", there is no hierarchical path to sign.
            raise MalformedUrlError(f"URL has no hierarchical path: {url!r}")

        return cls(
            path=parts.path,
            # urlsplit can't tell "/a?" from "/a", both mean no query to sign.
            query=parts.query or None,
            scheme=parts.scheme or None,
            host=parts.hostname,
            port=port,
            fragment=parts.fragment or None,
        )


@dataclass(kw_only=True)
class OSSRequest:
    url: str
    method: str = "GET"
    body: bytes | None = None
    fields: dict[str, str] = field(default_factory=dict)

    def get_field(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        name = name.lower()
        for key, value in self.fields.items():
            if key.lower() == name:
                return value
        return None
