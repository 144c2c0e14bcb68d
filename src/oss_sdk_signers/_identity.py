"""
Copyright The oss-sdk-signers Authors. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0
"""

import os
import re
from dataclasses import dataclass, field
from typing import Self

from .exceptions import InvalidCredentialError

ACCESS_KEY_ID_ENV_VAR = "OSS_ACCESS_KEY_ID"
ACCESS_KEY_SECRET_ENV_VAR = "OSS_ACCESS_KEY_SECRET"

# Separates fields in upload tokens and authorization header values.
FIELD_SEPARATOR = ":"

# Control characters would break the header value the access key ends up in.
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


@dataclass(frozen=True, kw_only=True)
class OSSCredentialIdentity:
    access_key_id: str
    secret_access_key: bytes = field(repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.access_key_id, str) or not self.access_key_id.strip():
            raise InvalidCredentialError("access_key_id must be a non-blank string.")
        if FIELD_SEPARATOR in self.access_key_id:
            raise InvalidCredentialError(
                f"access_key_id must not contain {FIELD_SEPARATOR!r}, it is used "
                "as the field separator in tokens and authorization values."
            )
        if _CONTROL_CHARS.search(self.access_key_id):
            raise InvalidCredentialError(
                "access_key_id must not contain control characters."
            )

        secret = self.secret_access_key
        if isinstance(secret, str):
            secret = secret.encode("utf-8")
        if not isinstance(secret, bytes | bytearray):
            raise InvalidCredentialError(
                "secret_access_key must be str or bytes. Received "
                f"{type(self.secret_access_key)}."
            )
        if not secret.strip():
            raise InvalidCredentialError("secret_access_key must not be blank.")
        # Frozen dataclass, so normalize through object.__setattr__.
        object.__setattr__(self, "secret_access_key", bytes(secret))

    @classmethod
    def from_environment(cls, environ: dict[str, str] | None = None) -> Self:
        """Build an identity from ``OSS_ACCESS_KEY_ID`` and ``OSS_ACCESS_KEY_SECRET``."""
        if environ is None:
            environ = dict(os.environ)
        access_key_id = environ.get(ACCESS_KEY_ID_ENV_VAR)
        secret = environ.get(ACCESS_KEY_SECRET_ENV_VAR)
        if access_key_id is None or secret is None:
            raise InvalidCredentialError(
                f"Both {ACCESS_KEY_ID_ENV_VAR} and {ACCESS_KEY_SECRET_ENV_VAR} "
                "must be set in the environment."
            )
        return cls(access_key_id=access_key_id, secret_access_key=secret.encode())
