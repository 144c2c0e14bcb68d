import base64
import binascii
import hmac
import json
import logging
import time
from collections.abc import Callable
from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Self

from ._http import URI, OSSRequest
from ._identity import FIELD_SEPARATOR, OSSCredentialIdentity
from .exceptions import (
    CryptoInitError,
    MalformedTokenError,
    RequestIpMismatchError,
    SignatureMismatchError,
    TokenExpiredError,
)

logger = logging.getLogger(__name__)

OSS_SDK_AUTH_HEADER_NAME: str = "oss_sdk_authorization"
OSS_SDK_AUTH_PREFIX: str = "OSS-"
FORM_MIME: str = "application/x-www-form-urlencoded"
DEFAULT_UPLOAD_TOKEN_EXPIRES: int = 3600

TOKEN_DEADLINE_KEY: str = "deadline"
TOKEN_REQUEST_IP_KEY: str = "requestIp"


@dataclass(frozen=True, kw_only=True)
class SignerConfiguration:
    header_name: str = OSS_SDK_AUTH_HEADER_NAME
    default_expires: int = DEFAULT_UPLOAD_TOKEN_EXPIRES
    digestmod: str = "sha1"
    clock: Callable[[], float] = time.time


@dataclass(frozen=True, kw_only=True)
class UploadToken:
    """Parsed view of an upload token string.

    Parsing does not verify the signature, see
    :meth:`OSSSigner.verify_upload_token` for that.
    """

    access_key_id: str
    signature: str
    encoded_payload: str
    deadline: int
    request_ip: str | None = None

    @classmethod
    def from_string(cls, token: str) -> Self:
        parts = token.split(FIELD_SEPARATOR)
        if len(parts) != 3 or not all(parts):
            raise MalformedTokenError(
                "Upload token must have three non-empty fields separated by "
                f"{FIELD_SEPARATOR!r}."
            )
        access_key_id, signature, encoded_payload = parts

        try:
            payload = json.loads(base64.b64decode(encoded_payload, validate=True))
        except (binascii.Error, ValueError, RecursionError) as e:
            # RecursionError comes from deeply nested JSON arrays or objects.
            raise MalformedTokenError(f"Unable to decode token payload: {e}") from e
        if not isinstance(payload, dict):
            raise MalformedTokenError("Token payload must be a JSON object.")

        deadline = payload.get(TOKEN_DEADLINE_KEY)
        # bool is an int subclass but never a valid deadline.
        if not isinstance(deadline, int) or isinstance(deadline, bool):
            raise MalformedTokenError(
                f"Token payload has invalid {TOKEN_DEADLINE_KEY!r}: {deadline!r}"
            )
        request_ip = payload.get(TOKEN_REQUEST_IP_KEY)
        if request_ip is not None and not isinstance(request_ip, str):
            raise MalformedTokenError(
                f"Token payload has invalid {TOKEN_REQUEST_IP_KEY!r}: {request_ip!r}"
            )

        return cls(
            access_key_id=access_key_id,
            signature=signature,
            encoded_payload=encoded_payload,
            deadline=deadline,
            request_ip=request_ip,
        )

    def is_expired(self, now: float) -> bool:
        return self.deadline < int(now)


def signable_bytes(
    *,
    path: str,
    query: str | None,
    body: bytes | None,
    content_type: str | None,
) -> bytes:
    """Build the canonical bytes covered by a request signature.

    The layout is ``<raw path>[?<raw query>]\\n[<form body>]``. The body is only
    included for form-encoded requests so that binary and multipart payloads
    never feed into the signature.
    """
    parts = [path.encode("utf-8")]
    if query:
        parts.append(b"?")
        parts.append(query.encode("utf-8"))
    parts.append(b"\n")
    if (
        body is not None
        and content_type is not None
        and content_type.lower() == FORM_MIME
    ):
        parts.append(bytes(body))
    return b"".join(parts)


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class OSSSigner:
    """
    Request signer and upload token issuer for the OSS HTTP API.

    Request signatures and upload tokens are both HMAC digests keyed by the
    identity's secret. A signer holds no mutable state, so one instance may
    be shared freely across threads.
    """

    def __init__(
        self,
        *,
        identity: OSSCredentialIdentity,
        config: SignerConfiguration | None = None,
    ):
        self._validate_identity(identity=identity)
        self._identity = identity
        self._config = config if config is not None else SignerConfiguration()
        # Fail fast if the digest is unavailable in this runtime.
        self._new_mac()
        logger.debug(
            "Init signer: access_key_id: %s, secret_access_key: ******",
            identity.access_key_id,
        )

    @classmethod
    def create(
        cls,
        access_key_id: str,
        secret_access_key: str | bytes,
        *,
        config: SignerConfiguration | None = None,
    ) -> Self:
        if isinstance(secret_access_key, str):
            secret_access_key = secret_access_key.encode("utf-8")
        identity = OSSCredentialIdentity(
            access_key_id=access_key_id, secret_access_key=secret_access_key
        )
        return cls(identity=identity, config=config)

    @property
    def access_key_id(self) -> str:
        return self._identity.access_key_id

    def sign(self, *, request: OSSRequest) -> OSSRequest:
        """Return a copy of ``request`` with the authorization field applied."""
        new_request = deepcopy(request)
        header = self.authorization_header(
            new_request.url,
            body=new_request.body,
            content_type=new_request.get_field("content-type"),
        )
        new_request.fields.update(header)
        return new_request

    def authorization_header(
        self,
        url: str,
        *,
        body: bytes | None = None,
        content_type: str | None = None,
    ) -> dict[str, str]:
        """Generate the authorization field as a single-entry mapping."""
        value = OSS_SDK_AUTH_PREFIX + self.sign_request(
            url, body=body, content_type=content_type
        )
        return {self._config.header_name: value}

    def sign_request(
        self,
        url: str,
        *,
        body: bytes | None = None,
        content_type: str | None = None,
    ) -> str:
        """Sign ``url`` (and its body when form-encoded).

        :returns: ``<access_key_id>:<base64 digest>``
        :raises MalformedUrlError: if ``url`` can't be parsed.
        """
        uri = URI.from_string(url)
        canonical = signable_bytes(
            path=uri.path, query=uri.query, body=body, content_type=content_type
        )
        logger.debug("Sign request: bytes to be signed = %r", canonical)
        return f"{self.access_key_id}{FIELD_SEPARATOR}{self._signature(canonical)}"

    def upload_token(
        self, expires: int | None = None, request_ip: str | None = None
    ) -> str:
        """Issue an upload token valid for ``expires`` seconds.

        Note the token carries every permission of the account it was issued
        for until the deadline passes.
        """
        if expires is None:
            expires = self._config.default_expires
        if not isinstance(expires, int) or isinstance(expires, bool) or expires < 0:
            raise ValueError(
                f"expires must be a non-negative number of seconds, got {expires!r}."
            )
        if request_ip is not None and not isinstance(request_ip, str):
            raise ValueError(
                f"request_ip must be a string or None, got {request_ip!r}."
            )

        deadline = int(self._config.clock()) + expires
        encoded_payload = _b64encode(
            self._encode_payload(deadline=deadline, request_ip=request_ip)
        )
        encoded_signature = self._signature(encoded_payload.encode("utf-8"))
        logger.debug(
            "Issued upload token for %s, deadline=%d, request_ip=%s",
            self.access_key_id,
            deadline,
            request_ip,
        )
        return FIELD_SEPARATOR.join(
            (self.access_key_id, encoded_signature, encoded_payload)
        )

    def verify_request(
        self,
        url: str,
        authorization: str,
        *,
        body: bytes | None = None,
        content_type: str | None = None,
    ) -> bool:
        """Check an authorization value produced by :meth:`authorization_header`."""
        expected = self.authorization_header(
            url, body=body, content_type=content_type
        )[self._config.header_name]
        if hmac.compare_digest(expected.encode(), authorization.encode()):
            return True
        logger.debug("Request signature mismatch for %s", url)
        return False

    def verify_upload_token(
        self, token: str, *, request_ip: str | None = None
    ) -> UploadToken:
        """Verify an upload token and return its decoded contents.

        :param request_ip: address the request came from. Only checked when the
            token is pinned to an address.
        :raises TokenValidationError: subclass describing the failure.
        """
        parsed = UploadToken.from_string(token)
        if parsed.access_key_id != self.access_key_id:
            logger.debug("Upload token issued for %s", parsed.access_key_id)
            raise SignatureMismatchError(
                "Upload token was not issued for this access key."
            )

        expected = self._signature(parsed.encoded_payload.encode("utf-8"))
        if not hmac.compare_digest(expected.encode(), parsed.signature.encode()):
            logger.debug("Upload token signature mismatch")
            raise SignatureMismatchError("Upload token signature does not match.")

        now = self._config.clock()
        if parsed.is_expired(now):
            logger.debug(
                "Upload token expired: deadline=%d, now=%d", parsed.deadline, now
            )
            raise TokenExpiredError(f"Upload token expired at {parsed.deadline}.")

        if (
            parsed.request_ip is not None
            and request_ip is not None
            and parsed.request_ip != request_ip
        ):
            logger.debug(
                "Upload token pinned to %s, request from %s",
                parsed.request_ip,
                request_ip,
            )
            raise RequestIpMismatchError(
                f"Upload token is restricted to {parsed.request_ip}."
            )
        return parsed

    def _signature(self, msg: bytes) -> str:
        mac = self._new_mac()
        mac.update(msg)
        return _b64encode(mac.digest())

    def _new_mac(self) -> hmac.HMAC:
        # HMAC objects carry running state, each call gets its own.
        try:
            return hmac.new(
                key=self._identity.secret_access_key,
                digestmod=self._config.digestmod,
            )
        except (ValueError, TypeError) as e:
            raise CryptoInitError(
                f"Unable to initialize HMAC with digest {self._config.digestmod!r}."
            ) from e

    def _encode_payload(self, *, deadline: int, request_ip: str | None) -> bytes:
        # Fixed key order and separators so the encoding is reproducible.
        payload: dict[str, Any] = {
            TOKEN_DEADLINE_KEY: deadline,
            TOKEN_REQUEST_IP_KEY: request_ip,
        }
        return json.dumps(payload, separators=(",", ":")).encode("utf-8")

    def _validate_identity(self, *, identity: OSSCredentialIdentity) -> None:
        if not isinstance(identity, OSSCredentialIdentity):
            raise ValueError(
                "Received unexpected value for identity parameter. Expected "
                f"OSSCredentialIdentity but received {type(identity)}."
            )
