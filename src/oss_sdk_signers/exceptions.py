class BaseOSSSDKException(Exception):
    """Top-level exception to capture SDK-related errors."""

    ...


class InvalidCredentialError(BaseOSSSDKException, ValueError):
    """The access key id or secret is empty, blank, or otherwise unusable."""

    ...


class CryptoInitError(BaseOSSSDKException, RuntimeError):
    """The MAC primitive could not be initialized with the held key."""

    ...


class MalformedUrlError(BaseOSSSDKException, ValueError):
    """A URL handed to the signer could not be parsed into a path and query."""

    ...


class TokenValidationError(BaseOSSSDKException, ValueError):
    """An upload token failed verification."""

    ...


class MalformedTokenError(TokenValidationError): ...


class SignatureMismatchError(TokenValidationError): ...


class TokenExpiredError(TokenValidationError): ...


class RequestIpMismatchError(TokenValidationError): ...
