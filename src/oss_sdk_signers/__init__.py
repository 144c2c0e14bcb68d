"""
Copyright The oss-sdk-signers Authors. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0

OSS SDK Python Signers provides stand-alone request signing and upload token
issuance for the OSS object storage HTTP API, for use with HTTP tools such as
AioHTTP, Requests, urllib3, etc.
"""

from __future__ import annotations

from ._http import URI, OSSRequest
from ._identity import OSSCredentialIdentity
from ._version import __version__
from .signers import OSSSigner, SignerConfiguration, UploadToken, signable_bytes

__license__ = "Apache-2.0"
__version__ = __version__

__all__ = (
    "OSSCredentialIdentity",
    "OSSRequest",
    "OSSSigner",
    "SignerConfiguration",
    "URI",
    "UploadToken",
    "signable_bytes",
)
