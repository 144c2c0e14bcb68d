"""
Copyright The oss-sdk-signers Authors. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0
"""

import pytest

from oss_sdk_signers import URI, OSSRequest
from oss_sdk_signers.exceptions import MalformedUrlError


class TestURI:
    def test_relative(self):
        uri = URI.from_string("/ajax/bucket/file/create")
        assert uri.path == "/ajax/bucket/file/create"
        assert uri.query is None
        assert uri.scheme is None

    def test_absolute(self):
        uri = URI.from_string("https://oss.example.com:8443/a%2Fb?x=%41&y#top")
        assert uri.scheme == "https"
        assert uri.host == "oss.example.com"
        assert uri.port == 8443
        assert uri.path == "/a%2Fb"
        assert uri.query == "x=%41&y"
        assert uri.fragment == "top"

    def test_empty_query(self):
        assert URI.from_string("/a?").query is None

    def test_host_without_path(self):
        assert URI.from_string("http://oss.example.com").path == ""

    @pytest.mark.parametrize(
        "url",
        [
            "/a b",
            "/a\tb",
            "/a?x=<y>",
            "/a|b",
            "/a%2",
            "/a?x=100%",
            "http://host:notaport/a",
            "http://[::1/a",
            "mailto:someone@example.com",
        ],
    )
    def test_malformed(self, url: str):
        with pytest.raises(MalformedUrlError):
            URI.from_string(url)


class TestOSSRequest:
    def test_get_field_case_insensitive(self):
        request = OSSRequest(url="/a", fields={"Content-Type": "text/plain"})
        assert request.get_field("content-type") == "text/plain"
        assert request.get_field("CONTENT-TYPE") == "text/plain"
        assert request.get_field("x-missing") is None
