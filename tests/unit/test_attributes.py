"""
Unit Tests - Transaction Attributes
"""

import pytest

from apmcore.config import AttributeSettings
from apmcore.core.exceptions import AttributeLimitError, InvalidAttributeError
from apmcore.transaction.attributes import Attributes, safe_url, truncate_utf8


class TestUserAttributes:
    """Tests for validation of user key/value pairs."""

    @pytest.mark.parametrize("value", [None, [1], {"a": 1}, float("nan"), float("inf")])
    def test_rejected_values(self, value):
        attrs = Attributes()

        assert isinstance(attrs.add_user_attribute("k", value), InvalidAttributeError)
        assert attrs.user == {}

    def test_rejected_keys(self):
        attrs = Attributes()

        assert isinstance(attrs.add_user_attribute("", 1), InvalidAttributeError)
        assert isinstance(attrs.add_user_attribute("k" * 256, 1), InvalidAttributeError)

    def test_long_string_truncated(self):
        attrs = Attributes()
        attrs.add_user_attribute("note", "x" * 300)

        assert len(attrs.user["note"]) == 255

    def test_limit(self):
        attrs = Attributes(AttributeSettings(max_user_attributes=1))

        assert attrs.add_user_attribute("a", 1) is None
        assert isinstance(attrs.add_user_attribute("b", 2), AttributeLimitError)
        # Overwriting an existing key does not count against the limit
        assert attrs.add_user_attribute("a", 3) is None
        assert attrs.user == {"a": 3}

    def test_disabled_attributes_ignored(self):
        attrs = Attributes(AttributeSettings(enabled=False))

        assert attrs.add_user_attribute("a", 1) is None
        assert attrs.user == {}

    def test_invalid_attribute_through_transaction(self, make_txn):
        err = make_txn().add_attribute("bad", object())

        assert isinstance(err, InvalidAttributeError)
        assert err.context["key"] == "bad"


class TestHelpers:
    def test_safe_url(self):
        assert safe_url("http://user:pw@host:8080/p?q=1#f") == "http://host:8080/p"
        assert safe_url("") == ""

    def test_safe_url_malformed_port(self):
        assert safe_url("http://example.com:notaport/p") == ""

    def test_safe_url_keeps_ipv6_brackets(self):
        assert safe_url("http://user@[::1]:8080/p?q=1") == "http://[::1]:8080/p"
        assert safe_url("https://[2001:db8::1]/") == "https://[2001:db8::1]/"

    def test_truncate_keeps_code_points_whole(self):
        assert truncate_utf8("€€", 4) == "€"
        assert truncate_utf8("abc", 10) == "abc"
