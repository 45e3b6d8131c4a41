"""Tests for the image relay host allow-list."""

import pytest

from dealcatalog.core.exceptions import DomainNotAllowedError
from dealcatalog.security.domain_gate import DEFAULT_ALLOWED_DOMAINS, DomainGatekeeper


class TestDomainGatekeeper:

    def test_wildcard_entry_accepts_subdomain(self):
        gate = DomainGatekeeper(["*.example-store.rs"])

        assert gate.is_allowed("https://shop.example-store.rs/img/1.jpg")
        assert gate.is_allowed("https://example-store.rs/img/1.jpg")

    def test_unknown_host_rejected_regardless_of_query(self):
        gate = DomainGatekeeper(["*.example-store.rs"])

        assert not gate.is_allowed("https://evil.com/?host=shop.example-store.rs")
        with pytest.raises(DomainNotAllowedError):
            gate.check("https://evil.com/img.jpg?u=https://shop.example-store.rs")

    def test_suffix_without_dot_boundary_rejected(self):
        gate = DomainGatekeeper(["example-store.rs"])

        assert not gate.is_allowed("https://evilexample-store.rs/a.jpg")
        assert not gate.is_allowed("https://example-store.rs.evil.com/a.jpg")

    def test_non_http_urls_rejected(self):
        gate = DomainGatekeeper(["example-store.rs"])

        assert not gate.is_allowed("ftp://example-store.rs/a.jpg")
        assert not gate.is_allowed("not a url")
        assert not gate.is_allowed("")

    def test_host_match_is_case_insensitive(self):
        gate = DomainGatekeeper(["Example-Store.rs"])

        assert gate.check("https://CDN.Example-Store.RS/a.jpg") == "cdn.example-store.rs"

    def test_default_list_covers_store_cdns(self):
        gate = DomainGatekeeper(DEFAULT_ALLOWED_DOMAINS)

        assert gate.is_allowed("https://www.djaksport.com/media/1.jpg")
        assert gate.is_allowed("https://cdn.shopify.com/s/files/1.jpg")
        assert not gate.is_allowed("https://example.com/1.jpg")
