"""Unit tests for the depth-first document address search."""

from __future__ import annotations

import lxml.html
import pytest

from ownerlink.extraction.search import address_from_path, find_address_in_node, search_document

OWNER = "rN7n3473SaZBCG4dFL83w7p1W9cgZw6ihn"
ISSUER = "rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh"
CONTROL = "contact-nft-owner-button"


def _node(html: str) -> lxml.html.HtmlElement:
    return lxml.html.fragment_fromstring(html)


class TestAddressFromPath:
    @pytest.mark.parametrize(
        "value",
        [
            f"/profile/{OWNER}",
            f"https://xrp.cafe/profile/{OWNER}/items",
            f"/#/profile/{OWNER}?tab=items",
            f"https://bithomp.com/explorer/{OWNER}#nfts",
        ],
    )
    def test_segment_after_marker(self, value: str) -> None:
        assert address_from_path(value) == OWNER

    def test_no_marker(self) -> None:
        assert address_from_path(f"/account/{OWNER}") is None

    def test_marker_without_segment(self) -> None:
        assert address_from_path("/profile/") is None


class TestFindAddressInNode:
    def test_text_content(self) -> None:
        assert find_address_in_node(_node(f"<div>Owner: {OWNER}</div>")) == OWNER

    def test_text_glued_to_address(self) -> None:
        assert find_address_in_node(_node(f"<div>Ownedby{OWNER}</div>")) == OWNER

    def test_attribute_before_text(self) -> None:
        node = _node(f'<div data-wallet="{ISSUER}">Owner: {OWNER}</div>')
        assert find_address_in_node(node) == ISSUER

    def test_href_marker_short_circuits(self) -> None:
        # The path segment wins even when it is not address-shaped
        node = _node('<a href="/profile/alice">see profile</a>')
        assert find_address_in_node(node) == "alice"

    def test_href_without_marker_is_pattern_matched(self) -> None:
        node = _node(f'<a href="/account/{OWNER}">link</a>')
        assert find_address_in_node(node) == OWNER

    def test_text_of_whole_subtree_before_children(self) -> None:
        node = _node(f'<div><span>first</span><span><a href="/profile/{ISSUER}">x</a></span> {OWNER}</div>')
        # The root's full text already contains OWNER, so attributes deeper down are never consulted
        assert find_address_in_node(node) == OWNER

    def test_children_depth_first_in_document_order(self) -> None:
        node = _node(
            f'<div><p><a href="/profile/{ISSUER}">a</a></p><p><a href="/profile/{OWNER}">b</a></p></div>'
        )
        assert find_address_in_node(node) == ISSUER

    def test_not_found(self) -> None:
        assert find_address_in_node(_node("<div><span>Price: 10 XRP</span></div>")) is None

    def test_none_node(self) -> None:
        assert find_address_in_node(None) is None

    def test_skips_control(self) -> None:
        node = _node(
            f'<div>Owner hidden<button class="{CONTROL}" data-address="{ISSUER}"><span>{ISSUER}</span></button></div>'
        )
        assert find_address_in_node(node, skip_class=CONTROL) is None
        assert find_address_in_node(node) == ISSUER

    def test_skip_keeps_surrounding_text(self) -> None:
        node = _node(f'<div><button class="{CONTROL}">{ISSUER}</button> Owner {OWNER}</div>')
        assert find_address_in_node(node, skip_class=CONTROL) == OWNER

    def test_stable_across_runs(self) -> None:
        html = f'<div><p data-x="{ISSUER}"></p><p>{OWNER}</p></div>'
        results = {find_address_in_node(_node(html)) for _ in range(5)}
        assert results == {OWNER}


class TestSearchDocument:
    def test_starts_at_body(self) -> None:
        root = lxml.html.document_fromstring(
            f"<html><head><title>{ISSUER}</title></head><body><p>{OWNER}</p></body></html>"
        )
        assert search_document(root) == OWNER
