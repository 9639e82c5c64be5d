from urllib.parse import parse_qs, urlsplit

import pytest

from playbook_dispatcher.public.common import (
    DEFAULT_LIMIT,
    create_link,
    create_links,
    get_limit,
    get_offset,
    parse_fields,
)

BASE = "/api/playbook-dispatcher/v1/runs"
KNOWN = {"id", "org_id", "status"}


def query_of(link):
    parts = urlsplit(link)
    return parts.path, parse_qs(parts.query, keep_blank_values=True)


def test_limit_and_offset_defaults():
    assert get_limit(None) == DEFAULT_LIMIT == 50
    assert get_limit(7) == 7
    assert get_offset(None) == 0
    assert get_offset(12) == 12


def test_parse_fields_defaults_when_absent():
    assert parse_fields({}, "data", KNOWN, ["id", "status"]) == ["id", "status"]


def test_parse_fields_splits_and_collects():
    query = {"data": ["id,org_id", "status"]}
    assert parse_fields(query, "data", KNOWN, ["id"]) == ["id", "org_id", "status"]


def test_parse_fields_rejects_unknown():
    with pytest.raises(ValueError, match="unknown field: bogus"):
        parse_fields({"data": ["id,bogus"]}, "data", KNOWN, [])


def test_create_link_plain():
    assert create_link(BASE, "", 50, 0) == BASE + "?limit=50&offset=0"


def test_create_link_replaces_paging_and_keeps_filters():
    link = create_link(BASE, "filter[status]=running&limit=10&offset=3", 20, 40)
    path, query = query_of(link)
    assert path == BASE
    assert query == {"filter[status]": ["running"], "limit": ["20"], "offset": ["40"]}
    keys = [part.split("=")[0] for part in link.split("?", 1)[1].split("&")]
    assert keys == sorted(keys)


def test_links_single_page():
    links = create_links(BASE, "", 50, 0, 0)
    assert links.first == links.last == create_link(BASE, "", 50, 0)
    assert links.previous is None
    assert links.next is None


def test_links_middle_page():
    links = create_links(BASE, "", 50, 50, 120)
    assert links.first == create_link(BASE, "", 50, 0)
    assert links.previous == create_link(BASE, "", 50, 0)
    assert links.next == create_link(BASE, "", 50, 100)
    assert links.last == create_link(BASE, "", 50, 100)


def test_links_previous_never_negative():
    links = create_links(BASE, "", 50, 20, 60)
    assert query_of(links.previous)[1]["offset"] == ["0"]
    assert links.next is None


def test_last_page_exact_multiple():
    links = create_links(BASE, "", 50, 0, 100)
    assert query_of(links.last)[1]["offset"] == ["50"]
    assert links.next == create_link(BASE, "", 50, 50)