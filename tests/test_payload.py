from __future__ import annotations

import pytest

from qr_readiness.payload import (
    build_payload,
    build_url_with_utm,
    email_payload,
    extract_utm_params,
    normalize_url,
    strip_utm_params,
    vcard_payload,
    wifi_payload,
)


def test_normalize_url_adds_https():
    assert normalize_url(" example.com/page ").normalized == "https://example.com/page"


def test_normalize_url_keeps_existing_scheme():
    assert normalize_url("mailto:someone@example.com").normalized == "mailto:someone@example.com"


@pytest.mark.parametrize("value", ["/menu", "./menu", "../menu"])
def test_normalize_url_rejects_relative_paths(value):
    check = normalize_url(value)

    assert check.normalized is None
    assert "absolute URL" in check.error


def test_normalize_url_blank_is_not_an_error():
    check = normalize_url("   ")

    assert check.normalized is None
    assert check.error is None


def test_normalize_url_rejects_missing_host():
    assert normalize_url("https://").error is not None


def test_utm_parameters_are_set_and_cleared():
    url = build_url_with_utm(
        "https://example.com/?a=1&utm_term=old",
        {"source": "qr-code", "medium": "offline", "term": ""},
    )

    assert url == "https://example.com/?a=1&utm_source=qr-code&utm_medium=offline"
    assert extract_utm_params(url) == {"source": "qr-code", "medium": "offline"}


def test_strip_utm_params_keeps_other_query():
    assert strip_utm_params("https://example.com/?utm_source=x&id=7") == "https://example.com/?id=7"


def test_wifi_payload():
    assert wifi_payload("Cafe", "secret", "WPA", hidden=True) == "WIFI:T:WPA;S:Cafe;P:secret;H:true;;"


def test_email_payload_encodes_fields():
    assert email_payload("a@b.c", "Hi there", "x&y") == "mailto:a@b.c?subject=Hi%20there&body=x%26y"


def test_vcard_payload_layout():
    card = vcard_payload("Ada", "Lovelace", "Engines", "+44", "ada@example.com")

    assert card.splitlines() == [
        "BEGIN:VCARD",
        "VERSION:3.0",
        "N:Lovelace;Ada",
        "FN:Ada Lovelace",
        "ORG:Engines",
        "TEL:+44",
        "EMAIL:ada@example.com",
        "END:VCARD",
    ]


def test_build_payload_url_with_error():
    payload, error = build_payload("url", {"url": "/relative"})

    assert payload == ""
    assert error


def test_build_payload_url_with_utm():
    payload, error = build_payload("url", {"url": "example.com"}, {"source": "qr-code"})

    assert error is None
    assert payload == "https://example.com?utm_source=qr-code"


def test_build_payload_rejects_unknown_type():
    with pytest.raises(ValueError):
        build_payload("fax", {})
