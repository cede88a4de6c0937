"""Builders for the text encoded into a QR code."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

CONTENT_TYPES = ("url", "text", "wifi", "vcard", "email")
UTM_KEYS = ("source", "medium", "campaign", "term", "content")

_PROTOCOL = re.compile(r"^[a-zA-Z][a-zA-Z\d+\-.]*:")


@dataclass(frozen=True, slots=True)
class UrlCheck:
    normalized: Optional[str]
    error: Optional[str]


def normalize_url(value: str) -> UrlCheck:
    """Return an absolute URL for ``value``, defaulting to ``https``.

    Blank input is neither valid nor an error.  Relative paths are rejected.
    """

    trimmed = value.strip()
    if not trimmed:
        return UrlCheck(None, None)
    if trimmed.startswith(("/", "./", "../")):
        return UrlCheck(
            None,
            "Provide an absolute URL including the protocol (e.g. https://example.com/page).",
        )

    candidate = trimmed if _PROTOCOL.match(trimmed) else f"https://{trimmed}"
    try:
        parts = urlsplit(candidate)
    except ValueError:
        return UrlCheck(None, "URL looks invalid; double-check the format.")
    if parts.scheme in ("http", "https") and not parts.netloc:
        return UrlCheck(None, "URL looks invalid; double-check the format.")
    return UrlCheck(candidate, None)


def _replace_query(url: str, pairs) -> str:
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(pairs), parts.fragment))


def build_url_with_utm(target: str, params: Mapping[str, str]) -> str:
    """Set non-empty ``utm_*`` parameters on ``target`` and drop empty ones."""

    query = parse_qsl(urlsplit(target).query, keep_blank_values=True)
    managed = {f"utm_{key}" for key in UTM_KEYS}
    kept = [(key, value) for key, value in query if key not in managed]
    for key in UTM_KEYS:
        value = params.get(key, "")
        if value:
            kept.append((f"utm_{key}", value))
    return _replace_query(target, kept)


def strip_utm_params(url: str) -> str:
    query = parse_qsl(urlsplit(url).query, keep_blank_values=True)
    kept = [(key, value) for key, value in query if not key.startswith("utm_")]
    return _replace_query(url, kept)


def extract_utm_params(url: str) -> dict:
    query = dict(parse_qsl(urlsplit(url).query, keep_blank_values=True))
    return {key: query[f"utm_{key}"] for key in UTM_KEYS if f"utm_{key}" in query}


def wifi_payload(ssid: str, password: str = "", encryption: str = "WPA", hidden: bool = False) -> str:
    return f"WIFI:T:{encryption};S:{ssid};P:{password};H:{'true' if hidden else 'false'};;"


def email_payload(address: str, subject: str = "", body: str = "") -> str:
    return f"mailto:{address}?subject={quote(subject, safe='')}&body={quote(body, safe='')}"


def vcard_payload(
    first_name: str = "",
    last_name: str = "",
    org: str = "",
    phone: str = "",
    email: str = "",
) -> str:
    lines = (
        "BEGIN:VCARD",
        "VERSION:3.0",
        f"N:{last_name};{first_name}",
        f"FN:{first_name} {last_name}",
        f"ORG:{org}",
        f"TEL:{phone}",
        f"EMAIL:{email}",
        "END:VCARD",
    )
    return "\n".join(lines)


def build_payload(
    content_type: str,
    fields: Mapping[str, object],
    utm: Optional[Mapping[str, str]] = None,
) -> Tuple[str, Optional[str]]:
    """Return ``(payload, error)`` for one of :data:`CONTENT_TYPES`.

    For URLs, ``utm`` parameters are applied when given.  ``error`` is a
    user-facing message and the payload is empty when it is set.
    """

    if content_type == "url":
        check = normalize_url(str(fields.get("url", "")))
        if check.normalized is None:
            return "", check.error
        if utm is not None:
            return build_url_with_utm(check.normalized, utm), None
        return check.normalized, None
    if content_type == "text":
        return str(fields.get("text", "")), None
    if content_type == "wifi":
        return (
            wifi_payload(
                str(fields.get("ssid", "")),
                str(fields.get("password", "")),
                str(fields.get("encryption", "WPA")),
                bool(fields.get("hidden", False)),
            ),
            None,
        )
    if content_type == "email":
        return (
            email_payload(
                str(fields.get("address", "")),
                str(fields.get("subject", "")),
                str(fields.get("body", "")),
            ),
            None,
        )
    if content_type == "vcard":
        names = ("first_name", "last_name", "org", "phone", "email")
        return vcard_payload(**{name: str(fields.get(name, "")) for name in names}), None
    raise ValueError(f"Unsupported content type: {content_type}")


__all__ = [
    "CONTENT_TYPES",
    "UTM_KEYS",
    "UrlCheck",
    "normalize_url",
    "build_url_with_utm",
    "strip_utm_params",
    "extract_utm_params",
    "wifi_payload",
    "email_payload",
    "vcard_payload",
    "build_payload",
]
