"""Document type vocabulary and object-storage path naming."""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import UTC, datetime

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")
_DOC_TYPE_RE = re.compile(r"^(easa_license|uk_license|faa_ap|type_[a-z0-9_-]+_(theory|practical)|cert_[a-z0-9_]+)$")

BASIC_LICENSE_DOC_TYPES: frozenset[str] = frozenset({"easa_license", "uk_license", "faa_ap"})


def sanitize_filename(name: str) -> str:
    """Replace every character outside ``[A-Za-z0-9.-]`` with ``_``."""
    return _UNSAFE_FILENAME_CHARS.sub("_", name)


def is_valid_doc_type(doc_type: str) -> bool:
    """Return ``True`` for licence, type-rating, and certificate document types."""
    return bool(_DOC_TYPE_RE.match(doc_type))


def type_rating_doc_types(aircraft_type: str) -> tuple[str, str]:
    """Return the theory and practical doc types for an aircraft type rating."""
    slug = aircraft_type.strip().lower().replace(" ", "_")
    return f"type_{slug}_theory", f"type_{slug}_practical"


def has_basic_license(doc_types: Iterable[str]) -> bool:
    """Return ``True`` if an EASA, UK CAA, or FAA licence has been uploaded."""
    return not BASIC_LICENSE_DOC_TYPES.isdisjoint(doc_types)


def aircraft_missing_type_docs(aircraft_types: Iterable[str], doc_types: Iterable[str]) -> list[str]:
    """Aircraft types lacking a theory or a practical type-rating document.

    Returned in the order given, using the caller's spelling.
    """
    uploaded = set(doc_types)
    return [
        aircraft
        for aircraft in aircraft_types
        if not uploaded.issuperset(type_rating_doc_types(aircraft))
    ]


def build_document_path(user_id: str, doc_type: str, filename: str, now: datetime | None = None) -> str:
    """Return the storage key ``{user_id}/{doc_type}/{timestamp}-{sanitized}``.

    The timestamp is milliseconds since the epoch so repeated uploads of the
    same file never collide.
    """
    now = now or datetime.now(UTC)
    timestamp = int(now.timestamp() * 1000)
    return f"{user_id}/{doc_type}/{timestamp}-{sanitize_filename(filename)}"
