"""Shared helpers for meta block parsing."""

import re
from typing import Dict, List, Optional

Meta = Dict[str, List[str]]

_HOST_PATTERN = re.compile(r"^(?:[a-z*]+:)?//([^/?#]*)", re.IGNORECASE)
_ALL_SITES_HOSTS = {"", "*", "*.*"}


def add_meta_value(meta: Meta, key: str, value: Optional[str]) -> None:
    meta.setdefault(key, []).append((value or "").strip())


def applies_to_entry(pattern: str) -> Optional[dict]:
    """
    Turn a URL pattern into an applies-to entry.

    Returns None when the pattern matches every site. Patterns without a
    recognisable host are kept verbatim and flagged as non-domain.
    """
    pattern = pattern.strip()
    if pattern in ("*", "http*", "http*://*", "*://*", "*://*/*", "http://*", "https://*"):
        return None

    match = _HOST_PATTERN.match(pattern)
    if match is None:
        return {"text": pattern, "domain": False, "tld_extra": False}

    host = match.group(1).lower()
    host = host.rsplit("@", 1)[-1].split(":", 1)[0]
    if host in _ALL_SITES_HOSTS:
        return None
    if host.startswith("*."):
        host = host[2:]
    if host.startswith("www."):
        host = host[4:]

    tld_extra = False
    if host.endswith(".tld"):
        host = host[: -len(".tld")] + ".com"
        tld_extra = True

    if "*" in host or "." not in host:
        return {"text": pattern, "domain": False, "tld_extra": False}
    return {"text": host, "domain": True, "tld_extra": tld_extra}


def collect_applies_to(patterns: List[str]) -> List[dict]:
    """Applies-to entries for a set of patterns, empty if any covers every site."""
    entries: List[dict] = []
    for pattern in patterns:
        entry = applies_to_entry(pattern)
        if entry is None:
            return []
        if not any(
            e["text"] == entry["text"] and e["tld_extra"] == entry["tld_extra"]
            for e in entries
        ):
            entries.append(entry)
    return entries
