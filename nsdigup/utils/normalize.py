from __future__ import annotations

import ipaddress
import re

DOMAIN_RE = re.compile(r"^(?!-)[A-Za-z0-9.-]{1,253}(?<!-)$")
LABEL_RE = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$")


def normalize_domain(domain: str) -> str:
    value = domain.strip().lower()
    for prefix in ("http://", "https://"):
        if value.startswith(prefix):
            value = value[len(prefix):]
    value = value.split("/", 1)[0]
    if value.count(":") == 1:
        value = value.split(":", 1)[0]
    value = value.rstrip(".")
    return value


def is_ip_address(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def is_valid_domain(name: str) -> bool:
    if is_ip_address(name):
        return True
    if not DOMAIN_RE.match(name):
        return False
    if ".." in name or "." not in name:
        return False
    return all(LABEL_RE.match(label) for label in name.split("."))


def validate_domain(raw: str) -> str:
    value = normalize_domain(raw)
    if not value:
        raise ValueError("no domain specified")
    if not is_valid_domain(value):
        raise ValueError(f"invalid domain '{raw}'")
    return value


def parent_domain(domain: str) -> str:
    """`sub.example.com` -> `example.com`; empty once only two labels remain."""
    parts = domain.split(".")
    if len(parts) <= 2:
        return ""
    return ".".join(parts[1:])


def dedupe(values: list[str]) -> list[str]:
    seen = set()
    out = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            out.append(value)
    return out
