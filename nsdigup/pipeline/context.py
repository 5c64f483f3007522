from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from ..models.config import ScanConfig

SectionT = TypeVar("SectionT")

# Every probe is called as ``probe(domain, timeout)``.
Probe = Callable[[str, float], Awaitable[Any]]


@dataclass(frozen=True)
class GroupOutcome(Generic[SectionT]):
    section: SectionT
    error: Optional[BaseException] = None


@dataclass
class ScanContext:
    """Per-group deadlines and the logger a scan group reports through."""

    timeout: float
    dial_timeout: float
    whois_timeout: float
    logger: logging.Logger

    @classmethod
    def from_config(cls, config: ScanConfig, logger: Optional[logging.Logger] = None) -> "ScanContext":
        return cls(
            timeout=config.timeout_seconds,
            dial_timeout=config.probe_timeout(config.dial_timeout_seconds),
            whois_timeout=config.probe_timeout(config.whois_timeout_seconds),
            logger=logger or logging.getLogger("nsdigup.pipeline"),
        )


def describe_errors(errors: dict[str, BaseException]) -> str:
    return "; ".join(f"{name}: {exc}" for name, exc in errors.items())
