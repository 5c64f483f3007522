from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models.report import Report


class NsdigupError(RuntimeError):
    pass


class ConfigError(NsdigupError):
    pass


class ProbeError(NsdigupError):
    """A single leaf probe failed. Never fatal to its scan group."""


class ScanError(NsdigupError):
    """A scan group could not produce its section."""


class ScanTimeout(ScanError):
    pass


class ScanFailed(NsdigupError):
    """No group produced identifying data and at least one group errored."""

    def __init__(self, cause: BaseException, report: "Report") -> None:
        super().__init__(str(cause))
        self.cause = cause
        self.report = report
