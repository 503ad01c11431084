"""Exception hierarchy for the signal loop."""

from __future__ import annotations


class SignalDeskError(Exception):
    """Base exception for SignalDesk."""


class ConfigError(SignalDeskError):
    """Raised when startup or runtime configuration is invalid."""


class SourceUnavailable(SignalDeskError):
    """
    The signal backend could not produce a usable Signal.

    Covers network errors, non-success statuses and malformed bodies alike;
    callers fall back to the synthetic generator without telling them apart.
    """


class NotificationDeliveryFailure(SignalDeskError):
    """The messaging API rejected or never received an alert."""


class MalformedPrice(SignalDeskError, ValueError):
    """A signal price string could not be parsed as a number."""
