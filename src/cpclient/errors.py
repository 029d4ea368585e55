"""Exception hierarchy for cpclient."""

from __future__ import annotations


class CpClientError(Exception):
    """Base class for all cpclient errors."""


class FilterOptionsError(CpClientError):
    """Raised when a filter options payload cannot be used."""


class MalformedOptionsError(FilterOptionsError):
    """Options text is not valid JSON."""


class OptionsNotAnObjectError(FilterOptionsError):
    """Options text is valid JSON but does not hold an object."""


class ServerApiError(CpClientError):
    """Raised by server API implementations when a request fails."""
