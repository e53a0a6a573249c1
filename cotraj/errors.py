"""Exceptions raised by cotraj."""

from __future__ import annotations


class CotrajError(Exception):
    """Base class for all cotraj errors."""


class InvalidResolutionError(CotrajError, ValueError):
    """A spatial or temporal resolution is not a positive finite number."""


class InvalidDateError(CotrajError, ValueError):
    """A date string is not in ``yyyy-MM-dd`` format."""


class MapMatchError(CotrajError):
    """The map matcher could not be reached or returned garbage."""


class NoMatchError(MapMatchError):
    """The map matcher answered, but found no path for the fixes."""
