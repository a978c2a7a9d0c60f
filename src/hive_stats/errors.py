"""Exception types raised by the pipeline.

Empty years are not represented here: aggregating a year without activity
returns an empty list and the caller logs it.
"""

from __future__ import annotations


class HiveStatsError(Exception):
    """Base class for pipeline errors."""


class SourceUnavailable(HiveStatsError):
    """An external source (HiveSQL or the price API) could not be read.

    Attributes:
        source: Short name of the failing source (e.g. ``"hivesql"``).
    """

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class InsufficientData(HiveStatsError):
    """The stored weekly stats cannot support the requested insight."""
