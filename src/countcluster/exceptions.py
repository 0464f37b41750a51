"""
Exception classes for countcluster.

Using specific exception types allows calling code to distinguish
between different failure modes:
- DataFormatError: Malformed or inconsistent input tables
- ConfigurationError: Invalid analysis parameters
- PlotOutputError: Image files that could not be written
"""

from __future__ import annotations


class CountclusterError(Exception):
    """Base exception for countcluster errors."""

    pass


class DataFormatError(CountclusterError, ValueError):
    """
    Raised when an input table cannot be used.

    Examples:
        - Empty count matrix
        - Non-numeric cells
        - Duplicated feature or sample labels
        - Design table missing samples present in the matrix
    """

    pass


class ConfigurationError(CountclusterError, ValueError):
    """
    Raised when analysis parameters are invalid.

    Examples:
        - Unknown distance metric or linkage method
        - k outside the range allowed by the data
        - Unreadable config file
    """

    pass


class PlotOutputError(CountclusterError):
    """Raised when a figure cannot be written or the written file is empty."""

    pass
