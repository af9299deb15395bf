"""Generic utilities and helpers.

Helpers that are not bound to a specific chapter,
like turning tables into text for printing or
inspecting Python objects to describe them.
"""

from . import inspect, tabulate

__all__ = ("inspect", "tabulate")
