"""Test run history analysis: normalization, diffs, filters, and trends."""

__version__ = "0.1.0"
