"""DW Dedupe - keeps a de-duplicated copy of Discover Weekly."""

__version__ = "1.0.0"
