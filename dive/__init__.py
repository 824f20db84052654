"""CI rule evaluation, reporting, JSON export and options for container image layer analysis."""

__version__ = "0.1.0"