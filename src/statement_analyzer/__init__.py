"""Statement Analyzer: categorize and analyze bank statement CSV exports."""

__version__ = "2.0.0"
