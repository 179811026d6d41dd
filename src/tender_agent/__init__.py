"""tender-agent: LLM availability monitoring and degraded-mode helpers for Tender."""

__version__ = "0.1.0"
