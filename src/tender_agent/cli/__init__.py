"""Command-line interface for tender-agent."""
