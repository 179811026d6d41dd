"""Core functionality for tender-agent."""
