"""Runners: CLI, batch execution, upstream clients and report export."""
