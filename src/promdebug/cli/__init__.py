"""Typer command-line interface for PromDebug."""
