"""Command modules registered on the PromDebug Typer application."""
