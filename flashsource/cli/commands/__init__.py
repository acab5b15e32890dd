"""Composable CLI command registrations for Typer."""

from .recent import register_recent
from .select import register_select

__all__ = ["register_recent", "register_select"]
