"""Textual screens for the TUI."""

from spiris_tui.screens.session import SessionScreen

__all__ = [
    'SessionScreen',
]
