"""Textual front-end."""

from promecieus.tui.app import PromeCIeusApp, run_tui

__all__ = ["PromeCIeusApp", "run_tui"]
