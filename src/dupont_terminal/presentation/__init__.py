"""Presentation layer for the DuPont terminal.

Public API
----------
- :class:`ConsoleDashboard` -- rich console output for analyses, batch
  progress and export summaries
"""

from dupont_terminal.presentation.console import ConsoleDashboard

__all__ = ["ConsoleDashboard"]
