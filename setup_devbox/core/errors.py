"""
Error hierarchy shared by every layer.

Fatal errors (path resolution, master config, state file) abort the run.
Everything item-level is reported through receipts and the run report,
never raised.
"""

from __future__ import annotations


class DevboxError(Exception):
    """Base class for all setup-devbox errors."""
