"""
Subprocess management for the gopls language server.
"""

from .gopls_process import GoplsProcess

__all__ = ["GoplsProcess"]
