"""Project Index - declarative project switcher for tiling compositors.

This package provides:
- A crash-safe cache of `.project.nix` descriptors found under project roots
- Most-recently-used ranking for interactive selection (rofi/fzf)
- A background watcher that rebuilds the cache on descriptor changes
- Environment launch (terminal, editor, browser) on a compositor workspace
"""

__version__ = "0.1.0"
__author__ = "project-index contributors"
__license__ = "MIT"

__all__ = ["__version__", "__author__", "__license__"]
