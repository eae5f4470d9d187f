"""Keep external monitors in step with the desktop over DDC/CI."""

from __future__ import annotations

__version__ = "1.0.0"

__all__ = [
    '__version__',
    'app',
    'service',
]
