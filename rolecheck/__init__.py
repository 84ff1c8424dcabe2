"""Convention-compliance checker for configuration management roles."""

from __future__ import annotations

__version__ = "0.1.0"
