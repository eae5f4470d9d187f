#!/usr/bin/env python3
"""Executable entry point for the ddcsync daemon."""

from __future__ import annotations

from ddcsync.app import main

if __name__ == "__main__":  # pragma: no cover - script entry
    raise SystemExit(main())
