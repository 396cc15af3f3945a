"""Desired-state config file adapter."""

from __future__ import annotations

from .loader import load_run_config, parse_run_config

__all__ = ["load_run_config", "parse_run_config"]
