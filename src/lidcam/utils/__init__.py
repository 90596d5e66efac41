"""Shared utilities for lidcam."""
