"""Dependency group management for pyproject.toml manifests."""
