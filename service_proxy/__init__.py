"""Upstream proxy service."""
