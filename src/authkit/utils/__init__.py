"""Utility helpers shared across authkit."""
