"""Manifest loading and directory discovery."""
