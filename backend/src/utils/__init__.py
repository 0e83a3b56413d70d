"""
Utility modules for the studio booking application.

This package contains shared helpers used across the application:
timezone-aware datetime handling and payment proof storage.
"""
