"""
Core utilities shared by processes embedding the repositories.

This package provides:
- Application-level settings (separate from DB settings)
- Logging configuration with correlation and organization context
"""
