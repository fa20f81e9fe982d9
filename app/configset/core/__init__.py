"""Core functionality for configset.

Contains the reconciliation engine, diff export, manifest loading,
configuration and path handling.
"""
