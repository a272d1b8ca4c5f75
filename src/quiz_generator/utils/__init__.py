"""
Utility helpers: environment loading, error taxonomy and observability.
"""
