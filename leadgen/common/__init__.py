"""
Shared building blocks: configuration, types, logging, progress, errors.
"""
