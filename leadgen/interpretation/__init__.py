"""
Query interpretation: free-text target profile -> SearchIntent.
"""

from .query_interpreter import QueryInterpreter

__all__ = ["QueryInterpreter"]
