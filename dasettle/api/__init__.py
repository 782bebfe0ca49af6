"""
Settlement Dutch Auction API
"""

from dasettle.api.methods import (
    RPCError,
    METHOD_REGISTRY,
    dispatch,
    get_method,
    list_methods,
)

__all__ = [
    "RPCError",
    "METHOD_REGISTRY",
    "dispatch",
    "get_method",
    "list_methods",
]
