"""
Routing package.

Maps inbound paths onto the statically configured upstream hosts. Nothing
outside the allow list is ever reachable.
"""

from .allow_list import AllowRule, RouteResolver

__all__ = ["AllowRule", "RouteResolver"]
