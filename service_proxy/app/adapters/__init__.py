"""
Adapters package for the proxy service.

Contains the outbound HTTP client for upstream hosts. The adapter
encapsulates:

- Outbound request shape (identifying user-agent, accept passthrough)
- Timeout, redirect limits and the retry policy
- Mapping of transport failures onto shared upstream errors

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .upstream_client import ForwardRequest, ForwardResult, UpstreamClient

__all__ = ["ForwardRequest", "ForwardResult", "UpstreamClient"]
