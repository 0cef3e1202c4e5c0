"""
Upstream proxy service package.

The proxy fronts a small, fixed set of upstream API hosts, enforcing:
- Access: a shared-secret request header
- Allow-listing: static mount prefix to upstream base rules
- Caching: short-lived local LRU cache of successful GET responses
- Retries: bounded attempts with jittered backoff on upstream failure

Structure:
- app.main: FastAPI app, routes, and middleware wiring.
- app.settings: Process-wide settings loaded from the environment.
- app.routing: Allow rules and the route resolver.
- app.caching: Response cache and in-flight request coalescing.
- app.adapters: Outbound HTTP client for upstream hosts.
- app.domain: Access guard and response translation.
- app.ratelimit: Inbound per-client fixed-window limiter.
- app.middleware: Security headers.
"""
