"""
Allow-listed routing from mount prefixes to upstream bases.
"""

from typing import Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator


SEGMENT_STARTS = ("/", "?")


class AllowRule(BaseModel):
    """One mount prefix mapped to one upstream base URL."""

    model_config = ConfigDict(frozen=True)

    mount_prefix: str
    upstream_base: str

    @field_validator("mount_prefix")
    @classmethod
    def _check_mount_prefix(cls, value: str) -> str:
        if not value.startswith("/") or len(value) < 2:
            raise ValueError("mount_prefix must start with '/' and name a segment")
        if value.endswith("/"):
            raise ValueError("mount_prefix must not end with '/'")
        return value

    @field_validator("upstream_base")
    @classmethod
    def _check_upstream_base(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("upstream_base must be an http(s) URL")
        if value.endswith("/"):
            raise ValueError("upstream_base must not end with '/'")
        return value


class RouteResolver:
    """Resolves inbound paths against an ordered list of allow rules.

    Matching is literal-prefix and first-match in declaration order, not
    longest-match.
    """

    def __init__(self, rules: Iterable[AllowRule]):
        self.rules: Tuple[AllowRule, ...] = tuple(rules)

    def match(self, path: str) -> Optional[AllowRule]:
        for rule in self.rules:
            if path.startswith(rule.mount_prefix):
                return rule
        return None

    def resolve(self, path: str, raw_query_string: str = "") -> Optional[str]:
        """Return the upstream URL for ``path``, or None when nothing matches.

        ``raw_query_string`` must include its leading ``?`` when present and is
        appended unmodified. A remainder that does not start a new path segment
        is refused, so nothing can be spliced into the upstream authority.
        """
        rule = self.match(path)
        if rule is None:
            return None
        remainder = path[len(rule.mount_prefix):]
        if remainder and remainder[0] not in SEGMENT_STARTS:
            return None
        return rule.upstream_base + remainder + raw_query_string

    def is_mounted(self, path: str) -> bool:
        """True when ``path`` is a mount itself or lies below one."""
        return any(
            path == rule.mount_prefix or path.startswith(rule.mount_prefix + "/")
            for rule in self.rules
        )
