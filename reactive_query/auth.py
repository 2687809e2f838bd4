"""
Auth header resolution for item requests.

A token is read from a primary header; failing that, an ordered list of
fallback rules is walked, each naming another header or an environment
variable. Environment lookups go through an injected mapping.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Union

from .config.models import FallbackKind, HeaderFallbackRule

logger = logging.getLogger(__name__)

RuleLike = Union[HeaderFallbackRule, Mapping[str, str]]


@dataclass
class AuthResult:
    """Outcome of header resolution."""

    token: Optional[str] = None
    source: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        """Whether a token was found."""
        return bool(self.token)


def coerce_rule(rule: RuleLike) -> HeaderFallbackRule:
    """
    Build a fallback rule from a model or a mapping.

    Accepts ``{"kind": ..., "source": ...}`` as well as the short
    ``{"key": "header"|"env", "value": ...}`` form.
    """
    if isinstance(rule, HeaderFallbackRule):
        return rule
    if "kind" in rule:
        return HeaderFallbackRule(kind=rule["kind"], source=rule["source"])
    kind = rule.get("key")
    if kind == "env":
        kind = FallbackKind.ENVIRONMENT.value
    return HeaderFallbackRule(kind=kind, source=rule.get("value", ""))


class AuthHeaderResolver:
    """
    Resolves ``Authorization`` and user headers from request context.

    Example:
        ```python
        resolver = AuthHeaderResolver(
            "x-app-user",
            [HeaderFallbackRule(kind="header", source="x-session"),
             HeaderFallbackRule(kind="environment", source="APP_TOKEN")],
        )
        resolver.resolve({"x-session": "abc"}).headers
        # {"Authorization": "Bearer abc", "x-app-user": "abc"}
        ```
    """

    def __init__(
        self,
        header_key: str = "x-app-user",
        fallbacks: Optional[Sequence[RuleLike]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        """
        Initialize resolver.

        Args:
            header_key: Primary header holding the token; also echoed back
                in the resolved headers
            fallbacks: Ordered fallback rules
            environ: Environment mapping for ``environment`` rules
                (defaults to ``os.environ``)
        """
        self.header_key = header_key
        self.fallbacks: List[HeaderFallbackRule] = [coerce_rule(r) for r in fallbacks or ()]
        self.environ = os.environ if environ is None else environ

    def configure(self, header_key: str, fallbacks: Sequence[RuleLike] = ()) -> None:
        """Replace the primary header key and the fallback chain."""
        self.header_key = header_key
        self.fallbacks = [coerce_rule(r) for r in fallbacks]

    def resolve(self, existing_headers: Optional[Mapping[str, str]] = None) -> AuthResult:
        """
        Resolve the token and build the auth headers.

        Args:
            existing_headers: Headers of the incoming context (header names
                are matched case-insensitively)

        Returns:
            AuthResult; ``headers`` is empty when no token is found
        """
        lower_headers: Dict[str, str] = {
            k.lower(): v for k, v in (existing_headers or {}).items()
        }

        token = lower_headers.get(self.header_key.lower())
        source = f"header:{self.header_key}" if token else None

        if not token:
            for rule in self.fallbacks:
                if rule.kind == FallbackKind.HEADER:
                    token = lower_headers.get(rule.source.lower())
                else:
                    token = self.environ.get(rule.source)
                if token:
                    source = f"{FallbackKind(rule.kind).value}:{rule.source}"
                    break

        if not token:
            logger.debug("No auth token resolved for %s", self.header_key)
            return AuthResult()

        logger.debug("Auth token resolved from %s", source)
        return AuthResult(
            token=token,
            source=source,
            headers={"Authorization": f"Bearer {token}", self.header_key: token},
        )

    def __call__(self, existing_headers: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        return self.resolve(existing_headers).headers
