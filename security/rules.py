"""
ACCESS RULES
============
Ordered (method, path pattern, role) table for the security filter chain.

FLOW:
- compile_rules() validates the raw table once at startup.
- AccessRule.matches() is evaluated per request by the authorization engine.

WHY:
- A bad pattern or a shadowed rule must stop the service from starting,
  never silently open or close a route at request time.

HOW:
- Patterns are split into "/" segments. A segment is a literal, "*" (one
  segment) or "**" (zero or more trailing segments, last position only).
- A later rule is unreachable when an earlier rule accepts the same method
  and every path the later pattern can match.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

ROLE_PREFIX = "ROLE_"
HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")
ANY_METHOD = "*"

SINGLE_SEGMENT = "*"
TRAILING_SEGMENTS = "**"


class AccessRuleConfigurationError(ValueError):
    """Raised when the rule table cannot be loaded as a whole."""


def split_path(path: str) -> tuple[str, ...]:
    return tuple(segment for segment in (path or "").split("/") if segment)


def parse_pattern(pattern: str) -> tuple[str, ...]:
    if not isinstance(pattern, str) or not pattern.startswith("/"):
        raise AccessRuleConfigurationError(f"pattern {pattern!r} must be an absolute path")
    if "?" in pattern or "#" in pattern:
        raise AccessRuleConfigurationError(f"pattern {pattern!r} must not carry a query or fragment")

    raw = pattern[1:]
    if not raw:
        return ()
    if raw.endswith("/"):
        raw = raw[:-1]
    segments = tuple(raw.split("/"))
    for index, segment in enumerate(segments):
        if not segment:
            raise AccessRuleConfigurationError(f"pattern {pattern!r} contains an empty segment")
        if segment == TRAILING_SEGMENTS:
            if index != len(segments) - 1:
                raise AccessRuleConfigurationError(f"pattern {pattern!r}: '**' is only allowed as the last segment")
        elif "*" in segment and segment != SINGLE_SEGMENT:
            raise AccessRuleConfigurationError(f"pattern {pattern!r}: segment {segment!r} mixes '*' with literal text")
    return segments


def normalize_method(method: Optional[str]) -> Optional[str]:
    if method is None:
        return None
    value = str(method).strip().upper()
    if value in ("", ANY_METHOD):
        return None
    if value not in HTTP_METHODS:
        raise AccessRuleConfigurationError(f"unsupported HTTP method {method!r}")
    return value


def segments_match(pattern: tuple[str, ...], path: tuple[str, ...]) -> bool:
    for index, segment in enumerate(pattern):
        if segment == TRAILING_SEGMENTS:
            return True
        if index >= len(path):
            return False
        if segment != SINGLE_SEGMENT and segment != path[index]:
            return False
    return len(path) == len(pattern)


def pattern_covers(outer: tuple[str, ...], inner: tuple[str, ...]) -> bool:
    """True when every path matched by ``inner`` is also matched by ``outer``."""
    for index, segment in enumerate(outer):
        if segment == TRAILING_SEGMENTS:
            return True
        if index >= len(inner) or inner[index] == TRAILING_SEGMENTS:
            return False
        if segment != SINGLE_SEGMENT and (inner[index] == SINGLE_SEGMENT or segment != inner[index]):
            return False
    return len(inner) == len(outer)


@dataclass(frozen=True)
class AccessRule:
    method: Optional[str]
    pattern: str
    role: str
    segments: tuple[str, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", normalize_method(self.method))
        object.__setattr__(self, "segments", parse_pattern(self.pattern))
        role = (self.role or "").strip() if isinstance(self.role, str) else ""
        if not role:
            raise AccessRuleConfigurationError(f"rule {self.pattern!r} has no required role")
        if role.startswith(ROLE_PREFIX):
            raise AccessRuleConfigurationError(
                f"rule {self.pattern!r}: role {role!r} should not start with {ROLE_PREFIX!r}, it is added automatically"
            )
        object.__setattr__(self, "role", role)

    @property
    def authority(self) -> str:
        return ROLE_PREFIX + self.role

    def matches(self, method: str, path: str) -> bool:
        if self.method is not None and self.method != (method or "").upper():
            return False
        return segments_match(self.segments, split_path(path))

    def shadows(self, other: "AccessRule") -> bool:
        if self.method is not None and self.method != other.method:
            return False
        return pattern_covers(self.segments, other.segments)

    def describe(self) -> str:
        return f"{self.method or ANY_METHOD} {self.pattern} -> {self.role}"


def _coerce(entry: Any) -> AccessRule:
    if isinstance(entry, AccessRule):
        return entry
    if isinstance(entry, Mapping):
        unknown = set(entry) - {"method", "pattern", "role"}
        if unknown:
            raise AccessRuleConfigurationError(f"unknown rule keys: {', '.join(sorted(unknown))}")
        return AccessRule(method=entry.get("method"), pattern=entry.get("pattern"), role=entry.get("role"))
    if isinstance(entry, (tuple, list)) and len(entry) == 3:
        return AccessRule(*entry)
    raise AccessRuleConfigurationError(f"cannot build a rule from {entry!r}")


def compile_rules(entries: Iterable[Any]) -> tuple[AccessRule, ...]:
    """Validate the whole table and return it as an immutable tuple."""
    rules: list[AccessRule] = []
    for index, entry in enumerate(entries or ()):
        try:
            rule = _coerce(entry)
        except AccessRuleConfigurationError as exc:
            raise AccessRuleConfigurationError(f"rule #{index}: {exc}") from exc
        for earlier_index, earlier in enumerate(rules):
            if earlier.shadows(rule):
                raise AccessRuleConfigurationError(
                    f"rule #{index} ({rule.describe()}) is unreachable: "
                    f"rule #{earlier_index} ({earlier.describe()}) matches every request it would"
                )
        rules.append(rule)
    if not rules:
        raise AccessRuleConfigurationError("access rule table is empty")
    return tuple(rules)


DEFAULT_RULES = (
    ("GET", "/employees", "EMPLOYEE"),
    ("GET", "/employees/**", "EMPLOYEE"),
    ("POST", "/employees", "MANAGER"),
    ("PUT", "/employees/**", "MANAGER"),
    ("DELETE", "/employees/**", "ADMIN"),
)
