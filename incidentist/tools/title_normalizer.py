"""
Title Normalizer

Ordered regex rewrites applied to raw page titles.
Rules come as "/pattern/replacement/" strings.
"""

import re
from typing import Iterable, List, Optional

import structlog

from ..errors import ConfigurationError
from ..schemas.models import ReplaceRule

logger = structlog.get_logger(__name__)

# $$, $name, ${name}; names are ASCII letters, digits and underscores
_GROUP_REF = re.compile(r"\$(?:\$|\{([A-Za-z0-9_]+)\}|([A-Za-z0-9_]+))")


def _to_python_template(replacement: str, pattern: re.Pattern) -> str:
    """
    Translate a $-style replacement into a Python re template.

    Backslashes are literal and $$ is a literal $. A reference to a group
    the pattern does not define expands to nothing.
    """

    def group_ref(match: re.Match) -> str:
        if match.group(0) == "$$":
            return "$"
        name = match.group(1) or match.group(2)
        if name.isdigit():
            index = int(name)
            return f"\\g<{index}>" if index <= pattern.groups else ""
        return f"\\g<{name}>" if name in pattern.groupindex else ""

    return _GROUP_REF.sub(group_ref, replacement.replace("\\", "\\\\"))


def parse_replace_rule(rule: str) -> ReplaceRule:
    """
    Parse a "/pattern/replacement/" rule.

    Leading and trailing slashes are trimmed, then the text is split once on
    "/". A missing replacement deletes the match.

    Raises:
        ConfigurationError: if the pattern does not compile
    """
    parts = rule.strip("/").split("/", 1)
    pattern = parts[0]
    replacement = parts[1] if len(parts) == 2 else ""

    if not pattern:
        raise ConfigurationError(f"Invalid regexp replacement {rule!r}: empty pattern")

    return build_replace_rule(pattern, replacement, source=rule)


def build_replace_rule(pattern: str, replacement: str = "", source: Optional[str] = None) -> ReplaceRule:
    """Compile a rule from an explicit pattern and replacement"""
    try:
        compiled = re.compile(pattern)
    except re.error as e:
        raise ConfigurationError(
            f"Invalid regexp replacement {source or pattern!r}: {e}"
        ) from e

    return ReplaceRule(
        pattern=compiled,
        replacement=_to_python_template(replacement, compiled),
    )


def parse_replace_rules(rules: Iterable[str]) -> tuple[ReplaceRule, ...]:
    """Parse rules, keeping their declared order"""
    return tuple(parse_replace_rule(r) for r in rules)


class TitleNormalizer:
    """
    Applies replace rules in declared order.

    Each rule sees the output of the previous one.
    """

    def __init__(self, rules: Iterable[ReplaceRule] = ()):
        self.rules: List[ReplaceRule] = list(rules)

    def normalize(self, title: str) -> str:
        normalized = title
        for rule in self.rules:
            normalized = rule.apply(normalized)
        if normalized != title:
            logger.debug("Title normalized", original=title, normalized=normalized)
        return normalized
