"""``${name}`` placeholder substitution."""

import re
from collections.abc import Mapping
from typing import Optional

from sqlmapper.exceptions import BuilderError

__all__ = ("PlaceholderParser", "substitute")

PLACEHOLDER_PATTERN = re.compile(r"\$\{([^{}]*)\}")


class PlaceholderParser:
    """Resolves ``${name}`` tokens against a variable scope.

    Args:
        strict: Raise :class:`BuilderError` for unresolved names instead of
            leaving the token in place.
        enable_default_values: Accept ``${name<sep>fallback}`` tokens.
        default_value_separator: Separator between name and fallback.
    """

    __slots__ = ("default_value_separator", "enable_default_values", "strict")

    def __init__(
        self, *, strict: bool = False, enable_default_values: bool = False, default_value_separator: str = ":"
    ) -> None:
        self.strict = strict
        self.enable_default_values = enable_default_values
        self.default_value_separator = default_value_separator

    def parse(self, text: Optional[str], variables: "Optional[Mapping[str, str]]") -> Optional[str]:
        if not text or "${" not in text:
            return text
        scope = variables or {}

        def _replace(match: "re.Match[str]") -> str:
            key = match.group(1)
            fallback: Optional[str] = None
            if self.enable_default_values and self.default_value_separator in key:
                key, fallback = key.split(self.default_value_separator, 1)
            if key in scope:
                return scope[key]
            if fallback is not None:
                return fallback
            if self.strict:
                msg = f"Unresolved placeholder '${{{key}}}' in '{text}'"
                raise BuilderError(msg)
            return match.group(0)

        return PLACEHOLDER_PATTERN.sub(_replace, text)


_LENIENT = PlaceholderParser()


def substitute(text: Optional[str], variables: "Optional[Mapping[str, str]]") -> Optional[str]:
    """Substitute with the lenient default policy."""
    return _LENIENT.parse(text, variables)
