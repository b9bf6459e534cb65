from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

__all__ = [
    "ParamType",
    "Param",
    "Arg",
    "parse_args",
    "TRUE_WORDS",
    "FALSE_WORDS",
]

TRUE_WORDS = ("on", "true", "enabled")
FALSE_WORDS = ("off", "false", "disabled")

INT64_MAX = 2**63 - 1

Value = Union[str, int, bool, None]


class ParamType(Enum):
    """How a parameter consumes the front of the remaining text."""

    STRING = "string"  # one whitespace-delimited token
    INTEGER = "integer"  # a leading run of decimal digits
    BOOLEAN = "boolean"  # one of TRUE_WORDS / FALSE_WORDS
    USERNAME = "username"  # a token, optional leading "@" dropped
    VARIADIC = "variadic"  # everything that is left


@dataclass(frozen=True)
class Arg:
    """A parsed argument.

    Handlers must check `present` before trusting `value`.
    """

    present: bool = False
    type: Optional[ParamType] = None
    value: Value = None

    @classmethod
    def missing(cls, type_: Optional[ParamType] = None) -> "Arg":
        return cls(present=False, type=type_, value=None)


def _split_token(text: str) -> Tuple[str, str]:
    """Split `text` (already left-trimmed) into its first token and the rest."""
    end = 0
    while end < len(text) and not text[end].isspace():
        end += 1
    return text[:end], text[end:]


def _scan_digits(text: str) -> Tuple[str, str]:
    end = 0
    # str.isdigit() accepts superscripts and other non-ASCII digits
    while end < len(text) and "0" <= text[end] <= "9":
        end += 1
    return text[:end], text[end:]


@dataclass(frozen=True)
class Param:
    """A declared command parameter.

    Attributes:
        name: Name shown in usage strings.
        type: How the parameter is parsed.
        required: Whether the command needs it. Optional params come last.
        usage: Replaces `name` in usage strings when set.
    """

    name: str
    type: ParamType = ParamType.STRING
    required: bool = False
    usage: str = ""

    def usage_hint(self) -> str:
        if self.usage:
            return self.usage
        if self.type is ParamType.BOOLEAN:
            return "on|off"
        return self.name

    def usage_fragment(self) -> str:
        hint = self.usage_hint()
        return f"<{hint}>" if self.required else f"[{hint}]"

    def parse(self, text: str) -> Tuple[Arg, str]:
        """Parse this parameter off the front of `text`.

        Returns the parsed arg and the remaining text. When nothing could be
        parsed the arg is not present and `text` is returned unchanged.
        """
        value, rest = self._scan(text.lstrip())
        if value is None:
            return Arg.missing(self.type), text
        return Arg(present=True, type=self.type, value=value), rest.strip()

    def _scan(self, text: str) -> Tuple[Value, str]:
        if not text:
            return None, text

        if self.type is ParamType.VARIADIC:
            return text, ""

        if self.type is ParamType.INTEGER:
            digits, rest = _scan_digits(text)
            if not digits:
                return None, text
            number = int(digits)
            if number > INT64_MAX:
                return None, text
            return number, rest

        token, rest = _split_token(text)

        if self.type is ParamType.BOOLEAN:
            if token in TRUE_WORDS:
                return True, rest
            if token in FALSE_WORDS:
                return False, rest
            return None, text

        if self.type is ParamType.USERNAME:
            token = token[1:] if token.startswith("@") else token
            if not token:
                return None, text
            return token, rest

        return token, rest


def parse_args(params: Sequence[Param], text: str) -> List[Arg]:
    """Parse `params` left to right out of `text`.

    Always returns exactly one Arg per param; params that could not be parsed
    are returned as not present.
    """
    args: List[Arg] = []
    remaining = text
    for param in params:
        arg, remaining = param.parse(remaining)
        args.append(arg)
    return args
