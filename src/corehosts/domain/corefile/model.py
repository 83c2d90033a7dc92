"""In-memory representation of a Corefile.

A document is a sequence of server blocks; each block holds directive lines;
a line is a sequence of tokens where the last token may be a nested body.
Everything is immutable so two parses can be compared with ``==``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import cast

type Token = str | Body


@dataclass(frozen=True, slots=True)
class Body:
    """Brace-delimited lines bound to the line that opened them."""

    lines: tuple[Line, ...] = ()


@dataclass(frozen=True, slots=True)
class Line:
    tokens: tuple[Token, ...]

    def __post_init__(self) -> None:
        if not self.tokens or not isinstance(self.tokens[0], str):
            raise ValueError("a line must start with a scalar token")

    @property
    def name(self) -> str:
        # __post_init__ guarantees a leading scalar
        return cast("str", self.tokens[0])

    @property
    def args(self) -> tuple[str, ...]:
        """Top-level scalar arguments, without the name and without any body."""

        return tuple(token for token in self.tokens[1:] if isinstance(token, str))

    @property
    def body(self) -> Body | None:
        last = self.tokens[-1]
        return last if isinstance(last, Body) else None

    @classmethod
    def of(cls, *tokens: Token) -> Line:
        return cls(tokens=tokens)


@dataclass(frozen=True, slots=True)
class Block:
    """A server block: selector keys such as ``.:53`` and its directives."""

    keys: tuple[str, ...]
    lines: tuple[Line, ...] = ()

    def directive_names(self) -> tuple[str, ...]:
        seen: dict[str, None] = {}
        for line in self.lines:
            seen.setdefault(line.name, None)
        return tuple(seen)


@dataclass(frozen=True, slots=True)
class Document:
    blocks: tuple[Block, ...] = field(default_factory=tuple)
