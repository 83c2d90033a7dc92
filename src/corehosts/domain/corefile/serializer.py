"""Model to text conversion for Corefiles."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .model import Block, Document, Line

INDENT = "    "
_NEEDS_QUOTES = frozenset({'"', "\\"})


def _quote(token: str) -> str:
    if (
        token
        and token not in {"{", "}"}
        and not token.startswith("#")
        and not any(char.isspace() or char in _NEEDS_QUOTES for char in token)
    ):
        return token
    escaped = token.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _emit_lines(lines: tuple[Line, ...], depth: int, out: list[str]) -> None:
    prefix = INDENT * depth
    for line in lines:
        scalars = [_quote(token) for token in line.tokens if isinstance(token, str)]
        body = line.body
        if body is None:
            out.append(prefix + " ".join(scalars))
            continue
        out.append(prefix + " ".join([*scalars, "{"]))
        _emit_lines(body.lines, depth + 1, out)
        out.append(prefix + "}")


def serialize_block(block: Block) -> str:
    out = [" ".join(_quote(key) for key in block.keys) + " {"]
    _emit_lines(block.lines, 1, out)
    out.append("}")
    return "\n".join(out) + "\n"


def serialize(document: Document) -> str:
    """Render ``document`` with canonical formatting.

    Structure survives a ``parse`` round trip; comments and original spacing
    do not.
    """

    return "\n".join(serialize_block(block) for block in document.blocks)
