"""Guarantee one managed directive in every server block of a Corefile.

The managed directive is identified by name and must carry a canonical first
argument, e.g. ``hosts /etc/coredns-dir/hosts``. Lines belonging to other
directives are left alone unless ``sort_directives`` asks for the canonical
(lexicographically ordered) layout.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from .model import Document, Line

if TYPE_CHECKING:
    from .model import Block


@dataclass(frozen=True, slots=True)
class NormalizeResult:
    document: Document
    changed: bool


def carries_argument(line: Line, argument: str) -> bool:
    """True when ``argument`` is a top-level argument or appears in the first nested level."""

    if argument in line.args:
        return True
    body = line.body
    if body is None:
        return False
    return any(argument in nested.tokens for nested in body.lines)


def inject_argument(line: Line, argument: str) -> Line:
    tokens = list(line.tokens)
    if len(tokens) > 1 and isinstance(tokens[1], str):
        tokens[1] = argument
    else:
        tokens.insert(1, argument)
    return Line(tokens=tuple(tokens))


def normalize_block(
    block: Block,
    name: str,
    argument: str,
    *,
    sort_directives: bool = False,
) -> Block:
    lines = [
        inject_argument(line, argument)
        if line.name == name and not carries_argument(line, argument)
        else line
        for line in block.lines
    ]
    if all(line.name != name for line in lines):
        lines.append(Line.of(name, argument))
    if sort_directives:
        # stable: lines sharing a name keep their relative order
        lines.sort(key=lambda line: line.name)
    return replace(block, lines=tuple(lines))


def normalize(
    document: Document,
    name: str,
    argument: str,
    *,
    sort_directives: bool = False,
) -> NormalizeResult:
    """Return ``document`` with the managed directive ensured in every block.

    ``changed`` is false exactly when the result is structurally identical to the
    input, so a caller can skip the write.
    """

    blocks = tuple(
        normalize_block(block, name, argument, sort_directives=sort_directives)
        for block in document.blocks
    )
    result = Document(blocks=blocks)
    return NormalizeResult(document=result, changed=result != document)
