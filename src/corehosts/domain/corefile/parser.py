"""Text to model conversion for Corefiles (Caddyfile syntax)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from corehosts.domain.errors import ParseError

from .model import Block, Body, Document, Line

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .model import Token


@dataclass(frozen=True, slots=True)
class _Lexeme:
    text: str
    line: int
    quoted: bool = False
    newline: bool = False

    @property
    def opens(self) -> bool:
        return not self.quoted and not self.newline and self.text == "{"

    @property
    def closes(self) -> bool:
        return not self.quoted and not self.newline and self.text == "}"


def _lex(text: str) -> Iterator[_Lexeme]:
    line = 1
    index = 0
    length = len(text)
    while index < length:
        char = text[index]
        if char == "\n":
            yield _Lexeme("", line, newline=True)
            line += 1
            index += 1
        elif char.isspace():
            index += 1
        elif char == "#":
            while index < length and text[index] != "\n":
                index += 1
        elif char == '"':
            start_line = line
            index += 1
            chars: list[str] = []
            while True:
                if index >= length:
                    raise ParseError("unterminated quoted token", line=start_line)
                char = text[index]
                if char == "\\" and index + 1 < length and text[index + 1] in {'"', "\\"}:
                    chars.append(text[index + 1])
                    index += 2
                    continue
                if char == '"':
                    index += 1
                    break
                if char == "\n":
                    line += 1
                chars.append(char)
                index += 1
            yield _Lexeme("".join(chars), start_line, quoted=True)
        else:
            start = index
            while index < length and not text[index].isspace():
                index += 1
            yield _Lexeme(text[start:index], line)
    yield _Lexeme("", line, newline=True)


class _Parser:
    def __init__(self, text: str) -> None:
        self._lexemes = list(_lex(text))
        self._pos = 0

    def _next(self) -> _Lexeme | None:
        if self._pos >= len(self._lexemes):
            return None
        lexeme = self._lexemes[self._pos]
        self._pos += 1
        return lexeme

    def document(self) -> Document:
        blocks: list[Block] = []
        keys: list[str] = []
        keys_line = 0
        while (lexeme := self._next()) is not None:
            if lexeme.newline:
                continue
            if lexeme.closes:
                raise ParseError("unexpected '}'", line=lexeme.line)
            if lexeme.opens:
                if not keys:
                    raise ParseError("server block without keys", line=lexeme.line)
                blocks.append(Block(keys=tuple(keys), lines=self._lines(lexeme.line)))
                keys = []
                continue
            if not keys:
                keys_line = lexeme.line
            keys.append(lexeme.text)
        if keys:
            joined = " ".join(keys)
            raise ParseError(f"expected '{{' after server block keys {joined}", line=keys_line)
        return Document(blocks=tuple(blocks))

    def _lines(self, opened_at: int) -> tuple[Line, ...]:
        lines: list[Line] = []
        current: list[Token] = []
        while (lexeme := self._next()) is not None:
            if lexeme.newline:
                self._flush(current, lines)
            elif lexeme.closes:
                self._flush(current, lines)
                return tuple(lines)
            elif lexeme.opens:
                if not current:
                    raise ParseError("'{' must follow a directive", line=lexeme.line)
                current.append(Body(lines=self._lines(lexeme.line)))
                self._flush(current, lines)
            else:
                current.append(lexeme.text)
        raise ParseError("unclosed '{'", line=opened_at)

    @staticmethod
    def _flush(current: list[Token], lines: list[Line]) -> None:
        if current:
            lines.append(Line(tokens=tuple(current)))
            current.clear()


def parse(text: str) -> Document:
    """Parse Corefile ``text``; raises ``ParseError`` on malformed input."""

    return _Parser(text).document()
