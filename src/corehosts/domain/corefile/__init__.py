"""Corefile (Caddyfile syntax) model, parser, serializer and stanza normalizer."""

from __future__ import annotations

from .model import Block, Body, Document, Line, Token
from .normalize import NormalizeResult, normalize
from .parser import parse
from .serializer import serialize

__all__ = [
    "Block",
    "Body",
    "Document",
    "Line",
    "NormalizeResult",
    "Token",
    "normalize",
    "parse",
    "serialize",
]
