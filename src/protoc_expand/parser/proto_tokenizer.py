"""Tokenizer for protobuf (.proto) files."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import List


class ProtoTokenType(Enum):
    # Keywords
    MESSAGE = auto()
    REPEATED = auto()
    OPTIONAL = auto()
    REQUIRED = auto()
    SYNTAX = auto()
    PACKAGE = auto()
    OPTION = auto()
    RESERVED = auto()
    EXTENSIONS = auto()
    IMPORT = auto()
    ENUM = auto()
    ONEOF = auto()
    MAP = auto()
    EXTEND = auto()
    SERVICE = auto()
    RPC = auto()
    RETURNS = auto()
    STREAM = auto()

    # Delimiters
    LBRACE = auto()
    RBRACE = auto()
    LPAREN = auto()
    RPAREN = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    LANGLE = auto()
    RANGLE = auto()
    SEMICOLON = auto()
    EQUALS = auto()
    COMMA = auto()
    COLON = auto()

    # Literals
    IDENT = auto()
    NUMBER = auto()
    STRING_LIT = auto()

    # Special
    EOF = auto()


_KEYWORDS = {
    "message": ProtoTokenType.MESSAGE,
    "repeated": ProtoTokenType.REPEATED,
    "optional": ProtoTokenType.OPTIONAL,
    "required": ProtoTokenType.REQUIRED,
    "syntax": ProtoTokenType.SYNTAX,
    "package": ProtoTokenType.PACKAGE,
    "option": ProtoTokenType.OPTION,
    "reserved": ProtoTokenType.RESERVED,
    "extensions": ProtoTokenType.EXTENSIONS,
    "import": ProtoTokenType.IMPORT,
    "enum": ProtoTokenType.ENUM,
    "oneof": ProtoTokenType.ONEOF,
    "map": ProtoTokenType.MAP,
    "extend": ProtoTokenType.EXTEND,
    "service": ProtoTokenType.SERVICE,
    "rpc": ProtoTokenType.RPC,
    "returns": ProtoTokenType.RETURNS,
    "stream": ProtoTokenType.STREAM,
}

KEYWORD_TYPES = frozenset(_KEYWORDS.values())

_PUNCTUATION = {
    "{": ProtoTokenType.LBRACE,
    "}": ProtoTokenType.RBRACE,
    "(": ProtoTokenType.LPAREN,
    ")": ProtoTokenType.RPAREN,
    "[": ProtoTokenType.LBRACKET,
    "]": ProtoTokenType.RBRACKET,
    "<": ProtoTokenType.LANGLE,
    ">": ProtoTokenType.RANGLE,
    ";": ProtoTokenType.SEMICOLON,
    "=": ProtoTokenType.EQUALS,
    ",": ProtoTokenType.COMMA,
    ":": ProtoTokenType.COLON,
}


@dataclass
class ProtoToken:
    type: ProtoTokenType
    value: str
    line: int
    col: int


_FLOAT_WORDS = ("inf", "nan")

_SIMPLE_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    "\\": "\\",
    "'": "'",
    '"': '"',
    "?": "?",
}

_OCTAL_DIGITS = "01234567"
_HEX_DIGITS = "0123456789abcdefABCDEF"


def _is_ident_start(ch: str) -> bool:
    return ch.isalpha() or ch == "_"


def _take(raw: str, i: int, digits: str, limit: int) -> str:
    end = i
    while end < len(raw) and end - i < limit and raw[end] in digits:
        end += 1
    return raw[i:end]


def unescape_string(raw: str) -> str:
    """Decode the escapes allowed in proto string literals.

    Handles \\n-style escapes, \\xHH, \\ooo, \\uXXXX and \\UXXXXXXXX. Unknown
    escapes keep the escaped character.
    """
    if "\\" not in raw:
        return raw
    out = []
    i = 0
    n = len(raw)
    while i < n:
        ch = raw[i]
        if ch != "\\" or i + 1 >= n:
            out.append(ch)
            i += 1
            continue
        esc = raw[i + 1]
        i += 2
        if esc in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[esc])
        elif esc in "xX":
            digits = _take(raw, i, _HEX_DIGITS, 2)
            if digits:
                out.append(chr(int(digits, 16)))
                i += len(digits)
            else:
                out.append(esc)
        elif esc in _OCTAL_DIGITS:
            digits = esc + _take(raw, i, _OCTAL_DIGITS, 2)
            out.append(chr(int(digits, 8)))
            i += len(digits) - 1
        elif esc in "uU":
            width = 4 if esc == "u" else 8
            digits = _take(raw, i, _HEX_DIGITS, width)
            if len(digits) == width:
                out.append(chr(int(digits, 16)))
                i += width
            else:
                out.append(esc)
        else:
            out.append(esc)
    return "".join(out)


def tokenize_proto(text: str) -> List[ProtoToken]:
    """Tokenize a protobuf source string into a list of tokens.

    Dotted names (`google.protobuf.Timestamp`, `.pkg.Type`) come out as a
    single IDENT token.
    """
    tokens: List[ProtoToken] = []
    i = 0
    line = 1
    col = 1
    n = len(text)

    while i < n:
        ch = text[i]

        # Whitespace
        if ch in (" ", "\t", "\r"):
            i += 1
            col += 1
            continue

        if ch == "\n":
            i += 1
            line += 1
            col = 1
            continue

        # Single-line comment
        if ch == "/" and i + 1 < n and text[i + 1] == "/":
            while i < n and text[i] != "\n":
                i += 1
            continue

        # Multi-line comment
        if ch == "/" and i + 1 < n and text[i + 1] == "*":
            i += 2
            col += 2
            while i < n:
                if text[i] == "\n":
                    line += 1
                    col = 1
                elif text[i] == "*" and i + 1 < n and text[i + 1] == "/":
                    i += 2
                    col += 2
                    break
                else:
                    col += 1
                i += 1
            continue

        if ch in _PUNCTUATION:
            tokens.append(ProtoToken(_PUNCTUATION[ch], ch, line, col))
            i += 1
            col += 1
            continue

        # String literal, either quote style
        if ch in ('"', "'"):
            quote = ch
            start_col = col
            i += 1
            col += 1
            start_line = line
            start = i
            while i < n and text[i] != quote:
                if text[i] == "\\":
                    i += 1
                    col += 1
                if i < n and text[i] == "\n":
                    line += 1
                    col = 1
                else:
                    col += 1
                i += 1
            value = unescape_string(text[start:i])
            if i < n:
                i += 1  # consume closing quote
                col += 1
            tokens.append(ProtoToken(ProtoTokenType.STRING_LIT, value, start_line, start_col))
            continue

        next_ch = text[i + 1] if i + 1 < n else ""

        # Signed float specials: -inf, -nan
        if ch in "-+" and text.startswith(_FLOAT_WORDS, i + 1) and not (
            i + 4 < n and (text[i + 4].isalnum() or text[i + 4] == "_")
        ):
            tokens.append(ProtoToken(ProtoTokenType.IDENT, text[i:i + 4], line, col))
            i += 4
            col += 4
            continue

        # Number: decimal, hex, octal, float, optionally signed
        if ch.isdigit() or (ch in "-+." and next_ch.isdigit()):
            start = i
            start_col = col
            i += 1
            col += 1
            while i < n and (text[i].isalnum() or text[i] == "." or (
                text[i] in "-+" and text[i - 1] in "eE" and not text[start:i].lower().startswith(("0x", "-0x"))
            )):
                i += 1
                col += 1
            tokens.append(ProtoToken(ProtoTokenType.NUMBER, text[start:i], line, start_col))
            continue

        # Identifier / keyword, with an optional leading dot for absolute names
        if _is_ident_start(ch) or (ch == "." and _is_ident_start(next_ch)):
            start = i
            start_col = col
            i += 1
            col += 1
            while i < n and (text[i].isalnum() or text[i] == "_" or (
                text[i] == "." and i + 1 < n and _is_ident_start(text[i + 1])
            )):
                i += 1
                col += 1
            word = text[start:i]
            tok_type = _KEYWORDS.get(word, ProtoTokenType.IDENT)
            tokens.append(ProtoToken(tok_type, word, line, start_col))
            continue

        # Skip any other character
        i += 1
        col += 1

    tokens.append(ProtoToken(ProtoTokenType.EOF, "", line, col))
    return tokens
