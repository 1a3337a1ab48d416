"""Recursive descent parser for protobuf (.proto) files.

Consumes a token stream from proto_tokenizer and produces the namespace
tree defined in protoc_expand.models.
"""

from __future__ import annotations

import re
from typing import List, Optional, Union

from protoc_expand.models import (
    ProtoEnum,
    ProtoEnumValue,
    ProtoField,
    ProtoFile,
    ProtoMessage,
    ProtoOption,
    ProtoRpc,
    ProtoService,
)

from .proto_tokenizer import KEYWORD_TYPES, ProtoToken, ProtoTokenType

_OCTAL_RE = re.compile(r"^[-+]?0[0-7]+$")

_FLOAT_IDENTS = {
    "inf": float("inf"),
    "+inf": float("inf"),
    "-inf": float("-inf"),
    "nan": float("nan"),
    "+nan": float("nan"),
    "-nan": float("nan"),
}

_LABELS = {
    ProtoTokenType.REPEATED: "repeated",
    ProtoTokenType.OPTIONAL: "optional",
    ProtoTokenType.REQUIRED: "required",
}


class ProtoParseError(Exception):
    """Raised when the parser encounters unexpected input."""

    def __init__(self, message: str, token: ProtoToken | None = None):
        self.token = token
        if token:
            super().__init__(f"Line {token.line}:{token.col}: {message}")
        else:
            super().__init__(message)


class ProtoParser:
    """Recursive descent parser for .proto files."""

    def __init__(self, tokens: List[ProtoToken], file_path: str = ""):
        self._tokens = tokens
        self._pos = 0
        self._file = ProtoFile(file_path=file_path)

    # -- public API --

    def parse(self) -> ProtoFile:
        """Parse the full token stream into a ProtoFile tree."""
        proto_file = self._file

        while not self._at_end():
            tt = self._peek().type

            if tt == ProtoTokenType.SYNTAX:
                self._advance()
                self._expect(ProtoTokenType.EQUALS)
                proto_file.syntax = self._expect(ProtoTokenType.STRING_LIT).value
                self._expect(ProtoTokenType.SEMICOLON)
            elif tt == ProtoTokenType.PACKAGE:
                self._advance()
                proto_file.package = self._expect(ProtoTokenType.IDENT).value
                self._expect(ProtoTokenType.SEMICOLON)
            elif tt == ProtoTokenType.IMPORT:
                self._advance()
                if self._peek().type == ProtoTokenType.IDENT and self._peek().value in ("public", "weak"):
                    self._advance()
                proto_file.imports.append(self._expect(ProtoTokenType.STRING_LIT).value)
                self._expect(ProtoTokenType.SEMICOLON)
            elif tt == ProtoTokenType.OPTION:
                proto_file.options.append(self._parse_option_statement())
            elif tt == ProtoTokenType.MESSAGE:
                proto_file.package_namespace().nested.append(self._parse_message())
            elif tt == ProtoTokenType.ENUM:
                proto_file.package_namespace().nested.append(self._parse_enum())
            elif tt == ProtoTokenType.SERVICE:
                proto_file.package_namespace().nested.append(self._parse_service())
            elif tt == ProtoTokenType.EXTEND:
                proto_file.extensions.extend(self._parse_extend(proto_file.package_namespace().nested))
            elif tt == ProtoTokenType.SEMICOLON:
                self._advance()
            else:
                tok = self._peek()
                raise ProtoParseError(f"Unexpected top-level token {tok.type.name} ({tok.value!r})", tok)

        return proto_file

    # -- message parsing --

    def _parse_message(self) -> ProtoMessage:
        """Parse: MESSAGE name LBRACE body RBRACE"""
        self._expect(ProtoTokenType.MESSAGE)
        msg = ProtoMessage(name=self._expect_name().value)
        self._expect(ProtoTokenType.LBRACE)
        self._parse_message_body(msg)
        self._expect(ProtoTokenType.RBRACE)
        return msg

    def _parse_message_body(self, msg: ProtoMessage) -> None:
        """Parse the contents between { and } of a message."""
        while not self._at_end() and self._peek().type != ProtoTokenType.RBRACE:
            tt = self._peek().type

            if tt == ProtoTokenType.MESSAGE:
                msg.nested_messages.append(self._parse_message())
            elif tt == ProtoTokenType.ENUM:
                msg.enums.append(self._parse_enum())
            elif tt == ProtoTokenType.OPTION:
                msg.options.append(self._parse_option_statement())
            elif tt == ProtoTokenType.ONEOF:
                msg.fields.extend(self._parse_oneof(msg.nested_messages))
            elif tt == ProtoTokenType.EXTEND:
                self._file.extensions.extend(self._parse_extend(msg.nested_messages))
            elif tt in (ProtoTokenType.RESERVED, ProtoTokenType.EXTENSIONS):
                self._skip_statement()
            elif tt == ProtoTokenType.SEMICOLON:
                self._advance()
            else:
                msg.fields.append(self._parse_field(nested=msg.nested_messages))

    def _parse_field(self, oneof: Optional[str] = None, nested: Optional[List] = None) -> ProtoField:
        """Parse: [label] type name EQUALS NUMBER [field options] SEMICOLON

        Proto2 groups are accepted too; the group's message body is appended
        to `nested`.
        """
        label = None
        if self._peek().type in _LABELS:
            label = _LABELS[self._advance().type]

        if self._at_group():
            return self._parse_group(label, oneof, nested)

        if self._peek().type == ProtoTokenType.MAP:
            type_name = self._parse_map_type()
        else:
            type_name = self._expect(ProtoTokenType.IDENT).value
        name_tok = self._expect_name()
        self._expect(ProtoTokenType.EQUALS)
        number = self._parse_int(self._expect(ProtoTokenType.NUMBER))
        options = self._parse_bracket_options()
        self._expect(ProtoTokenType.SEMICOLON)

        return ProtoField(
            name=name_tok.value,
            number=number,
            type_name=type_name,
            is_repeated=label == "repeated",
            label=label,
            oneof=oneof,
            options=options,
        )

    def _at_group(self) -> bool:
        tok = self._peek()
        return (
            tok.type == ProtoTokenType.IDENT
            and tok.value == "group"
            and self._peek_at(2).type == ProtoTokenType.EQUALS
        )

    def _parse_group(self, label: Optional[str], oneof: Optional[str], nested: Optional[List]) -> ProtoField:
        """Parse: GROUP Name EQUALS NUMBER [field options] LBRACE body RBRACE

        A group declares a message type `Name` and a field `name` of that type.
        """
        self._expect(ProtoTokenType.IDENT)
        name_tok = self._expect_name()
        self._expect(ProtoTokenType.EQUALS)
        number = self._parse_int(self._expect(ProtoTokenType.NUMBER))
        options = self._parse_bracket_options()
        group = ProtoMessage(name=name_tok.value)
        self._expect(ProtoTokenType.LBRACE)
        self._parse_message_body(group)
        self._expect(ProtoTokenType.RBRACE)
        if nested is not None:
            nested.append(group)

        return ProtoField(
            name=name_tok.value.lower(),
            number=number,
            type_name=name_tok.value,
            is_repeated=label == "repeated",
            label=label,
            oneof=oneof,
            options=options,
        )

    def _parse_map_type(self) -> str:
        """Parse: MAP LANGLE key COMMA value RANGLE"""
        self._expect(ProtoTokenType.MAP)
        self._expect(ProtoTokenType.LANGLE)
        key = self._expect(ProtoTokenType.IDENT).value
        self._expect(ProtoTokenType.COMMA)
        value = self._expect(ProtoTokenType.IDENT).value
        self._expect(ProtoTokenType.RANGLE)
        return f"map<{key}, {value}>"

    def _parse_oneof(self, nested: List) -> List[ProtoField]:
        self._expect(ProtoTokenType.ONEOF)
        name = self._expect_name().value
        self._expect(ProtoTokenType.LBRACE)
        fields: List[ProtoField] = []
        while not self._at_end() and self._peek().type != ProtoTokenType.RBRACE:
            tt = self._peek().type
            if tt == ProtoTokenType.OPTION:
                self._parse_option_statement()
            elif tt == ProtoTokenType.SEMICOLON:
                self._advance()
            else:
                fields.append(self._parse_field(oneof=name, nested=nested))
        self._expect(ProtoTokenType.RBRACE)
        return fields

    def _parse_extend(self, nested: List) -> List[ProtoField]:
        """Parse: EXTEND type LBRACE fields RBRACE"""
        self._expect(ProtoTokenType.EXTEND)
        extendee = self._expect(ProtoTokenType.IDENT).value
        self._expect(ProtoTokenType.LBRACE)
        fields: List[ProtoField] = []
        while not self._at_end() and self._peek().type != ProtoTokenType.RBRACE:
            if self._peek().type == ProtoTokenType.SEMICOLON:
                self._advance()
                continue
            f = self._parse_field(nested=nested)
            f.extendee = extendee
            fields.append(f)
        self._expect(ProtoTokenType.RBRACE)
        return fields

    # -- enum parsing --

    def _parse_enum(self) -> ProtoEnum:
        """Parse: ENUM name LBRACE { value | option | reserved } RBRACE"""
        self._expect(ProtoTokenType.ENUM)
        enum = ProtoEnum(name=self._expect_name().value)
        self._expect(ProtoTokenType.LBRACE)
        while not self._at_end() and self._peek().type != ProtoTokenType.RBRACE:
            tt = self._peek().type
            if tt == ProtoTokenType.OPTION:
                enum.options.append(self._parse_option_statement())
            elif tt == ProtoTokenType.RESERVED:
                self._skip_statement()
            elif tt == ProtoTokenType.SEMICOLON:
                self._advance()
            else:
                name_tok = self._expect_name()
                self._expect(ProtoTokenType.EQUALS)
                number = self._parse_int(self._expect(ProtoTokenType.NUMBER))
                options = self._parse_bracket_options()
                self._expect(ProtoTokenType.SEMICOLON)
                enum.values.append(ProtoEnumValue(name=name_tok.value, number=number, options=options))
        self._expect(ProtoTokenType.RBRACE)
        return enum

    # -- service parsing --

    def _parse_service(self) -> ProtoService:
        """Parse: SERVICE name LBRACE { rpc | option } RBRACE"""
        self._expect(ProtoTokenType.SERVICE)
        service = ProtoService(name=self._expect_name().value)
        self._expect(ProtoTokenType.LBRACE)
        while not self._at_end() and self._peek().type != ProtoTokenType.RBRACE:
            tt = self._peek().type
            if tt == ProtoTokenType.RPC:
                service.rpcs.append(self._parse_rpc())
            elif tt == ProtoTokenType.OPTION:
                service.options.append(self._parse_option_statement())
            elif tt == ProtoTokenType.SEMICOLON:
                self._advance()
            else:
                tok = self._peek()
                raise ProtoParseError(f"Unexpected token in service: {tok.type.name} ({tok.value!r})", tok)
        self._expect(ProtoTokenType.RBRACE)
        return service

    def _parse_rpc(self) -> ProtoRpc:
        """Parse: RPC name (req) RETURNS (res) ( SEMICOLON | LBRACE options RBRACE )"""
        self._expect(ProtoTokenType.RPC)
        name = self._expect_name().value
        client_streaming, input_type = self._parse_rpc_type()
        self._expect(ProtoTokenType.RETURNS)
        server_streaming, output_type = self._parse_rpc_type()
        rpc = ProtoRpc(
            name=name,
            input_type=input_type,
            output_type=output_type,
            client_streaming=client_streaming,
            server_streaming=server_streaming,
        )
        if self._peek().type == ProtoTokenType.LBRACE:
            self._advance()
            while not self._at_end() and self._peek().type != ProtoTokenType.RBRACE:
                if self._peek().type == ProtoTokenType.OPTION:
                    rpc.options.append(self._parse_option_statement())
                else:
                    self._expect(ProtoTokenType.SEMICOLON)
            self._expect(ProtoTokenType.RBRACE)
        else:
            self._expect(ProtoTokenType.SEMICOLON)
        return rpc

    def _parse_rpc_type(self):
        self._expect(ProtoTokenType.LPAREN)
        streaming = False
        if self._peek().type == ProtoTokenType.STREAM and self._peek_at(1).type == ProtoTokenType.IDENT:
            self._advance()
            streaming = True
        type_name = self._expect(ProtoTokenType.IDENT).value
        self._expect(ProtoTokenType.RPAREN)
        return streaming, type_name

    # -- options --

    def _parse_option_statement(self) -> ProtoOption:
        """Parse: OPTION name EQUALS value SEMICOLON"""
        self._expect(ProtoTokenType.OPTION)
        option = self._parse_option_assignment()
        self._expect(ProtoTokenType.SEMICOLON)
        return option

    def _parse_bracket_options(self) -> List[ProtoOption]:
        """Parse an optional `[name = value, ...]` list."""
        options: List[ProtoOption] = []
        if self._peek().type != ProtoTokenType.LBRACKET:
            return options
        self._advance()
        options.append(self._parse_option_assignment())
        while self._peek().type == ProtoTokenType.COMMA:
            self._advance()
            options.append(self._parse_option_assignment())
        self._expect(ProtoTokenType.RBRACKET)
        return options

    def _parse_option_assignment(self) -> ProtoOption:
        name = self._parse_option_name()
        self._expect(ProtoTokenType.EQUALS)
        return ProtoOption(name=name, value=self._parse_constant())

    def _parse_option_name(self) -> str:
        """Parse `ident` or `(full.ident)` optionally followed by `.sub.field`."""
        if self._peek().type == ProtoTokenType.LPAREN:
            self._advance()
            name = "(" + self._expect(ProtoTokenType.IDENT).value + ")"
            self._expect(ProtoTokenType.RPAREN)
            if self._peek().type == ProtoTokenType.IDENT and self._peek().value.startswith("."):
                name += self._advance().value
            return name
        return self._expect_name().value

    def _parse_constant(self) -> Union[str, int, float, bool]:
        tok = self._peek()
        if tok.type == ProtoTokenType.STRING_LIT:
            # Adjacent string literals are concatenated.
            parts = []
            while self._peek().type == ProtoTokenType.STRING_LIT:
                parts.append(self._advance().value)
            return "".join(parts)
        if tok.type == ProtoTokenType.NUMBER:
            self._advance()
            try:
                return self._parse_int(tok)
            except ProtoParseError:
                return float(tok.value)
        if tok.type == ProtoTokenType.LBRACE:
            return self._skip_aggregate()
        if tok.type == ProtoTokenType.IDENT or tok.type in KEYWORD_TYPES:
            self._advance()
            if tok.value == "true":
                return True
            if tok.value == "false":
                return False
            if tok.value in _FLOAT_IDENTS:
                return _FLOAT_IDENTS[tok.value]
            return tok.value
        raise ProtoParseError(f"Expected constant, got {tok.type.name} ({tok.value!r})", tok)

    def _skip_aggregate(self) -> str:
        """Consume a `{ ... }` text-format aggregate and return its raw text."""
        self._expect(ProtoTokenType.LBRACE)
        parts = ["{"]
        depth = 1
        while not self._at_end() and depth > 0:
            tok = self._advance()
            if tok.type == ProtoTokenType.LBRACE:
                depth += 1
            elif tok.type == ProtoTokenType.RBRACE:
                depth -= 1
            parts.append(f'"{tok.value}"' if tok.type == ProtoTokenType.STRING_LIT else tok.value)
        if depth > 0:
            raise ProtoParseError("Unterminated option aggregate", self._peek())
        return " ".join(parts)

    # -- skip helpers --

    def _skip_statement(self) -> None:
        """Skip tokens until (and including) the next semicolon."""
        while not self._at_end():
            tok = self._advance()
            if tok.type == ProtoTokenType.SEMICOLON:
                return

    # -- token helpers --

    def _peek(self) -> ProtoToken:
        return self._tokens[self._pos]

    def _peek_at(self, offset: int) -> ProtoToken:
        return self._tokens[min(self._pos + offset, len(self._tokens) - 1)]

    def _advance(self) -> ProtoToken:
        tok = self._tokens[self._pos]
        if tok.type != ProtoTokenType.EOF:
            self._pos += 1
        return tok

    def _expect(self, expected: ProtoTokenType) -> ProtoToken:
        tok = self._peek()
        if tok.type != expected:
            raise ProtoParseError(
                f"Expected {expected.name}, got {tok.type.name} ({tok.value!r})",
                tok,
            )
        return self._advance()

    def _expect_name(self) -> ProtoToken:
        """Like _expect(IDENT), but keywords are valid names too."""
        tok = self._peek()
        if tok.type == ProtoTokenType.IDENT or tok.type in KEYWORD_TYPES:
            return self._advance()
        raise ProtoParseError(f"Expected name, got {tok.type.name} ({tok.value!r})", tok)

    @staticmethod
    def _parse_int(tok: ProtoToken) -> int:
        """Decimal, hex (0x1F) or octal (017) integer literal, optionally signed."""
        try:
            if _OCTAL_RE.match(tok.value):
                return int(tok.value, 8)
            return int(tok.value, 0)
        except ValueError:
            raise ProtoParseError(f"Invalid integer {tok.value!r}", tok) from None

    def _at_end(self) -> bool:
        return self._tokens[self._pos].type == ProtoTokenType.EOF
