from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

from protoc_expand.errors import LoadFailure
from protoc_expand.models import ProtoFile

from .proto_ast_parser import ProtoParseError, ProtoParser
from .proto_tokenizer import tokenize_proto


def parse_proto_text(text: str, file_path: str = "") -> ProtoFile:
    """Parse proto source text into a ProtoFile tree."""
    tokens = tokenize_proto(text)
    return ProtoParser(tokens, file_path=file_path).parse()


def parse_proto_file(file_path: str) -> ProtoFile:
    """Parse a .proto file.

    Raises LoadFailure if the file cannot be read or is not valid proto.
    """
    try:
        text = Path(file_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise LoadFailure(file_path, str(e)) from e
    try:
        return parse_proto_text(text, file_path=file_path)
    except ProtoParseError as e:
        raise LoadFailure(file_path, str(e)) from e


def load_proto_files(file_paths: Sequence[str]) -> List[ProtoFile]:
    """Parse every file before returning any of them.

    The first failure aborts the whole load, so callers never see a
    partial set of trees.
    """
    return [parse_proto_file(path) for path in file_paths]
