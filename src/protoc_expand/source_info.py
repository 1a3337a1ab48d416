"""Cursor into a file's SourceCodeInfo location table.

protoc records comments and spans per declaration, keyed by the path of
field numbers and indices leading from the FileDescriptorProto down to
the declaration. A SourceInfo value is one such path plus a reference to
the shared, read-only table; opening a child never copies the table.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple

from google.protobuf import descriptor_pb2 as d2


class Fields:
    """Field numbers used to build source-info paths."""

    class file:
        package = d2.FileDescriptorProto.PACKAGE_FIELD_NUMBER
        message_type = d2.FileDescriptorProto.MESSAGE_TYPE_FIELD_NUMBER
        enum_type = d2.FileDescriptorProto.ENUM_TYPE_FIELD_NUMBER
        service = d2.FileDescriptorProto.SERVICE_FIELD_NUMBER
        extension = d2.FileDescriptorProto.EXTENSION_FIELD_NUMBER
        syntax = d2.FileDescriptorProto.SYNTAX_FIELD_NUMBER

    class message:
        field = d2.DescriptorProto.FIELD_FIELD_NUMBER
        nested_type = d2.DescriptorProto.NESTED_TYPE_FIELD_NUMBER
        enum_type = d2.DescriptorProto.ENUM_TYPE_FIELD_NUMBER
        extension = d2.DescriptorProto.EXTENSION_FIELD_NUMBER
        oneof_decl = d2.DescriptorProto.ONEOF_DECL_FIELD_NUMBER

    class enum:
        value = d2.EnumDescriptorProto.VALUE_FIELD_NUMBER

    class service:
        method = d2.ServiceDescriptorProto.METHOD_FIELD_NUMBER


LocationPath = Tuple[int, ...]

_EMPTY: Mapping[LocationPath, d2.SourceCodeInfo.Location] = MappingProxyType({})


class SourceInfo:
    __slots__ = ("_locations", "_path")

    def __init__(self, locations: Mapping[LocationPath, d2.SourceCodeInfo.Location], path: LocationPath = ()):
        self._locations = locations
        self._path = path

    @classmethod
    def from_descriptor(cls, file_proto: d2.FileDescriptorProto) -> SourceInfo:
        """Build the location table for a file, rooted at the file itself."""
        locations = {}
        for location in file_proto.source_code_info.location:
            # protoc emits one location per span; the first one is the declaration.
            locations.setdefault(tuple(location.path), location)
        return cls(MappingProxyType(locations))

    @classmethod
    def empty(cls) -> SourceInfo:
        return cls(_EMPTY)

    @property
    def path(self) -> LocationPath:
        return self._path

    def open(self, kind: int, index: int) -> SourceInfo:
        """Return the cursor for child `index` of repeated field `kind`."""
        return SourceInfo(self._locations, self._path + (kind, index))

    def lookup(self, kind: int, index: int) -> Optional[d2.SourceCodeInfo.Location]:
        return self._locations.get(self._path + (kind, index))

    @property
    def location(self) -> Optional[d2.SourceCodeInfo.Location]:
        return self._locations.get(self._path)

    @property
    def leading_comments(self) -> str:
        loc = self.location
        return loc.leading_comments if loc is not None else ""

    @property
    def trailing_comments(self) -> str:
        loc = self.location
        return loc.trailing_comments if loc is not None else ""

    @property
    def leading_detached_comments(self) -> List[str]:
        loc = self.location
        return list(loc.leading_detached_comments) if loc is not None else []

    @property
    def span(self) -> List[int]:
        """[start_line, start_col, end_line, end_col] (end_line omitted if same), zero-based."""
        loc = self.location
        return list(loc.span) if loc is not None else []

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SourceInfo):
            return NotImplemented
        return self._locations is other._locations and self._path == other._path

    def __hash__(self) -> int:
        return hash((id(self._locations), self._path))

    def __repr__(self) -> str:
        return f"SourceInfo(path={self._path!r})"
