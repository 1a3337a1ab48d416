from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union


@dataclass
class ProtoOption:
    """A single `option name = value;` occurrence."""

    name: str
    value: Union[str, int, float, bool]


@dataclass
class ProtoField:
    """A field declaration: [label] type name = number [options];"""

    name: str
    number: int
    type_name: str
    is_repeated: bool = False
    label: Optional[str] = None
    extendee: Optional[str] = None
    oneof: Optional[str] = None
    options: List[ProtoOption] = field(default_factory=list)


@dataclass
class ProtoEnumValue:
    name: str
    number: int
    options: List[ProtoOption] = field(default_factory=list)


@dataclass
class ProtoEnum:
    name: str
    values: List[ProtoEnumValue] = field(default_factory=list)
    options: List[ProtoOption] = field(default_factory=list)


@dataclass
class ProtoMessage:
    """A message definition, possibly containing nested messages and enums."""

    name: str
    fields: List[ProtoField] = field(default_factory=list)
    nested_messages: List[ProtoMessage] = field(default_factory=list)
    enums: List[ProtoEnum] = field(default_factory=list)
    options: List[ProtoOption] = field(default_factory=list)


@dataclass
class ProtoRpc:
    name: str
    input_type: str
    output_type: str
    client_streaming: bool = False
    server_streaming: bool = False
    options: List[ProtoOption] = field(default_factory=list)


@dataclass
class ProtoService:
    name: str
    rpcs: List[ProtoRpc] = field(default_factory=list)
    options: List[ProtoOption] = field(default_factory=list)


ProtoNode = Union[ProtoMessage, ProtoEnum, ProtoService, "ProtoNamespace"]


@dataclass
class ProtoNamespace:
    """A package segment. Children are kept in declaration order."""

    name: str
    nested: List[ProtoNode] = field(default_factory=list)

    @property
    def messages(self) -> List[ProtoMessage]:
        return [n for n in self.nested if isinstance(n, ProtoMessage)]

    @property
    def enums(self) -> List[ProtoEnum]:
        return [n for n in self.nested if isinstance(n, ProtoEnum)]

    @property
    def services(self) -> List[ProtoService]:
        return [n for n in self.nested if isinstance(n, ProtoService)]

    @property
    def namespaces(self) -> List[ProtoNamespace]:
        return [n for n in self.nested if isinstance(n, ProtoNamespace)]

    def get_or_create(self, name: str) -> ProtoNamespace:
        for ns in self.namespaces:
            if ns.name == name:
                return ns
        ns = ProtoNamespace(name=name)
        self.nested.append(ns)
        return ns


@dataclass
class ProtoFile:
    """Top-level parsed representation of a .proto file.

    `root` is the anonymous root namespace. A `package a.b;` statement
    creates namespaces `a` and `b` under it, and every top-level
    declaration lands in the innermost one.
    """

    file_path: str = ""
    syntax: str = "proto2"
    package: Optional[str] = None
    imports: List[str] = field(default_factory=list)
    options: List[ProtoOption] = field(default_factory=list)
    extensions: List[ProtoField] = field(default_factory=list)
    root: ProtoNamespace = field(default_factory=lambda: ProtoNamespace(name=""))

    def package_namespace(self) -> ProtoNamespace:
        """Innermost package namespace, created on first use."""
        ns = self.root
        if self.package:
            for part in self.package.split("."):
                ns = ns.get_or_create(part)
        return ns

    def _find_package_namespace(self) -> Optional[ProtoNamespace]:
        ns: Optional[ProtoNamespace] = self.root
        if self.package:
            for part in self.package.split("."):
                ns = next((n for n in ns.namespaces if n.name == part), None)
                if ns is None:
                    return None
        return ns

    @property
    def messages(self) -> List[ProtoMessage]:
        ns = self._find_package_namespace()
        return ns.messages if ns else []

    @property
    def enums(self) -> List[ProtoEnum]:
        ns = self._find_package_namespace()
        return ns.enums if ns else []

    @property
    def services(self) -> List[ProtoService]:
        ns = self._find_package_namespace()
        return ns.services if ns else []


@dataclass
class MessageEntry:
    """A message paired with the file and namespace path it was found in."""

    file_path: str
    namespace: Tuple[str, ...]
    message: ProtoMessage

    @property
    def full_name(self) -> str:
        return ".".join(self.namespace + (self.message.name,))
