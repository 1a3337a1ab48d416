"""Declaration-order traversal of FileDescriptorProto trees."""

from __future__ import annotations

from typing import Callable, Optional, Union

from google.protobuf import descriptor_pb2 as d2

from protoc_expand.naming import VisitorOptions, maybe_snake_to_camel, message_name, wrap_type_name
from protoc_expand.source_info import Fields, SourceInfo

MessageVisitor = Callable[[str, d2.DescriptorProto, SourceInfo, str], None]
EnumVisitor = Callable[[str, d2.EnumDescriptorProto, SourceInfo, str], None]
ServiceVisitor = Callable[[d2.ServiceDescriptorProto, SourceInfo], None]


def _ignore_enum(name: str, desc: d2.EnumDescriptorProto, source_info: SourceInfo, proto_name: str) -> None:
    pass


def visit(
    proto: Union[d2.FileDescriptorProto, d2.DescriptorProto],
    source_info: SourceInfo,
    message_fn: MessageVisitor,
    options: VisitorOptions,
    enum_fn: Optional[EnumVisitor] = None,
    name_prefix: str = "",
    proto_prefix: str = "",
) -> None:
    """Call enum_fn/message_fn for every enum and message under `proto`.

    Enums of a scope come before its messages; each message is reported
    before its nested types. Callbacks receive the output name (flattened,
    affixed, collision-free), the descriptor, its source-info cursor and
    the dotted proto name relative to the file's package.
    """
    if enum_fn is None:
        enum_fn = _ignore_enum
    is_root_file = isinstance(proto, d2.FileDescriptorProto)
    child_enum_type = Fields.file.enum_type if is_root_file else Fields.message.enum_type

    for index, enum_desc in enumerate(proto.enum_type):
        # I.e. Foo_Bar.Zaz_Inner
        proto_full_name = proto_prefix + enum_desc.name
        # I.e. FooBar_ZazInner
        full_name = name_prefix + maybe_snake_to_camel(enum_desc.name, options)
        nested_source_info = source_info.open(child_enum_type, index)
        enum_fn(message_name(wrap_type_name(options, full_name)), enum_desc, nested_source_info, proto_full_name)

    if is_root_file:
        messages = proto.message_type
        child_type = Fields.file.message_type
    else:
        messages = proto.nested_type
        child_type = Fields.message.nested_type

    delim = "_" if options.use_snake_type_name else ""
    for index, message in enumerate(messages):
        proto_full_name = proto_prefix + message.name
        full_name = name_prefix + maybe_snake_to_camel(message.name, options)
        nested_source_info = source_info.open(child_type, index)
        message_fn(message_name(wrap_type_name(options, full_name)), message, nested_source_info, proto_full_name)
        visit(message, nested_source_info, message_fn, options, enum_fn, full_name + delim, proto_full_name + ".")


def visit_services(
    proto: d2.FileDescriptorProto,
    source_info: SourceInfo,
    service_fn: ServiceVisitor,
) -> None:
    for index, service_desc in enumerate(proto.service):
        service_fn(service_desc, source_info.open(Fields.file.service, index))
