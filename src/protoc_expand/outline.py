"""Type index of a proto file, generated by walking it with the visitor."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from google.protobuf import descriptor_pb2 as d2
from jinja2 import Environment, FileSystemLoader

from protoc_expand.naming import VisitorOptions
from protoc_expand.source_info import SourceInfo
from protoc_expand.visitor import visit, visit_services


@dataclass
class OutlineEntry:
    kind: str
    output_name: str
    proto_name: str
    comment: str = ""

    @property
    def comment_lines(self) -> List[str]:
        return [line.strip() for line in self.comment.strip().splitlines() if line.strip()]


def build_outline(
    file_proto: d2.FileDescriptorProto,
    options: Optional[VisitorOptions] = None,
) -> List[OutlineEntry]:
    """Enums and messages in traversal order, then services."""
    if options is None:
        options = VisitorOptions()
    source_info = SourceInfo.from_descriptor(file_proto)
    entries: List[OutlineEntry] = []

    def on_message(name, desc, info, proto_name):
        entries.append(OutlineEntry("message", name, proto_name, info.leading_comments))

    def on_enum(name, desc, info, proto_name):
        entries.append(OutlineEntry("enum", name, proto_name, info.leading_comments))

    def on_service(desc, info):
        entries.append(OutlineEntry("service", desc.name, desc.name, info.leading_comments))

    visit(file_proto, source_info, on_message, options, on_enum)
    visit_services(file_proto, source_info, on_service)
    return entries


def _get_template_env() -> Environment:
    template_dir = Path(__file__).parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_outline(file_proto: d2.FileDescriptorProto, entries: List[OutlineEntry]) -> str:
    env = _get_template_env()
    template = env.get_template("outline.txt.j2")
    return template.render(
        file_name=file_proto.name,
        package=file_proto.package,
        entries=entries,
    )


def outline_output_path(file_proto: d2.FileDescriptorProto, out_dir: str) -> str:
    base = os.path.splitext(os.path.basename(file_proto.name))[0]
    return os.path.join(out_dir, f"{base}.outline.txt")
