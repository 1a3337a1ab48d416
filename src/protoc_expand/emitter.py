from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

from jinja2 import Environment, FileSystemLoader

from protoc_expand.expander import find_entry
from protoc_expand.models import MessageEntry, ProtoMessage


def _get_template_env() -> Environment:
    template_dir = Path(__file__).parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_expanded_proto(messages: Sequence[ProtoMessage]) -> str:
    """Render expanded messages as a standalone proto3 file."""
    env = _get_template_env()
    template = env.get_template("expanded.proto.j2")
    return template.render(messages=messages)


def expanded_output_path(original_path: str, out_dir: str) -> str:
    return os.path.join(out_dir, os.path.basename(original_path))


def _write_proto_file(original_path: str, messages: Sequence[ProtoMessage], out_dir: str) -> str:
    output_path = expanded_output_path(original_path, out_dir)
    os.makedirs(out_dir, exist_ok=True)
    Path(output_path).write_text(render_expanded_proto(messages), encoding="utf-8")
    return output_path


def write_expanded_proto(original_path: str, message: ProtoMessage, out_dir: str) -> str:
    """Write one expanded message to <out_dir>/<basename of original_path>.

    Returns the path written.
    """
    return _write_proto_file(original_path, [message], out_dir)


def write_expanded_protos(
    expanded: Mapping[str, ProtoMessage],
    entries: Sequence[MessageEntry],
    out_dir: str,
) -> List[str]:
    """Write every expanded message, one output file per source file.

    Messages expanded from the same source file share one output file, in
    the order they were expanded.

    Returns list of generated file paths.
    """
    by_source: Dict[str, List[ProtoMessage]] = {}
    for full_name, message in expanded.items():
        source = find_entry(entries, full_name)
        if source is None:
            continue
        by_source.setdefault(source.file_path, []).append(message)

    generated: List[str] = []
    for file_path, messages in by_source.items():
        generated.append(_write_proto_file(file_path, messages, out_dir))
    return generated
