from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from protoc_expand.descriptor_loader import compile_descriptor_set, read_descriptor_set, select_files
from protoc_expand.emitter import write_expanded_protos
from protoc_expand.errors import ExpandError
from protoc_expand.expander import build_message_index, expand_mixins, extract_messages
from protoc_expand.models import MessageEntry
from protoc_expand.naming import VisitorOptions
from protoc_expand.outline import build_outline, outline_output_path, render_outline
from protoc_expand.parser.proto_parser import load_proto_files


def run(input_files: Sequence[str], out_dir: str) -> List[str]:
    """Main pipeline: load, extract, expand, write.

    Every input is parsed before any expansion starts. Returns the list of
    generated file paths.
    """
    # 1. Parse all files (all-or-nothing)
    trees = load_proto_files(input_files)

    # 2. Flatten
    all_entries: List[MessageEntry] = []
    for path, tree in zip(input_files, trees):
        entries = extract_messages(tree, path)
        all_entries.extend(entries)
        print(f"  Parsed {path}: {len(entries)} message(s)")

    # 3. Expand
    index = build_message_index(all_entries)
    expanded = expand_mixins(all_entries, index)
    if not expanded:
        print("No messages declare mixins; nothing to write.")
        return []
    print(f"Expanded {len(expanded)} message(s)")

    # 4. Write
    generated = write_expanded_protos(expanded, all_entries, out_dir)
    for f in generated:
        print(f"  Generated: {f}")
    return generated


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        description="Merge mixin fields into proto messages",
    )
    parser.add_argument(
        "files",
        nargs="+",
        help="Input .proto files",
    )
    parser.add_argument(
        "--out",
        required=True,
        help="Output directory for expanded .proto files",
    )

    args = parser.parse_args(argv)
    try:
        run(args.files, args.out)
    except ExpandError as e:
        print(f"FATAL: {e}", file=sys.stderr)
        sys.exit(1)
    print("Expansion complete")


def outline(
    input_files: Sequence[str],
    options: VisitorOptions,
    include_paths: Sequence[str] = (),
    descriptor_set: Optional[str] = None,
    out_dir: Optional[str] = None,
) -> List[str]:
    """Print or write a type outline for each input file.

    Returns the rendered outlines, in input order.
    """
    if descriptor_set:
        fds = read_descriptor_set(descriptor_set)
        file_protos = select_files(fds, input_files) if input_files else list(fds.file)
    else:
        fds = compile_descriptor_set(input_files, include_paths)
        file_protos = select_files(fds, input_files)

    rendered: List[str] = []
    for file_proto in file_protos:
        text = render_outline(file_proto, build_outline(file_proto, options))
        rendered.append(text)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)
            out_path = outline_output_path(file_proto, out_dir)
            Path(out_path).write_text(text, encoding="utf-8")
            print(f"  Generated: {out_path}")
        else:
            print(text)
    return rendered


def outline_main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        description="List the generated type names of proto files in declaration order",
    )
    parser.add_argument("files", nargs="*", help="Input .proto files")
    parser.add_argument("-I", "--proto-path", dest="include_paths", action="append", default=[],
                        help="Import search directory (repeatable)")
    parser.add_argument("--descriptor-set", help="Read a serialized FileDescriptorSet instead of running protoc")
    parser.add_argument("--snake-to-camel", action="store_true", help="Camel-case snake_case type names")
    parser.add_argument("--snake-type-names", action="store_true", help="Join nested type names with '_'")
    parser.add_argument("--type-prefix", default="", help="Prefix for every generated type name")
    parser.add_argument("--type-suffix", default="", help="Suffix for every generated type name")
    parser.add_argument("--out", help="Write <name>.outline.txt files here instead of printing")

    args = parser.parse_args(argv)
    if not args.files and not args.descriptor_set:
        parser.error("either input files or --descriptor-set is required")

    options = VisitorOptions(
        snake_to_camel=args.snake_to_camel,
        use_snake_type_name=args.snake_type_names,
        type_prefix=args.type_prefix,
        type_suffix=args.type_suffix,
    )
    try:
        outline(args.files, options, args.include_paths, args.descriptor_set, args.out)
    except ExpandError as e:
        print(f"FATAL: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
