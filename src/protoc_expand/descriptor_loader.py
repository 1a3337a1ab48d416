"""Load FileDescriptorProtos, either from a serialized set or via protoc."""

from __future__ import annotations

import os
import subprocess
import tempfile
from typing import List, Sequence

from google.protobuf import descriptor_pb2 as d2
from google.protobuf.message import DecodeError

from protoc_expand.errors import LoadFailure


def read_descriptor_set(path: str) -> d2.FileDescriptorSet:
    """Read a binary FileDescriptorSet (protoc --descriptor_set_out)."""
    fds = d2.FileDescriptorSet()
    try:
        with open(path, "rb") as f:
            fds.ParseFromString(f.read())
    except OSError as e:
        raise LoadFailure(path, str(e)) from e
    except DecodeError as e:
        raise LoadFailure(path, f"not a FileDescriptorSet: {e}") from e
    return fds


def _include_args(proto_paths: Sequence[str], include_paths: Sequence[str]) -> List[str]:
    # The directory of each input plus any explicit -I, de-duplicated in order.
    includes = list(include_paths) + [os.path.dirname(os.path.abspath(p)) for p in proto_paths]
    seen = set()
    args: List[str] = []
    for inc in includes:
        if inc and inc not in seen:
            seen.add(inc)
            args.extend(["-I", inc])
    return args


def compile_descriptor_set(
    proto_paths: Sequence[str],
    include_paths: Sequence[str] = (),
    protoc: str = "protoc",
) -> d2.FileDescriptorSet:
    """Run protoc over the given files and return the descriptor set, with source info."""
    with tempfile.TemporaryDirectory() as td:
        desc_path = os.path.join(td, "descriptor_set.pb")
        cmd = [
            protoc,
            "--include_imports",
            "--include_source_info",
            f"--descriptor_set_out={desc_path}",
        ] + _include_args(proto_paths, include_paths) + [os.path.abspath(p) for p in proto_paths]
        joined = ", ".join(proto_paths)
        try:
            subprocess.run(cmd, check=True, capture_output=True)
        except FileNotFoundError as e:
            raise LoadFailure(joined, f"'{protoc}' not found. Install the Protocol Buffers compiler and ensure it is in PATH.") from e
        except subprocess.CalledProcessError as e:
            raise LoadFailure(joined, f"protoc failed: {e.stderr.decode('utf-8', errors='ignore').strip()}") from e
        return read_descriptor_set(desc_path)


def select_files(descriptor_set: d2.FileDescriptorSet, names: Sequence[str]) -> List[d2.FileDescriptorProto]:
    """Pick the FileDescriptorProtos for `names`, in request order.

    protoc records names relative to the include path, so a file matches
    when the requested path ends with its recorded name.
    """
    selected: List[d2.FileDescriptorProto] = []
    for name in names:
        normalized = name.replace(os.sep, "/")
        target = None
        for f in descriptor_set.file:
            if normalized == f.name or normalized.endswith("/" + f.name):
                target = f
                break
        if target is None:
            found = ", ".join(f.name for f in descriptor_set.file)
            raise LoadFailure(name, f"not in descriptor set. Found: {found}")
        selected.append(target)
    return selected
