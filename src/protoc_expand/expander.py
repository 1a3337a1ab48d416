from __future__ import annotations

from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from protoc_expand.errors import FieldIdConflict, MixinNotFound
from protoc_expand.models import (
    MessageEntry,
    ProtoField,
    ProtoFile,
    ProtoMessage,
    ProtoNamespace,
    ProtoOption,
)

MIXIN_OPTION = "(ts_proto_options.mixins)"


def extract_messages(
    tree: Union[ProtoFile, ProtoNamespace],
    file_path: str,
    namespace: Tuple[str, ...] = (),
) -> List[MessageEntry]:
    """Flatten a namespace tree into (file, namespace path, message) entries.

    Depth-first, parent before children, declaration order. Nested messages
    are included with their enclosing message names on the namespace path.
    """
    root = tree.root if isinstance(tree, ProtoFile) else tree
    result: List[MessageEntry] = []
    for node in root.nested:
        if isinstance(node, ProtoMessage):
            result.extend(_extract_message(node, file_path, namespace))
        elif isinstance(node, ProtoNamespace):
            result.extend(extract_messages(node, file_path, namespace + (node.name,)))
    return result


def _extract_message(
    message: ProtoMessage,
    file_path: str,
    namespace: Tuple[str, ...],
) -> List[MessageEntry]:
    result = [MessageEntry(file_path=file_path, namespace=namespace, message=message)]
    for nested in message.nested_messages:
        result.extend(_extract_message(nested, file_path, namespace + (message.name,)))
    return result


def get_mixins(message: ProtoMessage) -> List[str]:
    """Return the mixin names declared on a message, in declaration order.

    Every occurrence of the mixin option contributes; repeated occurrences
    are concatenated rather than overriding each other.
    """
    mixins: List[str] = []
    for option in message.options:
        if option.name == MIXIN_OPTION:
            mixins.append(str(option.value))
    return mixins


def build_message_index(entries: Sequence[MessageEntry]) -> Mapping[str, ProtoMessage]:
    """Map fully-qualified name -> message across all entries.

    The first entry wins when two files declare the same name.
    """
    index: Dict[str, ProtoMessage] = {}
    for entry in entries:
        index.setdefault(entry.full_name, entry.message)
    return MappingProxyType(index)


def find_entry(entries: Sequence[MessageEntry], full_name: str) -> Optional[MessageEntry]:
    for entry in entries:
        if entry.full_name == full_name:
            return entry
    return None


def expand_mixins(
    entries: Sequence[MessageEntry],
    index: Optional[Mapping[str, ProtoMessage]] = None,
) -> Dict[str, ProtoMessage]:
    """Merge mixin fields into every message that declares mixins.

    Returns fully-qualified name -> expanded message. Messages without
    mixins are left out; callers keep the original for those.

    Raises MixinNotFound for an unknown mixin and FieldIdConflict when two
    merged fields share a number.
    """
    if index is None:
        index = build_message_index(entries)
    expanded: Dict[str, ProtoMessage] = {}

    for entry in entries:
        mixins = get_mixins(entry.message)
        if not mixins:
            continue
        expanded[entry.full_name] = _expand_message(entry.message, mixins, index)

    return expanded


def _expand_message(
    message: ProtoMessage,
    mixins: List[str],
    index: Mapping[str, ProtoMessage],
) -> ProtoMessage:
    merged: Dict[int, ProtoField] = {}

    for mixin_name in mixins:
        mixin = index.get(mixin_name)
        if mixin is None:
            raise MixinNotFound(mixin_name, message.name)
        for f in mixin.fields:
            _add_field(merged, f, message.name)

    for f in message.fields:
        _add_field(merged, f, message.name)

    return ProtoMessage(name=message.name, fields=list(merged.values()))


def _add_field(merged: Dict[int, ProtoField], f: ProtoField, message_name: str) -> None:
    if f.number in merged:
        raise FieldIdConflict(f.name, f.number, message_name)
    merged[f.number] = _copy_field(f)


def _copy_field(f: ProtoField) -> ProtoField:
    """Detached copy; the oneof grouping is not carried over."""
    return ProtoField(
        name=f.name,
        number=f.number,
        type_name=f.type_name,
        is_repeated=f.is_repeated,
        label=f.label,
        extendee=f.extendee,
        options=[ProtoOption(name=o.name, value=o.value) for o in f.options],
    )
