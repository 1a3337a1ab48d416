from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

# Names that clash with the target language's globals.
BUILT_IN_NAMES: Tuple[str, ...] = ("Date", "Function")
BUILT_IN_SUFFIX = "Message"


@dataclass(frozen=True)
class VisitorOptions:
    """Naming knobs applied to every emitted type name."""

    snake_to_camel: bool = False
    use_snake_type_name: bool = False
    type_prefix: str = ""
    type_suffix: str = ""


def snake_to_camel(name: str) -> str:
    """foo_bar -> fooBar. All-caps words are lowercased first (FOO_BAR -> fooBar)."""
    has_lower = any(c.islower() for c in name)
    words = name.split("_")
    result = []
    for i, word in enumerate(words):
        if not has_lower:
            word = word.lower()
        result.append(word if i == 0 else word[:1].upper() + word[1:])
    return "".join(result)


def maybe_snake_to_camel(name: str, options: VisitorOptions) -> str:
    if options.snake_to_camel and "_" in name:
        return snake_to_camel(name)
    return name


def wrap_type_name(options: VisitorOptions, name: str) -> str:
    return f"{options.type_prefix}{name}{options.type_suffix}"


def message_name(name: str) -> str:
    """Suffix `Message` to names that collide with built-ins, i.e. `Date`."""
    return f"{name}{BUILT_IN_SUFFIX}" if name in BUILT_IN_NAMES else name
