from __future__ import annotations


class ExpandError(Exception):
    """Base class for fatal errors raised while expanding proto files."""


class MixinNotFound(ExpandError):
    """Raised when a declared mixin does not name any loaded message."""

    def __init__(self, mixin_name: str, message_name: str = ""):
        self.mixin_name = mixin_name
        self.message_name = message_name
        detail = f" (declared by '{message_name}')" if message_name else ""
        super().__init__(f"Mixin '{mixin_name}' not found{detail}")


class FieldIdConflict(ExpandError):
    """Raised when two fields merged into one message share a number."""

    def __init__(self, field_name: str, field_id: int, message_name: str):
        self.field_name = field_name
        self.field_id = field_id
        self.message_name = message_name
        super().__init__(
            f"Field number conflict on '{field_name}' (tag {field_id}) in {message_name}"
        )


class LoadFailure(ExpandError):
    """Raised when an input schema file cannot be read or parsed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load '{path}': {reason}")
