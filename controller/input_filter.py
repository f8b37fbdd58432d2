"""Framework-independent input event values and filters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

TEXT_ENTRY_TAGS = {"INPUT", "TEXTAREA"}

# <input> types that take no typed text; a held key there should still count.
NON_TEXT_INPUT_TYPES = {
    "button",
    "checkbox",
    "color",
    "file",
    "hidden",
    "image",
    "radio",
    "range",
    "reset",
    "submit",
}


@dataclass(frozen=True)
class InputTarget:
    """The element an input event originated from."""

    tag_name: str = "BODY"
    content_editable: bool = False
    input_type: Optional[str] = None


@dataclass
class KeyEvent:
    key: str
    target: Optional[InputTarget] = None
    repeat: bool = False
    default_prevented: bool = False

    def prevent_default(self) -> None:
        self.default_prevented = True


@dataclass
class PointerEvent:
    """Pointer or touch gesture on the push-to-talk button."""

    pointer_type: str = "mouse"
    default_prevented: bool = False

    @property
    def is_touch(self) -> bool:
        return self.pointer_type == "touch"

    def prevent_default(self) -> None:
        self.default_prevented = True


def is_text_entry_target(target: Optional[InputTarget]) -> bool:
    """Return True when typing into ``target`` would produce text."""

    if target is None:
        return False
    if target.content_editable:
        return True
    tag = (target.tag_name or "").upper()
    if tag not in TEXT_ENTRY_TAGS:
        return False
    if tag == "INPUT" and target.input_type:
        return target.input_type.lower() not in NON_TEXT_INPUT_TYPES
    return True


def normalize_key(key: str) -> str:
    return key.lower() if key else ""


def key_matches(key: str, hold_key: str) -> bool:
    """Case-insensitive key comparison ("Q" and "q" are the same key)."""

    return bool(key) and normalize_key(key) == normalize_key(hold_key)
