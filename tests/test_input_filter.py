import pytest

from controller import InputTarget, KeyEvent, PointerEvent, is_text_entry_target
from controller.input_filter import key_matches


@pytest.mark.parametrize(
    "target",
    [
        InputTarget("INPUT"),
        InputTarget("input", input_type="text"),
        InputTarget("INPUT", input_type="search"),
        InputTarget("TEXTAREA"),
        InputTarget("DIV", content_editable=True),
    ],
)
def test_text_entry_targets(target):
    assert is_text_entry_target(target)


@pytest.mark.parametrize(
    "target",
    [
        None,
        InputTarget(),
        InputTarget("BUTTON"),
        InputTarget("INPUT", input_type="checkbox"),
        InputTarget("INPUT", input_type="Range"),
    ],
)
def test_other_targets(target):
    assert not is_text_entry_target(target)


def test_key_matching_ignores_case():
    assert key_matches("Q", "q")
    assert key_matches("q", "Q")
    assert not key_matches("w", "q")
    assert not key_matches("", "q")


def test_prevent_default_marks_events():
    key = KeyEvent("q")
    key.prevent_default()
    pointer = PointerEvent("touch")
    pointer.prevent_default()
    assert key.default_prevented
    assert pointer.default_prevented
    assert pointer.is_touch
    assert not PointerEvent().is_touch
