"""Input-driven controllers: hold-to-pause and push-to-talk voice questions."""

from .capability import Capability, probe_voice_capability
from .hold_pause import HoldState, PauseOnHoldConfig, PauseOnHoldController
from .input_filter import InputTarget, KeyEvent, PointerEvent, is_text_entry_target
from .voice_query import Indicator, VoiceQueryConfig, VoiceQueryController
from .voice_session import ErrorKind, VoiceSession, VoiceSessionMachine, VoiceState

__all__ = [
    "Capability",
    "probe_voice_capability",
    "HoldState",
    "PauseOnHoldConfig",
    "PauseOnHoldController",
    "InputTarget",
    "KeyEvent",
    "PointerEvent",
    "is_text_entry_target",
    "Indicator",
    "VoiceQueryConfig",
    "VoiceQueryController",
    "ErrorKind",
    "VoiceSession",
    "VoiceSessionMachine",
    "VoiceState",
]
