"""Speech synthesis: utterances, the synthesizer contract, and the Kokoro backend.

``tts.playback`` is imported on demand since it needs PortAudio at import time.
"""

from .kokoro_stream import KokoroConfig, KokoroSynthesizer, apply_volume
from .synthesizer import PlaybackSink, SpeechUtterance, SynthesisListener, Synthesizer

__all__ = [
    "KokoroConfig",
    "KokoroSynthesizer",
    "apply_volume",
    "PlaybackSink",
    "SpeechUtterance",
    "SynthesisListener",
    "Synthesizer",
]
