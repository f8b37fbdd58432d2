"""Speech recognition: service contract, recognizer, and transcription backends.

``asr.capture`` is imported on demand since it needs PortAudio at import time.
"""

from .faster_whisper import FasterWhisperConfig, FasterWhisperTranscriber
from .recognizer import (
    ASRTranscriber,
    AudioCapture,
    RecognitionErrorKind,
    RecognitionListener,
    Recognizer,
    RecognizerConfig,
    TranscriberRecognizer,
    TranscriptionResult,
    is_blank_transcript,
)
from .speech_gate import SpeechGate, SpeechGateConfig

__all__ = [
    "FasterWhisperConfig",
    "FasterWhisperTranscriber",
    "ASRTranscriber",
    "AudioCapture",
    "RecognitionErrorKind",
    "RecognitionListener",
    "Recognizer",
    "RecognizerConfig",
    "TranscriberRecognizer",
    "TranscriptionResult",
    "is_blank_transcript",
    "SpeechGate",
    "SpeechGateConfig",
]
