"""Recording client: capture audio, upload slices, show merged text, request completion."""
from .api import HttpSliceApi, SliceApi, SliceApiError, SliceResult
from .audio import AudioSource, MicrophoneSource, encode_wav
from .session import PendingCounter, SessionState, SessionStatus, TranscriptionSession

__all__ = [
    "AudioSource",
    "HttpSliceApi",
    "MicrophoneSource",
    "PendingCounter",
    "SessionState",
    "SessionStatus",
    "SliceApi",
    "SliceApiError",
    "SliceResult",
    "TranscriptionSession",
    "encode_wav",
]
