"""
Outbound (client → server) realtime messages.

Anything the session sends must be serializable to a single JSON text frame.
Two shapes are accepted by ``serialize_message``:

- an object implementing ``serialize() -> str`` (the ``OutboundMessage``
  protocol; every class in this module does), or
- a plain mapping, dumped as JSON.

``SessionConfiguration`` is the immutable value the session pushes as its very
first frame, wrapped in ``SessionUpdate``.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from json import dumps
from typing import Any, Dict, Mapping, Optional, Protocol, Tuple, Union

from config import REALTIME_VOICE, REALTIME_INSTRUCTIONS


class OutboundMessage(Protocol):
    def serialize(self) -> str: ...


def serialize_message(message: Union[OutboundMessage, Mapping[str, Any]]) -> str:
    """Serialize an outbound message to its wire text. Raises TypeError/ValueError."""
    serialize = getattr(message, "serialize", None)
    if callable(serialize):
        return serialize()
    if isinstance(message, Mapping):
        return dumps(dict(message))
    raise TypeError(f"cannot serialize {type(message).__name__} as a realtime message")


def _compact(d: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


# ---------------------------------------------------------------------------
# Session configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InputAudioTranscription:
    model: str = "whisper-1"

    def to_dict(self) -> Dict[str, Any]:
        return {"model": self.model}


@dataclass(frozen=True)
class TurnDetection:
    """
    Server-side voice activity detection.

    Attributes:
        threshold: Activation threshold (0..1); higher needs louder audio.
        prefix_padding_ms: Audio kept before detected speech start.
        silence_duration_ms: Silence needed to end a turn.
        create_response: Let the server start a response when the turn ends.
    """
    type: str = "server_vad"
    threshold: Optional[float] = None
    prefix_padding_ms: Optional[int] = None
    silence_duration_ms: Optional[int] = None
    create_response: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "type": self.type,
            "threshold": self.threshold,
            "prefix_padding_ms": self.prefix_padding_ms,
            "silence_duration_ms": self.silence_duration_ms,
            "create_response": self.create_response,
        })


@dataclass(frozen=True)
class Tool:
    """A function the model may call. ``parameters`` is a JSON schema."""
    name: str
    description: str = ""
    parameters: Mapping[str, Any] = field(default_factory=lambda: {"type": "object", "properties": {}})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "name": self.name,
            "description": self.description,
            "parameters": dict(self.parameters),
        }


@dataclass(frozen=True)
class SessionConfiguration:
    """
    Session parameters pushed with ``session.update``.

    Unset (None) fields are left out of the message so server defaults apply.
    """
    model: Optional[str] = None
    modalities: Tuple[str, ...] = ("text", "audio")
    instructions: Optional[str] = REALTIME_INSTRUCTIONS
    voice: Optional[str] = REALTIME_VOICE
    input_audio_format: Optional[str] = "pcm16"
    output_audio_format: Optional[str] = "pcm16"
    input_audio_transcription: Optional[InputAudioTranscription] = None
    turn_detection: Optional[TurnDetection] = None
    tools: Tuple[Tool, ...] = ()
    tool_choice: Optional[str] = None
    temperature: Optional[float] = None
    max_response_output_tokens: Optional[Union[int, str]] = None
    speed: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "model": self.model,
            "modalities": list(self.modalities),
            "instructions": self.instructions,
            "voice": self.voice,
            "input_audio_format": self.input_audio_format,
            "output_audio_format": self.output_audio_format,
            "input_audio_transcription": self.input_audio_transcription.to_dict()
            if self.input_audio_transcription else None,
            "turn_detection": self.turn_detection.to_dict() if self.turn_detection else None,
            "tools": [t.to_dict() for t in self.tools] if self.tools else None,
            "tool_choice": self.tool_choice,
            "temperature": self.temperature,
            "max_response_output_tokens": self.max_response_output_tokens,
            "speed": self.speed,
        })


# ---------------------------------------------------------------------------
# Client events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SessionUpdate:
    session: Union[SessionConfiguration, Mapping[str, Any]]

    def serialize(self) -> str:
        if isinstance(self.session, SessionConfiguration):
            session = self.session.to_dict()
        else:
            session = dict(self.session)
        return dumps({"type": "session.update", "session": session})


@dataclass(frozen=True)
class InputAudioBufferAppend:
    """``audio`` is base64-encoded audio in the session's input format."""
    audio: str

    @classmethod
    def from_pcm(cls, pcm_chunk: bytes) -> "InputAudioBufferAppend":
        return cls(audio=base64.b64encode(pcm_chunk).decode("ascii"))

    def serialize(self) -> str:
        return dumps({"type": "input_audio_buffer.append", "audio": self.audio})


@dataclass(frozen=True)
class InputAudioBufferCommit:
    def serialize(self) -> str:
        return dumps({"type": "input_audio_buffer.commit"})


@dataclass(frozen=True)
class InputAudioBufferClear:
    def serialize(self) -> str:
        return dumps({"type": "input_audio_buffer.clear"})


@dataclass(frozen=True)
class ConversationItemCreate:
    item: Mapping[str, Any]

    @classmethod
    def user_text(cls, text: str) -> "ConversationItemCreate":
        return cls(item={
            "type": "message",
            "role": "user",
            "content": [{"type": "input_text", "text": text}],
        })

    @classmethod
    def function_call_output(cls, call_id: str, output: str) -> "ConversationItemCreate":
        """Return the result of a model function call; ``output`` is usually JSON."""
        return cls(item={"type": "function_call_output", "call_id": call_id, "output": output})

    def serialize(self) -> str:
        return dumps({"type": "conversation.item.create", "item": dict(self.item)})


@dataclass(frozen=True)
class ResponseCreate:
    modalities: Optional[Tuple[str, ...]] = None
    instructions: Optional[str] = None

    def serialize(self) -> str:
        response = _compact({
            "modalities": list(self.modalities) if self.modalities is not None else None,
            "instructions": self.instructions,
        })
        message: Dict[str, Any] = {"type": "response.create"}
        if response:
            message["response"] = response
        return dumps(message)


@dataclass(frozen=True)
class ResponseCancel:
    def serialize(self) -> str:
        return dumps({"type": "response.cancel"})
