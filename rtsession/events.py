"""
Realtime event taxonomy: the typed values published on a session's event stream.

Every inbound frame the server sends carries a ``type`` discriminator such as
``response.text.delta``. The decoder turns the frames it recognizes into one of
the frozen dataclasses below. Events are grouped in families:

- **session**: ``session.created``, ``session.updated``
- **response**: model output: text, audio, transcripts, function/tool calls
- **input**: input buffer and input text notifications
- **conversation**: conversation and conversation item lifecycle
- **turn**: turn lifecycle
- **error**: server-reported application error (``ErrorEvent``)
- **debug**: free-form diagnostic message (``DebugEvent``)

Events carry only the fields the wire message guarantees. Consumers usually
dispatch on the class::

    async for ev in session.events():
        if isinstance(ev, ResponseTextDelta):
            print(ev.delta, end="")
        elif isinstance(ev, ErrorEvent):
            session.disconnect()
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Tuple


class EventFamily(Enum):
    SESSION = "session"
    RESPONSE = "response"
    INPUT = "input"
    CONVERSATION = "conversation"
    TURN = "turn"
    ERROR = "error"
    DEBUG = "debug"


class EventType(Enum):
    """Inbound discriminators understood by the decoder."""
    ERROR = "error"
    DEBUG = "debug"

    # Session events
    SESSION_CREATED = "session.created"
    SESSION_UPDATED = "session.updated"

    # Response events
    RESPONSE_CREATED = "response.created"
    RESPONSE_TEXT_DELTA = "response.text.delta"
    RESPONSE_TEXT_DONE = "response.text.done"
    RESPONSE_AUDIO_DELTA = "response.audio.delta"
    RESPONSE_AUDIO_DONE = "response.audio.done"
    RESPONSE_AUDIO_TRANSCRIPT_DELTA = "response.audio_transcript.delta"
    RESPONSE_AUDIO_TRANSCRIPT_DONE = "response.audio_transcript.done"
    RESPONSE_FUNCTION_CALL = "response.function_call"
    RESPONSE_TOOL_CALLS = "response.tool_calls"

    # Input events
    INPUT_AUDIO_BUFFER_SPEECH_STARTED = "input_audio_buffer.speech_started"
    INPUT_AUDIO_BUFFER_DELTA = "input_audio_buffer.delta"
    INPUT_AUDIO_BUFFER_DONE = "input_audio_buffer.done"
    INPUT_TEXT_DELTA = "input_text.delta"
    INPUT_TEXT_DONE = "input_text.done"

    # Conversation events
    CONVERSATION_CREATED = "conversation.created"
    CONVERSATION_UPDATED = "conversation.updated"
    CONVERSATION_DONE = "conversation.done"
    CONVERSATION_ITEM_CREATED = "conversation.item.created"
    CONVERSATION_ITEM_UPDATED = "conversation.item.updated"
    CONVERSATION_ITEM_INPUT = "conversation.item.input"
    CONVERSATION_ITEM_RESPONSE = "conversation.item.response"
    CONVERSATION_ITEM_INPUT_AUDIO_TRANSCRIPTION_DELTA = "conversation.item.input_audio_transcription.delta"

    # Turn events
    TURN_CREATED = "turn.created"
    TURN_UPDATED = "turn.updated"
    TURN_DONE = "turn.done"

    @property
    def family(self) -> EventFamily:
        prefix = self.value.split(".", 1)[0]
        if prefix in ("input_audio_buffer", "input_text"):
            return EventFamily.INPUT
        return EventFamily(prefix)


@dataclass(frozen=True)
class FunctionCall:
    """
    A model-initiated function invocation.

    Attributes:
        name: Function name, if the server sent one.
        arguments: Serialized (JSON) argument string, passed through untouched.
    """
    name: Optional[str] = None
    arguments: Optional[str] = None


@dataclass(frozen=True)
class ToolCall:
    id: Optional[str] = None
    type: Optional[str] = None
    function: Optional[FunctionCall] = None


@dataclass(frozen=True)
class RealtimeEvent:
    """Base class of all decoded inbound events."""
    type: ClassVar[EventType]

    @property
    def family(self) -> EventFamily:
        return self.type.family


# ---------------------------------------------------------------------------
# Cross-cutting
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ErrorEvent(RealtimeEvent):
    """
    Server-reported error. ``message`` is the formatted ``error`` object of the
    frame, or None when the frame had none.
    """
    type: ClassVar[EventType] = EventType.ERROR
    message: Optional[str] = None


@dataclass(frozen=True)
class DebugEvent(RealtimeEvent):
    type: ClassVar[EventType] = EventType.DEBUG
    message: str


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SessionCreated(RealtimeEvent):
    type: ClassVar[EventType] = EventType.SESSION_CREATED


@dataclass(frozen=True)
class SessionUpdated(RealtimeEvent):
    type: ClassVar[EventType] = EventType.SESSION_UPDATED


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ResponseCreated(RealtimeEvent):
    type: ClassVar[EventType] = EventType.RESPONSE_CREATED


@dataclass(frozen=True)
class ResponseTextDelta(RealtimeEvent):
    type: ClassVar[EventType] = EventType.RESPONSE_TEXT_DELTA
    delta: str


@dataclass(frozen=True)
class ResponseTextDone(RealtimeEvent):
    type: ClassVar[EventType] = EventType.RESPONSE_TEXT_DONE


@dataclass(frozen=True)
class ResponseAudioDelta(RealtimeEvent):
    """``delta`` is base64-encoded audio in the session's output format."""
    type: ClassVar[EventType] = EventType.RESPONSE_AUDIO_DELTA
    delta: str


@dataclass(frozen=True)
class ResponseAudioDone(RealtimeEvent):
    type: ClassVar[EventType] = EventType.RESPONSE_AUDIO_DONE


@dataclass(frozen=True)
class ResponseAudioTranscriptDelta(RealtimeEvent):
    type: ClassVar[EventType] = EventType.RESPONSE_AUDIO_TRANSCRIPT_DELTA
    delta: str


@dataclass(frozen=True)
class ResponseAudioTranscriptDone(RealtimeEvent):
    type: ClassVar[EventType] = EventType.RESPONSE_AUDIO_TRANSCRIPT_DONE
    transcript: str


@dataclass(frozen=True)
class ResponseFunctionCall(RealtimeEvent):
    type: ClassVar[EventType] = EventType.RESPONSE_FUNCTION_CALL
    function_call: FunctionCall


@dataclass(frozen=True)
class ResponseToolCalls(RealtimeEvent):
    type: ClassVar[EventType] = EventType.RESPONSE_TOOL_CALLS
    tool_calls: Tuple[ToolCall, ...]


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InputAudioBufferSpeechStarted(RealtimeEvent):
    type: ClassVar[EventType] = EventType.INPUT_AUDIO_BUFFER_SPEECH_STARTED


@dataclass(frozen=True)
class InputAudioBufferDelta(RealtimeEvent):
    type: ClassVar[EventType] = EventType.INPUT_AUDIO_BUFFER_DELTA
    delta: str


@dataclass(frozen=True)
class InputAudioBufferDone(RealtimeEvent):
    type: ClassVar[EventType] = EventType.INPUT_AUDIO_BUFFER_DONE


@dataclass(frozen=True)
class InputTextDelta(RealtimeEvent):
    type: ClassVar[EventType] = EventType.INPUT_TEXT_DELTA
    delta: str


@dataclass(frozen=True)
class InputTextDone(RealtimeEvent):
    type: ClassVar[EventType] = EventType.INPUT_TEXT_DONE


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ConversationCreated(RealtimeEvent):
    type: ClassVar[EventType] = EventType.CONVERSATION_CREATED


@dataclass(frozen=True)
class ConversationUpdated(RealtimeEvent):
    type: ClassVar[EventType] = EventType.CONVERSATION_UPDATED


@dataclass(frozen=True)
class ConversationDone(RealtimeEvent):
    type: ClassVar[EventType] = EventType.CONVERSATION_DONE


@dataclass(frozen=True)
class ConversationItemCreated(RealtimeEvent):
    type: ClassVar[EventType] = EventType.CONVERSATION_ITEM_CREATED


@dataclass(frozen=True)
class ConversationItemUpdated(RealtimeEvent):
    type: ClassVar[EventType] = EventType.CONVERSATION_ITEM_UPDATED


@dataclass(frozen=True)
class ConversationItemInput(RealtimeEvent):
    type: ClassVar[EventType] = EventType.CONVERSATION_ITEM_INPUT


@dataclass(frozen=True)
class ConversationItemResponse(RealtimeEvent):
    type: ClassVar[EventType] = EventType.CONVERSATION_ITEM_RESPONSE


@dataclass(frozen=True)
class ConversationItemInputAudioTranscriptionDelta(RealtimeEvent):
    type: ClassVar[EventType] = EventType.CONVERSATION_ITEM_INPUT_AUDIO_TRANSCRIPTION_DELTA
    delta: str


# ---------------------------------------------------------------------------
# Turn
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TurnCreated(RealtimeEvent):
    type: ClassVar[EventType] = EventType.TURN_CREATED


@dataclass(frozen=True)
class TurnUpdated(RealtimeEvent):
    type: ClassVar[EventType] = EventType.TURN_UPDATED


@dataclass(frozen=True)
class TurnDone(RealtimeEvent):
    type: ClassVar[EventType] = EventType.TURN_DONE
