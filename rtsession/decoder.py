from __future__ import annotations

from json import loads, JSONDecodeError
from logging import getLogger
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from rtsession.events import (
    EventType,
    RealtimeEvent,
    FunctionCall,
    ToolCall,
    ErrorEvent,
    DebugEvent,
    SessionCreated,
    SessionUpdated,
    ResponseCreated,
    ResponseTextDelta,
    ResponseTextDone,
    ResponseAudioDelta,
    ResponseAudioDone,
    ResponseAudioTranscriptDelta,
    ResponseAudioTranscriptDone,
    ResponseFunctionCall,
    ResponseToolCalls,
    InputAudioBufferSpeechStarted,
    InputAudioBufferDelta,
    InputAudioBufferDone,
    InputTextDelta,
    InputTextDone,
    ConversationCreated,
    ConversationUpdated,
    ConversationDone,
    ConversationItemCreated,
    ConversationItemUpdated,
    ConversationItemInput,
    ConversationItemResponse,
    ConversationItemInputAudioTranscriptionDelta,
    TurnCreated,
    TurnUpdated,
    TurnDone,
)


logger = getLogger(__name__)


Frame = Union[str, bytes, bytearray, memoryview]


class FrameDecodeError(ValueError):
    """Inbound frame is not a JSON object with a string ``type`` field."""


# ---------------------------------------------------------------------------
# Field helpers (never raise, wrong type counts as missing)
# ---------------------------------------------------------------------------


def _str_field(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    return value if isinstance(value, str) else None


def _parse_function_call(data: Mapping[str, Any]) -> FunctionCall:
    return FunctionCall(name=_str_field(data, "name"), arguments=_str_field(data, "arguments"))


def _parse_tool_call(data: Mapping[str, Any]) -> ToolCall:
    function = data.get("function")
    return ToolCall(
        id=_str_field(data, "id"),
        type=_str_field(data, "type"),
        function=_parse_function_call(function) if isinstance(function, dict) else None,
    )


def _format_error(error: Any) -> Optional[str]:
    if error is None:
        return None
    if isinstance(error, str):
        return error
    return repr(error)


# ---------------------------------------------------------------------------
# Per-type builders
# ---------------------------------------------------------------------------


def _delta(event_cls) -> Callable[[Mapping[str, Any]], Optional[RealtimeEvent]]:
    def build(data: Mapping[str, Any]) -> Optional[RealtimeEvent]:
        delta = _str_field(data, "delta")
        return event_cls(delta=delta) if delta is not None else None
    return build


def _bare(event_cls) -> Callable[[Mapping[str, Any]], Optional[RealtimeEvent]]:
    return lambda data: event_cls()


def _error(data: Mapping[str, Any]) -> Optional[RealtimeEvent]:
    return ErrorEvent(message=_format_error(data.get("error")))


def _debug(data: Mapping[str, Any]) -> Optional[RealtimeEvent]:
    message = _str_field(data, "message")
    return DebugEvent(message=message) if message is not None else None


def _audio_transcript_done(data: Mapping[str, Any]) -> Optional[RealtimeEvent]:
    transcript = _str_field(data, "transcript")
    return ResponseAudioTranscriptDone(transcript=transcript) if transcript is not None else None


def _function_call(data: Mapping[str, Any]) -> Optional[RealtimeEvent]:
    function_call = data.get("function_call")
    if not isinstance(function_call, dict):
        return None
    return ResponseFunctionCall(function_call=_parse_function_call(function_call))


def _tool_calls(data: Mapping[str, Any]) -> Optional[RealtimeEvent]:
    tool_calls = data.get("tool_calls")
    if not isinstance(tool_calls, list) or not all(isinstance(tc, dict) for tc in tool_calls):
        return None
    return ResponseToolCalls(tool_calls=tuple(_parse_tool_call(tc) for tc in tool_calls))


_BUILDERS: Dict[str, Callable[[Mapping[str, Any]], Optional[RealtimeEvent]]] = {
    EventType.ERROR.value: _error,
    EventType.DEBUG.value: _debug,

    EventType.SESSION_CREATED.value: _bare(SessionCreated),
    EventType.SESSION_UPDATED.value: _bare(SessionUpdated),

    EventType.RESPONSE_CREATED.value: _bare(ResponseCreated),
    EventType.RESPONSE_TEXT_DELTA.value: _delta(ResponseTextDelta),
    EventType.RESPONSE_TEXT_DONE.value: _bare(ResponseTextDone),
    EventType.RESPONSE_AUDIO_DELTA.value: _delta(ResponseAudioDelta),
    EventType.RESPONSE_AUDIO_DONE.value: _bare(ResponseAudioDone),
    EventType.RESPONSE_AUDIO_TRANSCRIPT_DELTA.value: _delta(ResponseAudioTranscriptDelta),
    EventType.RESPONSE_AUDIO_TRANSCRIPT_DONE.value: _audio_transcript_done,
    EventType.RESPONSE_FUNCTION_CALL.value: _function_call,
    EventType.RESPONSE_TOOL_CALLS.value: _tool_calls,

    EventType.INPUT_AUDIO_BUFFER_SPEECH_STARTED.value: _bare(InputAudioBufferSpeechStarted),
    EventType.INPUT_AUDIO_BUFFER_DELTA.value: _delta(InputAudioBufferDelta),
    EventType.INPUT_AUDIO_BUFFER_DONE.value: _bare(InputAudioBufferDone),
    EventType.INPUT_TEXT_DELTA.value: _delta(InputTextDelta),
    EventType.INPUT_TEXT_DONE.value: _bare(InputTextDone),

    EventType.CONVERSATION_CREATED.value: _bare(ConversationCreated),
    EventType.CONVERSATION_UPDATED.value: _bare(ConversationUpdated),
    EventType.CONVERSATION_DONE.value: _bare(ConversationDone),
    EventType.CONVERSATION_ITEM_CREATED.value: _bare(ConversationItemCreated),
    EventType.CONVERSATION_ITEM_UPDATED.value: _bare(ConversationItemUpdated),
    EventType.CONVERSATION_ITEM_INPUT.value: _bare(ConversationItemInput),
    EventType.CONVERSATION_ITEM_RESPONSE.value: _bare(ConversationItemResponse),
    EventType.CONVERSATION_ITEM_INPUT_AUDIO_TRANSCRIPTION_DELTA.value: _delta(ConversationItemInputAudioTranscriptionDelta),

    EventType.TURN_CREATED.value: _bare(TurnCreated),
    EventType.TURN_UPDATED.value: _bare(TurnUpdated),
    EventType.TURN_DONE.value: _bare(TurnDone),
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def decode_event(discriminator: str, payload: Mapping[str, Any]) -> Optional[RealtimeEvent]:
    """
    Map one inbound message to its event.

    Returns None when the type is unknown or a field the event needs is
    missing. Never raises on malformed nested fields.
    """
    builder = _BUILDERS.get(discriminator)
    if builder is None:
        logger.debug("[RT] Unhandled message type: %s", discriminator)
        return None

    event = builder(payload)
    if event is None:
        logger.debug("[RT] Dropping %s: required field missing or malformed", discriminator)
    return event


def decode_frame(frame: Frame) -> Tuple[str, Optional[RealtimeEvent]]:
    """
    Parse a raw websocket frame (text or binary) and decode it.

    Returns ``(discriminator, event_or_None)``.
    Raises FrameDecodeError when the frame cannot be trusted at all: invalid
    UTF-8 or JSON, nested too deeply to parse, not a JSON object, or no string
    ``type``.
    """
    if isinstance(frame, (bytes, bytearray, memoryview)):
        try:
            frame = bytes(frame).decode("utf-8")
        except UnicodeDecodeError as e:
            raise FrameDecodeError(f"binary frame is not UTF-8: {e}") from e

    try:
        data = loads(frame)
    except JSONDecodeError as e:
        raise FrameDecodeError(f"frame is not JSON: {e}") from e
    except RecursionError as e:
        # Hostile nesting depth exhausts the parser stack.
        raise FrameDecodeError("frame is nested too deeply") from e

    if not isinstance(data, dict):
        raise FrameDecodeError(f"frame is not a JSON object: {type(data).__name__}")

    discriminator = data.get("type")
    if not isinstance(discriminator, str):
        raise FrameDecodeError(f"frame has no string 'type' field: {str(data)[:100]}")

    return discriminator, decode_event(discriminator, data)
