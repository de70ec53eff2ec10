from __future__ import annotations

import base64
import unittest
from json import loads

from rtsession.messages import (
    ConversationItemCreate,
    InputAudioBufferAppend,
    InputAudioBufferClear,
    InputAudioBufferCommit,
    InputAudioTranscription,
    ResponseCancel,
    ResponseCreate,
    SessionConfiguration,
    SessionUpdate,
    Tool,
    TurnDetection,
    serialize_message,
)


def _bare_configuration(**kwargs) -> SessionConfiguration:
    """Configuration with every env-driven default switched off."""
    defaults = dict(instructions=None, voice=None, input_audio_format=None, output_audio_format=None)
    defaults.update(kwargs)
    return SessionConfiguration(**defaults)


class TestSessionConfiguration(unittest.TestCase):

    def test_unset_fields_are_omitted(self) -> None:
        self.assertEqual(_bare_configuration(modalities=("text",)).to_dict(), {"modalities": ["text"]})

    def test_full_configuration(self) -> None:
        cfg = _bare_configuration(
            voice="alloy",
            instructions="Be brief.",
            input_audio_transcription=InputAudioTranscription(),
            turn_detection=TurnDetection(threshold=0.6, silence_duration_ms=500),
            tools=(Tool(name="get_weather", description="Weather for a city",
                        parameters={"type": "object", "properties": {"city": {"type": "string"}}}),),
            tool_choice="auto",
            temperature=0.8,
        )
        d = cfg.to_dict()

        self.assertEqual(d["voice"], "alloy")
        self.assertEqual(d["input_audio_transcription"], {"model": "whisper-1"})
        self.assertEqual(d["turn_detection"], {"type": "server_vad", "threshold": 0.6, "silence_duration_ms": 500})
        self.assertEqual(d["tools"][0]["type"], "function")
        self.assertEqual(d["tools"][0]["parameters"]["properties"], {"city": {"type": "string"}})
        self.assertEqual(d["tool_choice"], "auto")
        self.assertNotIn("speed", d)

    def test_session_update_wraps_configuration(self) -> None:
        msg = loads(SessionUpdate(session=_bare_configuration(modalities=("text",))).serialize())
        self.assertEqual(msg, {"type": "session.update", "session": {"modalities": ["text"]}})

    def test_session_update_accepts_mapping(self) -> None:
        msg = loads(SessionUpdate(session={"modality": "text"}).serialize())
        self.assertEqual(msg, {"type": "session.update", "session": {"modality": "text"}})


class TestClientMessages(unittest.TestCase):

    def test_audio_append_from_pcm(self) -> None:
        pcm = b"\x00\x01" * 8
        msg = loads(InputAudioBufferAppend.from_pcm(pcm).serialize())
        self.assertEqual(msg["type"], "input_audio_buffer.append")
        self.assertEqual(base64.b64decode(msg["audio"]), pcm)

    def test_buffer_control(self) -> None:
        self.assertEqual(loads(InputAudioBufferCommit().serialize()), {"type": "input_audio_buffer.commit"})
        self.assertEqual(loads(InputAudioBufferClear().serialize()), {"type": "input_audio_buffer.clear"})

    def test_user_text_item(self) -> None:
        msg = loads(ConversationItemCreate.user_text("Hello").serialize())
        self.assertEqual(msg["type"], "conversation.item.create")
        self.assertEqual(msg["item"]["role"], "user")
        self.assertEqual(msg["item"]["content"], [{"type": "input_text", "text": "Hello"}])

    def test_function_call_output_item(self) -> None:
        msg = loads(ConversationItemCreate.function_call_output("call_1", '{"temp": 21}').serialize())
        self.assertEqual(msg["item"], {"type": "function_call_output", "call_id": "call_1", "output": '{"temp": 21}'})

    def test_response_create(self) -> None:
        self.assertEqual(loads(ResponseCreate().serialize()), {"type": "response.create"})
        msg = loads(ResponseCreate(modalities=("text",), instructions="Answer in Czech.").serialize())
        self.assertEqual(msg["response"], {"modalities": ["text"], "instructions": "Answer in Czech."})

    def test_response_cancel(self) -> None:
        self.assertEqual(loads(ResponseCancel().serialize()), {"type": "response.cancel"})


class TestSerializeMessage(unittest.TestCase):

    def test_mapping(self) -> None:
        self.assertEqual(loads(serialize_message({"foo": "bar"})), {"foo": "bar"})

    def test_serializable_object(self) -> None:
        self.assertEqual(serialize_message(ResponseCancel()), ResponseCancel().serialize())

    def test_unsupported_values_raise(self) -> None:
        with self.assertRaises(TypeError):
            serialize_message(object())
        with self.assertRaises(TypeError):
            serialize_message(["not", "a", "mapping"])
        with self.assertRaises(TypeError):
            serialize_message({"payload": object()})
