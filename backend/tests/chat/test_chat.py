"""Unit tests for the completion oracle and its providers."""

import os
import sys
import unittest
from pathlib import Path
from unittest.mock import MagicMock, Mock, patch

backend_dir = Path(__file__).resolve().parents[2]
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from chat.chat import Chat, OracleError
from chat.providers.base import DisabledProvider, build_messages
from chat.providers.openrouter import OpenRouter
from utils.retry_handler import RetryHandler


class ScriptedProvider:
    """Provider yielding one scripted stream per call."""

    def __init__(self, *streams, available=True):
        self.streams = list(streams)
        self.available = available
        self.calls = []

    def is_available(self):
        return self.available

    def generate_text_stream(self, system_prompt, prompt, model="", **config_params):
        self.calls.append({"system": system_prompt, "prompt": prompt, "model": model, **config_params})
        for chunk in self.streams.pop(0):
            yield chunk


def _answer(*parts):
    return [{"type": "answer", "content": p} for p in parts] + [{"type": "complete"}]


class NoSleepRetryHandler(RetryHandler):

    def __init__(self, max_retries=2):
        super().__init__(max_retries=max_retries)
        self.slept = []

    def sleep(self, delay):
        self.slept.append(delay)


class TestChatComplete(unittest.TestCase):

    def _chat(self, provider, retry_handler=None):
        return Chat(provider="fake", model="m-1", providers={"fake": provider}, retry_handler=retry_handler)

    def test_concatenates_answer_chunks(self):
        provider = ScriptedProvider(_answer("Hel", "lo", "!"))

        text = self._chat(provider).complete("sys", "user", role="planner", temperature=0.3)

        self.assertEqual(text, "Hello!")
        self.assertEqual(provider.calls[0], {"system": "sys", "prompt": "user", "model": "m-1", "temperature": 0.3})

    def test_temperature_omitted_when_unset(self):
        provider = ScriptedProvider(_answer("x"))
        self._chat(provider).complete("sys", "user")
        self.assertNotIn("temperature", provider.calls[0])

    def test_retries_transient_errors(self):
        handler = NoSleepRetryHandler()
        provider = ScriptedProvider(
            [{"type": "answer", "content": "partial"}, {"type": "error", "content": "503 overloaded"}],
            _answer("ok"),
        )

        text = self._chat(provider, handler).complete("sys", "user")

        self.assertEqual(text, "ok")
        self.assertEqual(handler.slept, [1.0])

    def test_permanent_error_raises(self):
        provider = ScriptedProvider([{"type": "error", "content": "invalid model"}])

        with self.assertRaises(OracleError) as cm:
            self._chat(provider, NoSleepRetryHandler()).complete("sys", "user")

        self.assertIn("invalid model", str(cm.exception))

    def test_gives_up_after_retries(self):
        handler = NoSleepRetryHandler(max_retries=1)
        overloaded = [{"type": "error", "content": "overloaded"}]
        provider = ScriptedProvider(overloaded, overloaded)

        with self.assertRaises(OracleError):
            self._chat(provider, handler).complete("sys", "user")

        self.assertEqual(len(provider.calls), 2)

    def test_unavailable_provider(self):
        chat = self._chat(ScriptedProvider(available=False))

        self.assertFalse(chat.is_configured())
        with self.assertRaises(OracleError):
            chat.complete("sys", "user")

    def test_unknown_provider_is_not_configured(self):
        chat = Chat(provider="missing", model="m", providers={"fake": ScriptedProvider()})
        self.assertFalse(chat.is_configured())
        self.assertEqual(chat.get_available_providers(), {"fake": True})


class TestProviders(unittest.TestCase):

    def test_build_messages(self):
        self.assertEqual(build_messages("", "hi"), [{"role": "user", "content": "hi"}])
        self.assertEqual(build_messages("sys", "hi")[0], {"role": "system", "content": "sys"})

    def test_disabled_provider_yields_error(self):
        chunks = list(DisabledProvider("nothing").generate_text_stream("s", "p"))
        self.assertEqual(chunks, [{"type": "error", "content": "nothing provider not available"}])

    @patch.dict(os.environ, {"OPENROUTER_API_KEY": ""}, clear=False)
    def test_openrouter_without_key(self):
        provider = OpenRouter()

        self.assertFalse(provider.is_available())
        self.assertEqual(next(provider.generate_text_stream("s", "p"))["type"], "error")

    @patch.dict(os.environ, {"OPENROUTER_API_KEY": "key"}, clear=False)
    @patch('chat.providers.openrouter.requests.post')
    def test_openrouter_parses_sse_lines(self, mock_post):
        response = MagicMock()
        response.iter_lines.return_value = [
            b'data: {"choices": [{"delta": {"content": "Hi"}}]}',
            b'',
            b': keep-alive',
            b'data: {"choices": [{"delta": {"content": " there"}}]}',
            b'data: [DONE]',
        ]
        mock_post.return_value = response

        chunks = list(OpenRouter().generate_text_stream("s", "p", model="m", temperature=0.2, seed=1))

        self.assertEqual([c.get("content") for c in chunks if c["type"] == "answer"], ["Hi", " there"])
        self.assertEqual(chunks[-1], {"type": "complete"})
        sent = mock_post.call_args.kwargs["json"]
        self.assertEqual(sent["temperature"], 0.2)
        self.assertNotIn("seed", sent)

    @patch.dict(os.environ, {"OPENROUTER_API_KEY": "key"}, clear=False)
    @patch('chat.providers.openrouter.requests.post')
    def test_openrouter_stream_error(self, mock_post):
        response = Mock()
        response.iter_lines.return_value = [b'data: {"error": {"message": "quota exceeded"}}']
        mock_post.return_value = response

        chunks = list(OpenRouter().generate_text_stream("s", "p"))

        self.assertEqual(chunks[-1]["type"], "error")
        self.assertIn("quota exceeded", chunks[-1]["content"])


if __name__ == "__main__":
    unittest.main()
