from types import SimpleNamespace

import pytest

from study_engine.core.reasoning import AnthropicCapability, OpenAICapability, build_capability
from study_engine.core.scoring import DelegatedScorer


class FakeOpenAIClient:
    def __init__(self, content):
        self.requests = []
        message = SimpleNamespace(content=content)
        self._response = SimpleNamespace(choices=[SimpleNamespace(message=message)])
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.requests.append(kwargs)
        return self._response


class FakeAnthropicClient:
    def __init__(self, blocks):
        self.requests = []
        self._response = SimpleNamespace(content=blocks)
        self.messages = SimpleNamespace(create=self._create)

    def _create(self, **kwargs):
        self.requests.append(kwargs)
        return self._response


def text_block(text):
    return SimpleNamespace(type="text", text=text)


class TestOpenAICapability:

    def test_sends_system_and_user_messages(self):
        client = FakeOpenAIClient('{"score": 0.8, "feedback": "Good."}')
        cap = OpenAICapability(api_key="unused", model="gpt-test", client=client)
        raw = cap.complete("grader role", "grade this")

        assert raw == '{"score": 0.8, "feedback": "Good."}'
        request = client.requests[0]
        assert request["model"] == "gpt-test"
        assert request["messages"] == [
            {"role": "system", "content": "grader role"},
            {"role": "user", "content": "grade this"},
        ]
        assert request["response_format"] == {"type": "json_object"}

    def test_empty_content(self):
        cap = OpenAICapability(api_key="unused", client=FakeOpenAIClient(None))
        assert cap.complete("r", "p") == ""

    def test_feeds_delegated_scorer(self):
        cap = OpenAICapability(api_key="unused", model="gpt-test",
                               client=FakeOpenAIClient('{"score": 0.8, "feedback": "Good."}'))
        result = DelegatedScorer(cap).score("Q?", "answer")
        assert result.score == pytest.approx(0.8)
        assert result.provenance == "gpt-test"


class TestAnthropicCapability:

    def test_joins_text_blocks(self):
        client = FakeAnthropicClient([
            text_block('{"score": 0.5,'),
            SimpleNamespace(type="tool_use"),
            text_block('"feedback": "Fine."}'),
        ])
        cap = AnthropicCapability(api_key="unused", model="claude-test", max_tokens=99, client=client)
        raw = cap.complete("grader role", "grade this")

        assert raw == '{"score": 0.5,\n"feedback": "Fine."}'
        request = client.requests[0]
        assert request["system"] == "grader role"
        assert request["max_tokens"] == 99
        assert request["messages"] == [{"role": "user", "content": "grade this"}]

    def test_garbled_reply_falls_back_to_none(self):
        cap = AnthropicCapability(api_key="unused", client=FakeAnthropicClient([text_block("B+")]))
        assert DelegatedScorer(cap).score("Q?", "answer") is None


class TestBuildCapability:

    def test_prefers_openai(self):
        cap = build_capability(openai_key="sk-test", anthropic_key="ak-test")
        assert isinstance(cap, OpenAICapability)

    def test_anthropic_when_only_key(self):
        cap = build_capability(openai_key="", anthropic_key="ak-test")
        assert isinstance(cap, AnthropicCapability)

    def test_none_without_keys(self, monkeypatch):
        monkeypatch.setattr("study_engine.config.OPENAI_API_KEY", "")
        monkeypatch.setattr("study_engine.config.ANTHROPIC_API_KEY", "")
        assert build_capability() is None
