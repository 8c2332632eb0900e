# File: tests/test_generation.py
from types import SimpleNamespace

import pytest
from openai import OpenAIError

from site_rebuilder.errors import InvalidInputError, RemoteCallFailedError
from site_rebuilder.generation import OpenAIGenerator


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(model=kwargs["model"], choices=[SimpleNamespace(message=message)])


def fake_client(completions: FakeCompletions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


@pytest.mark.asyncio()
async def test_generate_sends_single_user_message():
    completions = FakeCompletions(content="  analysis  \n")
    generator = OpenAIGenerator(None, "gpt-test", client=fake_client(completions))
    assert await generator.generate("describe the site") == "analysis"
    assert completions.kwargs == {
        "model": "gpt-test",
        "messages": [{"role": "user", "content": "describe the site"}],
    }


@pytest.mark.asyncio()
async def test_empty_completion_becomes_empty_string():
    generator = OpenAIGenerator(None, client=fake_client(FakeCompletions(content=None)))
    assert await generator.generate("x") == ""


@pytest.mark.asyncio()
async def test_api_errors_are_wrapped():
    generator = OpenAIGenerator(None, client=fake_client(FakeCompletions(error=OpenAIError("quota"))))
    with pytest.raises(RemoteCallFailedError, match="quota"):
        await generator.generate("x")


def test_missing_key_without_client():
    with pytest.raises(InvalidInputError):
        OpenAIGenerator(None)
