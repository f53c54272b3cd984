"""Tests for ScriptWriter"""

import json

import httpx
import pytest

from video_orchestrator.core.config import ScriptConfig
from video_orchestrator.core.exceptions import ProviderError
from video_orchestrator.workflow.script_writer import (
    PAD_SENTENCES,
    ScriptWriter,
    clean_script,
    word_count,
)


def completion(text):
    return httpx.Response(200, json={"choices": [{"message": {"content": text}}]})


def make_writer(handler):
    return ScriptWriter(ScriptConfig(api_key="gsk_test"), transport=httpx.MockTransport(handler))


def test_word_budget():
    writer = ScriptWriter(ScriptConfig())

    assert writer.word_budget(8) == {"min": 14, "target": 18, "max": 21}
    assert writer.word_budget(22) == {"min": 40, "target": 48, "max": 57}
    assert writer.word_budget(2) == {"min": 10, "target": 12, "max": 16}


def test_clean_script():
    raw = '```\nScript: "Hello   there,\nfriends."\n```'
    assert clean_script(raw) == "Hello there, friends."


@pytest.mark.asyncio
async def test_generate_script_request():
    seen = []

    def handler(request):
        seen.append(request)
        return completion(" ".join(["word"] * 18))

    writer = make_writer(handler)

    draft = await writer.generate_script("SIP basics", 8, platform="linkedin", content_format="explainer", language="hi")

    assert draft.generated
    assert draft.words == 18
    request = seen[0]
    assert request.url.path == "/openai/v1/chat/completions"
    assert request.headers["authorization"] == "Bearer gsk_test"
    body = json.loads(request.content)
    assert body["model"] == "llama-3.3-70b-versatile"
    user_prompt = body["messages"][1]["content"]
    assert "Topic: SIP basics" in user_prompt
    assert "Language: Hindi" in user_prompt
    assert "14 to 21 words" in user_prompt
    await writer.close()


@pytest.mark.asyncio
async def test_long_script_trimmed_to_max():
    writer = make_writer(lambda request: completion(" ".join(["word"] * 100)))

    draft = await writer.generate_script("Tax tips", 8)

    assert draft.words == 21
    await writer.close()


@pytest.mark.asyncio
async def test_short_script_padded_to_min():
    writer = make_writer(lambda request: completion("Invest early and often."))

    draft = await writer.generate_script("Tax tips", 8)

    assert draft.script.startswith("Invest early and often.")
    assert PAD_SENTENCES[0] in draft.script
    assert PAD_SENTENCES[1] in draft.script
    assert PAD_SENTENCES[2] not in draft.script
    assert word_count(draft.script) >= 14
    await writer.close()


@pytest.mark.asyncio
async def test_http_error_raises_provider_error():
    writer = make_writer(lambda request: httpx.Response(500, text="upstream down"))

    with pytest.raises(ProviderError) as exc_info:
        await writer.generate_script("Tax tips", 8)
    assert exc_info.value.provider == "groq"
    assert exc_info.value.status_code == 500
    await writer.close()


@pytest.mark.asyncio
async def test_without_key_uses_template():
    seen = []
    writer = ScriptWriter(ScriptConfig(), transport=httpx.MockTransport(seen.append))

    draft = await writer.generate_script("Mutual funds", 8, platform="instagram")

    assert not draft.generated
    assert draft.script.startswith("Stop scrolling")
    assert "Mutual funds" in draft.script
    assert seen == []
    await writer.close()


@pytest.mark.asyncio
async def test_template_script_fills_word_budget():
    writer = ScriptWriter(ScriptConfig())

    draft = await writer.generate_script("Retirement planning", 60, platform="linkedin")
    budget = writer.word_budget(60)

    assert not draft.generated
    assert draft.script.startswith("Quick update. Retirement planning.")
    assert budget["min"] <= draft.words <= budget["max"]
    assert PAD_SENTENCES[0] in draft.script


@pytest.mark.asyncio
async def test_non_json_completion_raises_provider_error():
    writer = make_writer(lambda request: httpx.Response(200, text="oops"))

    with pytest.raises(ProviderError) as exc_info:
        await writer.generate_script("Tax tips", 8)
    assert exc_info.value.provider == "groq"
    await writer.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    None,
    [],
    {"choices": None},
    {"choices": []},
    {"choices": [{"message": None}]},
    {"choices": [{"message": {"content": None}}]},
])
async def test_malformed_completion_raises_provider_error(body):
    writer = make_writer(lambda request: httpx.Response(200, content=json.dumps(body).encode()))

    with pytest.raises(ProviderError):
        await writer.generate_script("Tax tips", 8)
    await writer.close()
