from unittest.mock import patch

import pytest

from webextract.config import AIConfig
from webextract.exceptions import AIProviderError
from webextract.instructions import FAST_PATH_CONFIDENCE, AIIntentResolver, extract_json_object, parse_instruction
from webextract.models import Intent

URL = "https://example.com/page"


@pytest.mark.asyncio
async def test_fast_path_never_calls_ai(fake_client, ai_config):
    client = fake_client('{"intent": "extract_images", "targets": ["images"]}')

    parsed = await parse_instruction("Get all pricing information", URL, ai_config, client=client)

    assert parsed.intent == Intent.EXTRACT_PRICING
    assert parsed.confidence > FAST_PATH_CONFIDENCE
    assert parsed.ai_parsed is False
    client.complete.assert_not_awaited()


@pytest.mark.asyncio
async def test_fast_path_does_not_build_a_client(ai_config):
    with patch("webextract.instructions.AICompletionClient") as client_cls:
        parsed = await parse_instruction("download all the images", URL, ai_config)

    assert parsed.intent == Intent.EXTRACT_IMAGES
    client_cls.assert_not_called()


@pytest.mark.asyncio
async def test_low_confidence_without_ai_config_returns_default():
    parsed = await parse_instruction("qwerty zzz", URL, None)
    assert parsed.intent == Intent.EXTRACT_ARTICLE
    assert parsed.targets == ["article", "main_content"]
    assert parsed.confidence == 0.5


@pytest.mark.asyncio
async def test_low_confidence_without_provider_skips_client(fake_client):
    client = fake_client('{"intent": "extract_tables"}')
    parsed = await parse_instruction("qwerty zzz", URL, AIConfig(), client=client)

    assert parsed.confidence == 0.5
    client.complete.assert_not_awaited()


@pytest.mark.asyncio
async def test_low_confidence_uses_ai(fake_client, ai_config):
    client = fake_client(
        '{"intent": "extract_tables", "targets": ["tables"], "specifics": "only the first table", "needsAI": false}'
    )

    parsed = await parse_instruction("qwerty zzz", URL, ai_config, client=client)

    assert parsed.intent == Intent.EXTRACT_TABLES
    assert parsed.targets == ["tables"]
    assert parsed.specifics == "only the first table"
    assert parsed.confidence == 0.95
    assert parsed.ai_parsed is True
    assert parsed.require_ai is False
    client.complete.assert_awaited_once()
    prompt = client.complete.await_args.args[0]
    assert '"qwerty zzz"' in prompt
    assert URL in prompt
    assert client.complete.await_args.kwargs["max_tokens"] == 300


@pytest.mark.asyncio
async def test_missing_api_key_falls_back_to_pattern_result():
    parsed = await parse_instruction("qwerty zzz", URL, AIConfig(provider="groq"))
    assert parsed.intent == Intent.EXTRACT_ARTICLE
    assert parsed.ai_parsed is False


@pytest.mark.asyncio
async def test_threshold_boundary(fake_client, ai_config):
    # "analyze" rule has confidence 0.85
    above = fake_client('{"intent": "extract_all"}')
    parsed = await parse_instruction("analyze this page", URL, ai_config, client=above, threshold=0.84)
    assert parsed.intent == Intent.ANALYZE_CONTENT
    above.complete.assert_not_awaited()

    at = fake_client('{"intent": "extract_all"}')
    parsed = await parse_instruction("analyze this page", URL, ai_config, client=at, threshold=0.85)
    assert parsed.ai_parsed is True
    at.complete.assert_awaited_once()


@pytest.mark.asyncio
async def test_default_threshold_boundary(fake_client, ai_config):
    # 0.85 clears the default cutoff, 0.5 does not
    assert FAST_PATH_CONFIDENCE == 0.8

    client = fake_client('{"intent": "extract_all"}')
    await parse_instruction("explain how it works", URL, ai_config, client=client)
    client.complete.assert_not_awaited()

    await parse_instruction("qwerty zzz", URL, ai_config, client=client)
    client.complete.assert_awaited_once()


@pytest.mark.asyncio
async def test_resolver_tolerates_prose_and_code_fences(fake_client):
    client = fake_client(
        'Sure! Here is the JSON:\n```json\n{"intent": "extract_images", "targets": ["images"], "needsAI": true}\n```'
    )
    parsed = await AIIntentResolver(client).resolve("grab visuals", URL)

    assert parsed.intent == Intent.EXTRACT_IMAGES
    assert parsed.targets == ["images"]
    assert parsed.require_ai is True


@pytest.mark.asyncio
async def test_resolver_defaults_missing_fields(fake_client):
    parsed = await AIIntentResolver(fake_client("{}")).resolve("grab visuals", URL)

    assert parsed.intent == Intent.EXTRACT_ALL
    assert parsed.targets == ["all"]
    assert parsed.confidence == 0.95
    assert parsed.ai_parsed is True


@pytest.mark.asyncio
@pytest.mark.parametrize("targets", ['[""]', '["  ", ""]', '""', "[]"])
async def test_resolver_blank_targets_default_to_all(fake_client, targets):
    client = fake_client('{"intent": "extract_links", "targets": %s}' % targets)
    parsed = await AIIntentResolver(client).resolve("grab visuals", URL)

    assert parsed.intent == Intent.EXTRACT_LINKS
    assert parsed.targets == ["all"]
    assert parsed.ai_parsed is True


@pytest.mark.asyncio
async def test_resolver_coerces_unknown_intent(fake_client):
    parsed = await AIIntentResolver(fake_client('{"intent": "extract_weather", "targets": ["forecast"]}')).resolve(
        "weather please", URL
    )
    assert parsed.intent == Intent.EXTRACT_ALL
    assert parsed.targets == ["forecast"]


@pytest.mark.asyncio
async def test_resolver_falls_back_on_backend_error(fake_client):
    client = fake_client(error=AIProviderError("groq API error: 401 - unauthorized", provider="groq", status_code=401))
    parsed = await AIIntentResolver(client).resolve("Get all pricing information", URL)

    assert parsed.intent == Intent.EXTRACT_PRICING
    assert parsed.ai_parsed is False


@pytest.mark.asyncio
async def test_resolver_falls_back_on_timeout(fake_client):
    client = fake_client(error=TimeoutError("read timed out"))
    parsed = await AIIntentResolver(client).resolve("qwerty zzz", URL)
    assert parsed.intent == Intent.EXTRACT_ARTICLE
    assert parsed.confidence == 0.5


@pytest.mark.asyncio
async def test_resolver_falls_back_without_json(fake_client):
    parsed = await AIIntentResolver(fake_client("I cannot help with that.")).resolve("qwerty zzz", URL)
    assert parsed.intent == Intent.EXTRACT_ARTICLE
    assert parsed.ai_parsed is False


@pytest.mark.asyncio
async def test_resolver_falls_back_on_malformed_json(fake_client):
    parsed = await AIIntentResolver(fake_client('{"intent": "extract_code", targets: }')).resolve("qwerty zzz", URL)
    assert parsed.ai_parsed is False


def test_extract_json_object_rejects_text_without_braces():
    with pytest.raises(ValueError):
        extract_json_object("no json here")
    assert extract_json_object('noise {"a": 1} noise') == {"a": 1}
