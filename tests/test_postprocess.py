import pytest

from webextract.config import AIConfig
from webextract.exceptions import AIProviderError
from webextract.models import ExtractionData, ExtractionPlan, ExtractionResult, Intent
from webextract.postprocess import build_prompt, post_process_with_ai

URL = "https://example.com/post"


def _result(**data):
    return ExtractionResult(
        instruction="Give me a tldr",
        intent=Intent.EXTRACT_SUMMARY,
        url=URL,
        status="success",
        data=ExtractionData(**data),
    )


def _plan(ai_task=Intent.EXTRACT_SUMMARY, instruction="Give me a tldr", specifics=None, requires_ai=True):
    return ExtractionPlan(
        intent=ai_task or Intent.EXTRACT_ALL,
        instruction=instruction,
        url=URL,
        targets=("summary",),
        requires_ai=requires_ai,
        ai_task=ai_task if requires_ai else None,
        specifics=specifics,
    )


@pytest.mark.asyncio
async def test_no_ai_requested_is_a_no_op(fake_client, ai_config):
    result = _result(text_content="Hello")
    client = fake_client("summary")

    processed = await post_process_with_ai(result, _plan(requires_ai=False), ai_config, client=client)

    assert processed is result
    assert processed.ai_processing is None
    client.complete.assert_not_awaited()


@pytest.mark.asyncio
async def test_no_provider_is_a_no_op(fake_client):
    result = _result(text_content="Hello")
    client = fake_client("summary")

    assert (await post_process_with_ai(result, _plan(), None, client=client)).ai_processing is None
    assert (await post_process_with_ai(result, _plan(), AIConfig(), client=client)).ai_processing is None
    client.complete.assert_not_awaited()


@pytest.mark.asyncio
async def test_summary_is_attached_without_touching_data(fake_client, ai_config):
    result = _result(text_content="Caching keeps copies close by.", paragraphs=["Caching keeps copies close by."])
    before = result.data.model_copy(deep=True)
    client = fake_client("Caching stores copies of results.")

    processed = await post_process_with_ai(result, _plan(), ai_config, client=client)

    assert processed is result
    assert processed.ai_processing.task == "extract_summary"
    assert processed.ai_processing.response == "Caching stores copies of results."
    assert processed.ai_processing.provider == "fake"
    assert processed.ai_processing.model == "fake-model"
    assert processed.ai_processing.error is None
    assert processed.data == before

    prompt = client.complete.await_args.args[0]
    assert prompt.startswith("Summarize this extracted content concisely:")
    assert "Caching keeps copies close by." in prompt
    assert client.complete.await_args.kwargs == {"max_tokens": 1000, "temperature": 0.3}


@pytest.mark.asyncio
async def test_backend_error_is_recorded(fake_client, ai_config):
    result = _result(text_content="Hello")
    client = fake_client(error=AIProviderError("groq API error: 500 - oops", provider="groq", status_code=500))

    processed = await post_process_with_ai(result, _plan(), ai_config, client=client)

    assert processed.ai_processing.task == "extract_summary"
    assert processed.ai_processing.response is None
    assert processed.ai_processing.error == "groq API error: 500 - oops"
    assert processed.ok


@pytest.mark.asyncio
async def test_missing_key_is_recorded_not_raised():
    result = _result(text_content="Hello")
    processed = await post_process_with_ai(result, _plan(), AIConfig(provider="openai"))
    assert "API key not found for openai" in processed.ai_processing.error


def test_prompt_context_is_truncated():
    result = _result(text_content="x" * 500)
    prompt = build_prompt(result, _plan(), context_chars=50)
    body = prompt.split("\n\n")[1]
    assert len(body) == 50


def test_fallback_template_quotes_instruction():
    plan = _plan(ai_task=Intent.EXTRACT_PRICING, instruction="compare the plans", specifics="only annual prices")
    prompt = build_prompt(_result(pricing=[{"prices": ["$9"]}]), plan)

    assert prompt.startswith('Process this extracted data according to the user\'s request: "compare the plans"')
    assert prompt.endswith("Additional requirements: only annual prices")


def test_specifics_with_braces_do_not_break_formatting():
    plan = _plan(specifics="return {title, price}")
    assert build_prompt(_result(text_content="Hi"), plan).endswith("Additional requirements: return {title, price}")


@pytest.mark.parametrize(
    "task,opening",
    [
        (Intent.ANALYZE_CONTENT, "Analyze this extracted content"),
        (Intent.EXPLAIN_CONTENT, "Explain this content in simple terms"),
    ],
)
def test_task_templates(task, opening):
    assert build_prompt(_result(text_content="Hi"), _plan(ai_task=task)).startswith(opening)
