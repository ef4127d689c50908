"""
Example usage of the webextract pipeline.
"""

import asyncio
import json

from webextract import (
    AIConfig,
    ExtractionRunner,
    ExtractionSettings,
    OutputFormat,
    PageSnapshot,
    create_extraction_plan,
    execute_extraction_plan,
    format_output,
    parse_instruction,
)


async def example_1_basic_usage():
    """Run an instruction against a live page."""
    print("=" * 60)
    print("Example 1: Instruction-driven extraction")
    print("=" * 60)

    runner = ExtractionRunner(settings=ExtractionSettings(use_browser=False))

    # Replace with an actual URL
    results = await runner.run(["https://example.com/pricing"], "Get all pricing information")

    for result in results:
        if result.ok:
            print(format_output(result, OutputFormat.MARKDOWN))
        else:
            print(f"Error: {result.error}")


async def example_2_inspect_plan():
    """See how an instruction is classified before loading anything."""
    print("\n" + "=" * 60)
    print("Example 2: Inspect the extraction plan")
    print("=" * 60)

    for instruction in ["Extract code from this repository", "Get file named 'setup.py'", "qwerty zzz"]:
        parsed = await parse_instruction(instruction, "https://github.com/user/repo")
        plan = create_extraction_plan(parsed, "https://github.com/user/repo")
        print(f"\n{instruction!r}")
        print(f"  intent:     {parsed.intent.value} ({parsed.confidence})")
        print(f"  extractors: {[e.value for e in plan.extractors]}")
        print(f"  options:    {plan.options.model_dump(by_alias=True, exclude_defaults=True)}")


async def example_3_static_html():
    """Execute a plan against HTML you already have."""
    print("\n" + "=" * 60)
    print("Example 3: Extract from static HTML")
    print("=" * 60)

    html = """
    <html><head><title>Plans</title></head><body>
      <div class="pricing"><h2>Pro</h2><p>Everything in Starter plus priority support.</p><span>$29/month</span></div>
      <table><tr><th>Plan</th><th>Price</th></tr><tr><td>Starter</td><td>$9</td></tr></table>
    </body></html>
    """
    url = "https://example.com/pricing"
    page = PageSnapshot(url=url, html=html)

    parsed = await parse_instruction("Show me the pricing plans", url)
    plan = create_extraction_plan(parsed, url)
    result = await execute_extraction_plan(page, plan)

    print(json.dumps(result.to_dict(), indent=2))


async def example_4_ai_summary():
    """Summaries need an AI provider (set AI_PROVIDER and its API key)."""
    print("\n" + "=" * 60)
    print("Example 4: AI summary")
    print("=" * 60)

    ai_config = AIConfig()
    if not ai_config.enabled:
        print("Set AI_PROVIDER (e.g. groq) and GROQ_API_KEY to run this example")
        return

    runner = ExtractionRunner(ai_config=ai_config, settings=ExtractionSettings(use_browser=False))
    results = await runner.run(["https://example.com/blog/post"], "Summarize this article")

    for result in results:
        if result.ai_processing:
            print(result.ai_processing.response or result.ai_processing.error)


async def main():
    await example_2_inspect_plan()
    await example_3_static_html()
    # await example_1_basic_usage()
    # await example_4_ai_summary()


if __name__ == "__main__":
    asyncio.run(main())
