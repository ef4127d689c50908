import asyncio
import json
from typing import List, Optional

import typer
from rich.console import Console
from rich.json import JSON
from rich.markdown import Markdown
from rich.table import Table

from .config import AIConfig, ExtractionSettings, get_settings
from .core import ExtractionRunner, load_page
from .extractors import extract_content
from .formatters import chunk_text, format_chunks, format_output
from .instructions import parse_instruction
from .llm import available_providers, check_provider
from .log import configure_logging
from .models import ExtractionResult, OutputFormat
from .planner import create_extraction_plan

app = typer.Typer(help="Instruction-driven web content extraction for AI agents")
console = Console()


def _ai_config(provider: Optional[str], model: Optional[str]) -> AIConfig:
    overrides = {}
    if provider:
        overrides["provider"] = provider
    if model:
        overrides["model"] = model
    return AIConfig(**overrides)


def _emit(results: List[ExtractionResult], output_format: OutputFormat, output: Optional[str]) -> None:
    succeeded = sum(1 for r in results if r.ok)
    console.print(f"\n[green]Extracted {succeeded}/{len(results)} pages[/green]")

    if output:
        with open(output, "w") as f:
            if output_format is OutputFormat.JSON or output.endswith(".json"):
                json.dump([r.to_dict() for r in results], f, indent=2, ensure_ascii=False, default=str)
            else:
                f.write("\n\n---\n\n".join(format_output(r, output_format) for r in results))
        console.print(f"[green]Saved to {output}[/green]")
        return

    for result in results:
        if not result.ok:
            console.print(f"[red]Failed: {result.url} - {result.error}[/red]")
            continue
        rendered = format_output(result, output_format)
        if output_format is OutputFormat.MARKDOWN:
            console.print(Markdown(rendered))
        elif output_format in (OutputFormat.JSON, OutputFormat.STRUCTURED):
            console.print(JSON(rendered))
        else:
            console.print(rendered)


@app.command()
def extract(
    urls: List[str] = typer.Argument(..., help="One or more URLs to extract from"),
    instruction: str = typer.Option(
        "Extract the main content",
        "--instruction",
        "-i",
        help="What to extract, in plain language"
    ),
    output_format: Optional[OutputFormat] = typer.Option(
        None,
        "--format",
        "-f",
        help="Output format (default: WEBEXTRACT_OUTPUT_FORMAT or markdown)"
    ),
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write results to this file instead of the terminal"
    ),
    use_browser: bool = typer.Option(
        True,
        "--browser/--no-browser",
        help="Render pages with a headless browser (slower but handles dynamic content)"
    ),
    provider: Optional[str] = typer.Option(None, "--provider", help="AI provider for parsing and post-processing"),
    model: Optional[str] = typer.Option(None, "--model", help="Model name for the AI provider"),
    max_concurrent: int = typer.Option(3, "--max-concurrent", "-c", help="Pages processed at once"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Extract content from pages according to an instruction."""
    settings = ExtractionSettings(use_browser=use_browser, max_concurrent=max_concurrent)
    configure_logging(settings.log_level, verbose=verbose)
    output_format = output_format or settings.output_format
    runner = ExtractionRunner(ai_config=_ai_config(provider, model), settings=settings)

    if use_browser:
        console.print("[yellow]Browser mode enabled - JavaScript content will be rendered[/yellow]")

    results = asyncio.run(runner.run(urls, instruction, verbose=True))
    _emit(results, output_format, output)


@app.command()
def crawl(
    url: str = typer.Argument(..., help="Page to start crawling from"),
    instruction: str = typer.Option(
        "Extract the main content",
        "--instruction",
        "-i",
        help="What to extract from every page"
    ),
    max_depth: int = typer.Option(1, "--max-depth", "-d", min=0, max=5, help="Link levels to follow"),
    max_pages: int = typer.Option(10, "--max-pages", "-p", min=1, max=100, help="Maximum pages to extract"),
    same_domain: bool = typer.Option(
        True,
        "--same-domain/--any-domain",
        help="Only follow links on the start URL's domain"
    ),
    output_format: Optional[OutputFormat] = typer.Option(None, "--format", "-f"),
    output: Optional[str] = typer.Option(None, "--output", "-o"),
    use_browser: bool = typer.Option(True, "--browser/--no-browser"),
    provider: Optional[str] = typer.Option(None, "--provider"),
    model: Optional[str] = typer.Option(None, "--model"),
    max_concurrent: int = typer.Option(3, "--max-concurrent", "-c"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Extract a page and the pages it links to, up to a depth and page limit."""
    settings = ExtractionSettings(use_browser=use_browser, max_concurrent=max_concurrent)
    configure_logging(settings.log_level, verbose=verbose)
    output_format = output_format or settings.output_format
    runner = ExtractionRunner(ai_config=_ai_config(provider, model), settings=settings)

    console.print(f"[cyan]Crawling {url} (depth {max_depth}, up to {max_pages} pages)[/cyan]")
    results = asyncio.run(runner.crawl(
        url,
        instruction,
        max_depth=max_depth,
        max_pages=max_pages,
        same_domain_only=same_domain,
        verbose=True,
    ))
    _emit(results, output_format, output)


@app.command()
def plan(
    instruction: str = typer.Argument(..., help="Instruction to classify"),
    url: str = typer.Option("https://example.com", "--url", "-u", help="URL the instruction targets"),
    provider: Optional[str] = typer.Option(None, "--provider", help="AI provider for low-confidence instructions"),
    model: Optional[str] = typer.Option(None, "--model"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Show how an instruction is parsed and planned, without loading the page."""
    configure_logging(get_settings().log_level, verbose=verbose)

    parsed = asyncio.run(parse_instruction(instruction, url, _ai_config(provider, model)))
    extraction_plan = create_extraction_plan(parsed, url)

    console.print("\n[green]Parsed Instruction:[/green]")
    console.print(JSON(parsed.model_dump_json()))

    console.print("\n[green]Extraction Plan:[/green]")
    console.print(JSON(json.dumps({
        "intent": extraction_plan.intent.value,
        "extractors": [e.value for e in extraction_plan.extractors],
        "options": extraction_plan.options.model_dump(by_alias=True, exclude_defaults=True),
        "requiresAI": extraction_plan.requires_ai,
        "aiTask": extraction_plan.ai_task.value if extraction_plan.ai_task else None,
        "specifics": extraction_plan.specifics,
    })))


@app.command()
def providers(
    check: Optional[str] = typer.Option(None, "--test", "-t", help="Send a test prompt to this provider"),
):
    """List AI providers and whether they are configured."""
    table = Table(title="AI Providers")
    table.add_column("Provider", style="cyan")
    table.add_column("Key variable")
    table.add_column("Default model")
    table.add_column("Available")

    for info in available_providers():
        table.add_row(
            info["id"],
            info["keyEnv"] or "-",
            info["defaultModel"],
            "[green]yes[/green]" if info["available"] else "[red]no[/red]",
        )
    console.print(table)

    if check:
        outcome = asyncio.run(check_provider(_ai_config(check, None)))
        if outcome["success"]:
            console.print(f"[green]{check} responded:[/green] {outcome['response']}")
        else:
            console.print(f"[red]{check} failed: {outcome['error']}[/red]")
            raise typer.Exit(1)


@app.command()
def chunk(
    url: str = typer.Argument(..., help="URL to fetch"),
    size: int = typer.Option(1000, "--size", "-s", help="Target characters per chunk"),
    overlap: int = typer.Option(100, "--overlap", help="Characters of overlap between chunks"),
    use_browser: bool = typer.Option(True, "--browser/--no-browser"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Fetch a page and split its main text into chunks for AI processing."""
    configure_logging(get_settings().log_level, verbose=verbose)

    async def _text():
        page = await load_page(url, ExtractionSettings(use_browser=use_browser))
        content = await extract_content(page, include_links=False, include_tables=False, include_code=False)
        return page.title, "\n\n".join(content["paragraphs"])

    title, text = asyncio.run(_text())
    chunks = chunk_text(text, size=size, overlap=overlap)

    console.print(f"[green]{len(chunks)} chunks[/green]")
    console.print(Markdown(format_chunks(chunks, title=title)))


if __name__ == "__main__":
    app()
