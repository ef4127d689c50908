"""
Live smoke checks against real sites. Needs network access (and Chromium for
browser cases); not part of the unit test suite.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List

from webextract import ExtractionRunner, ExtractionSettings


# Sites with the instruction to run and the categories each should yield
SITE_CASES = [
    {
        "name": "Python docs tutorial",
        "url": "https://docs.python.org/3/tutorial/controlflow.html",
        "instruction": "Extract the main article",
        "use_browser": False,
        "expected_categories": ["paragraphs", "text_content", "metadata"],
    },
    {
        "name": "GitHub repository README",
        "url": "https://github.com/encode/httpx",
        "instruction": "Get the README documentation",
        "use_browser": False,
        "expected_categories": ["documentation", "code", "metadata"],
    },
    {
        "name": "Stack Overflow question",
        "url": "https://stackoverflow.com/questions/231767/what-does-the-yield-keyword-do-in-python",
        "instruction": "Extract code from the answers",
        "use_browser": False,
        "expected_categories": ["code"],
    },
    {
        "name": "Wikipedia tables",
        "url": "https://en.wikipedia.org/wiki/List_of_programming_languages_by_type",
        "instruction": "Get all the tables",
        "use_browser": False,
        "expected_categories": ["tables"],
    },
    {
        "name": "Pricing page",
        "url": "https://www.netlify.com/pricing/",
        "instruction": "Get all pricing information",
        "use_browser": True,
        "expected_categories": ["pricing", "tables"],
    },
]


class CheckResults:
    """Track outcomes across all site cases."""

    def __init__(self):
        self.results: List[Dict[str, Any]] = []
        self.passed = 0
        self.failed = 0

    def add_result(self, case: str, passed: bool, categories: List[str], messages: List[str]):
        self.results.append({
            "case": case,
            "passed": passed,
            "categories": categories,
            "messages": messages,
        })
        if passed:
            self.passed += 1
        else:
            self.failed += 1

    def print_summary(self):
        print("\n" + "=" * 80)
        print("SITE CHECK SUMMARY")
        print("=" * 80)
        print(f"Total: {len(self.results)}")
        print(f"✅ Passed: {self.passed}")
        print(f"❌ Failed: {self.failed}")
        print("=" * 80)

        for result in self.results:
            status = "✅ PASS" if result["passed"] else "❌ FAIL"
            print(f"\n{status}: {result['case']}")
            print(f"  Categories: {', '.join(result['categories']) or '-'}")
            for msg in result["messages"]:
                print(f"  {msg}")

    def save_to_file(self):
        output_path = Path("data/outputs/site_checks.json")
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "w") as f:
            json.dump(self.results, f, indent=2)

        print(f"\n💾 Detailed results saved to: {output_path}")


async def check_site(case: Dict[str, Any], results: CheckResults):
    print(f"\n{'=' * 80}")
    print(f"🧪 Checking: {case['name']}")
    print(f"URL: {case['url']}")
    print(f"Instruction: {case['instruction']}")
    print(f"{'=' * 80}")

    messages = []
    settings = ExtractionSettings(use_browser=case["use_browser"], max_concurrent=1)
    runner = ExtractionRunner(settings=settings)

    [result] = await runner.run([case["url"]], case["instruction"], verbose=False)

    if not result.ok:
        messages.append(f"❌ Extraction failed: {result.error}")
        results.add_result(case["name"], False, [], messages)
        return

    present = result.data.present()
    missing = [name for name in case["expected_categories"] if name not in present]
    if missing:
        messages.append(f"❌ Missing categories: {missing}")
    else:
        messages.append(f"✅ All expected categories present: {case['expected_categories']}")

    empty = [name for name in present if not getattr(result.data, name)]
    if empty:
        messages.append(f"⚠️  Present but empty: {empty}")

    results.add_result(case["name"], not missing, present, messages)


async def run_all_checks() -> CheckResults:
    results = CheckResults()

    for i, case in enumerate(SITE_CASES):
        await check_site(case, results)
        if i < len(SITE_CASES) - 1:
            await asyncio.sleep(2)

    results.print_summary()
    results.save_to_file()
    return results


if __name__ == "__main__":
    outcome = asyncio.run(run_all_checks())
    sys.exit(1 if outcome.failed else 0)
