import pytest

from webextract.classifier import RULES, PatternClassifier, classify_instruction, extract_file_name
from webextract.models import Intent


def test_pricing_instruction_matches_with_high_confidence():
    parsed = classify_instruction("Get all pricing information")
    assert parsed.intent == Intent.EXTRACT_PRICING
    assert parsed.targets == ["pricing", "tables", "plans"]
    assert parsed.confidence == 0.95
    assert parsed.require_ai is False
    assert parsed.original_instruction == "Get all pricing information"


def test_no_match_defaults_to_article():
    parsed = classify_instruction("qwerty zzz")
    assert parsed.intent == Intent.EXTRACT_ARTICLE
    assert parsed.targets == ["article", "main_content"]
    assert parsed.confidence == 0.5
    assert parsed.ai_parsed is False


def test_empty_instruction_defaults_to_article():
    parsed = classify_instruction("")
    assert parsed.intent == Intent.EXTRACT_ARTICLE
    assert parsed.confidence == 0.5


def test_matching_is_case_insensitive():
    assert classify_instruction("EXTRACT CODE please").intent == Intent.EXTRACT_CODE


def test_first_matching_rule_wins():
    # "extract code" (rule 1) and "docs" (rule 3) both match
    parsed = classify_instruction("extract code from the docs")
    assert parsed.intent == Intent.EXTRACT_CODE
    assert parsed.targets == ["code", "files", "repository"]


def test_specific_file_with_quoted_name():
    parsed = classify_instruction('Get file named "utils.py" from the repo')
    assert parsed.intent == Intent.EXTRACT_SPECIFIC_FILE
    assert parsed.targets == ["specific_file"]
    assert parsed.file_name == "utils.py"


def test_specific_file_with_bare_name():
    parsed = classify_instruction("show the particular file config.yaml")
    assert parsed.intent == Intent.EXTRACT_SPECIFIC_FILE
    assert parsed.file_name == "config.yaml"


def test_file_name_only_extracted_when_rule_asks():
    parsed = classify_instruction("Extract code from main.py")
    assert parsed.intent == Intent.EXTRACT_CODE
    assert parsed.file_name is None


@pytest.mark.parametrize(
    "instruction,intent",
    [
        ("Give me a tldr", Intent.EXTRACT_SUMMARY),
        ("analyze this page", Intent.ANALYZE_CONTENT),
        ("explain how it works", Intent.EXPLAIN_CONTENT),
    ],
)
def test_ai_rules_require_ai(instruction, intent):
    parsed = classify_instruction(instruction)
    assert parsed.intent == intent
    assert parsed.require_ai is True


@pytest.mark.parametrize(
    "instruction,intent,targets",
    [
        ("download all the images", Intent.EXTRACT_IMAGES, ["images"]),
        ("find the contact email", Intent.EXTRACT_CONTACT, ["contact_info"]),
        ("collect hyperlinks", Intent.EXTRACT_LINKS, ["links"]),
        ("show the page outline", Intent.EXTRACT_HEADINGS, ["headings", "structure"]),
        ("the whole thing, everything", Intent.EXTRACT_ALL, ["all"]),
    ],
)
def test_rule_targets(instruction, intent, targets):
    parsed = classify_instruction(instruction)
    assert parsed.intent == intent
    assert parsed.targets == targets


def test_classifier_is_deterministic():
    classifier = PatternClassifier()
    first = classifier.classify("Get all pricing information")
    second = classifier.classify("Get all pricing information")
    assert first == second


def test_rule_table_covers_every_intent():
    intents = {rule.intent for rule in RULES}
    assert intents == set(Intent)


def test_custom_rule_table():
    classifier = PatternClassifier(rules=RULES[-1:])
    assert classifier.classify("Get all pricing information").intent == Intent.EXTRACT_ARTICLE
    assert classifier.classify("explain this").intent == Intent.EXPLAIN_CONTENT


def test_extract_file_name_prefers_quotes():
    assert extract_file_name("open 'setup.cfg' not main.py") == "setup.cfg"
    assert extract_file_name("nothing here") is None
