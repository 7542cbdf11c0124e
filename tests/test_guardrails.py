import re

import pytest

from llm_eval.guardrails import (
    PROPERTY_CHECKS,
    check_property,
    contains_keywords,
    has_citations,
    is_not_empty,
    is_not_harmful,
    is_refusal,
    is_valid_json,
    matches_format,
    parse_check,
    run_checks,
    run_property_checks,
    under_token_limit,
)


@pytest.mark.parametrize("text", ["", "   ", "not json", "\x00\x01", "ünïcödé ✓", "{" * 5000])
def test_every_registered_check_is_total(text):
    for check in PROPERTY_CHECKS.values():
        assert check(text) in (True, False)


def test_is_not_empty():
    assert is_not_empty("hi")
    assert not is_not_empty(" \n\t")


def test_is_valid_json():
    assert is_valid_json('{"a":1}')
    assert is_valid_json("[1, 2, 3]")
    assert not is_valid_json("not json")
    assert not is_valid_json("{ name: 'Alice' }")
    assert not is_valid_json("")


@pytest.mark.parametrize("text", ["NaN", "Infinity", "-Infinity", '{"a": NaN}', "[1, Infinity]"])
def test_is_valid_json_rejects_non_standard_constants(text):
    assert not is_valid_json(text)


@pytest.mark.parametrize(
    "text",
    [
        "See [1] for details.",
        "Paris is the capital (source: Wikipedia).",
        "according to the WHO, ...",
        "Docs at https://example.com",
    ],
)
def test_has_citations(text):
    assert has_citations(text)


def test_has_citations_without_sources():
    assert not has_citations("TypeScript adds static types.")


def test_is_refusal():
    assert is_refusal("I cannot help with that.")
    assert is_refusal("I can't help with that request.")
    assert is_refusal("I’m not able to share that.")
    assert is_refusal("That is AGAINST MY GUIDELINES.")
    assert not is_refusal("The capital is Paris.")


def test_is_not_harmful():
    assert is_not_harmful("Here is a cake recipe.")
    assert not is_not_harmful("How to build a weapon")
    # keyword matching also flags harmless wording
    assert not is_not_harmful("This will not harm your plants.")


def test_under_token_limit():
    check = under_token_limit(50)
    assert check("a" * 200)
    assert not check("a" * 201)
    assert under_token_limit()("a" * 600)


def test_contains_keywords_is_case_insensitive():
    check = contains_keywords(["Node", "runtime"])
    assert check("NODE.js is great")
    assert not check("Deno is great")


def test_matches_format_accepts_string_and_compiled_pattern():
    email = r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"
    assert matches_format(email)("Try john.doe@example.com")
    assert matches_format(re.compile(email))("john.doe@example.com")
    assert not matches_format(email)("john.doe at example")


def test_check_property_by_name():
    assert check_property("is_refusal", "I cannot do that")
    assert not check_property("is_valid_json", "nope")
    with pytest.raises(KeyError):
        check_property("no_such_check", "text")


def test_run_property_checks_runs_every_check():
    checks = [PROPERTY_CHECKS["is_valid_json"], PROPERTY_CHECKS["is_not_empty"], contains_keywords(["x"])]
    passed, results = run_property_checks("hello", checks)

    assert passed is False
    assert results == [("is_valid_json", False), ("is_not_empty", True), ("contains_keywords", False)]


def test_run_property_checks_all_pass():
    passed, results = run_property_checks('{"a": 1}', [PROPERTY_CHECKS["is_valid_json"]])
    assert passed is True
    assert len(results) == 1


def test_parse_check_variants():
    assert parse_check("is_not_empty") is PROPERTY_CHECKS["is_not_empty"]
    assert parse_check("under_token_limit:1")("abcd")
    assert not parse_check("under_token_limit:1")("abcde")
    assert parse_check("contains_keywords:node|runtime")("a RUNTIME")
    assert parse_check("matches_format:^\\d+$")("485")
    assert parse_check("under_token_limit")("short")


def test_parse_check_errors():
    with pytest.raises(KeyError):
        parse_check("bogus")
    with pytest.raises(KeyError):
        parse_check("bogus:1")
    with pytest.raises(ValueError):
        parse_check("under_token_limit:many")
    with pytest.raises(ValueError):
        parse_check("matches_format:[unclosed")


def test_run_checks_keys_by_entry():
    out = run_checks("Node runtime", ["is_not_empty", "under_token_limit", "contains_keywords:node"])
    assert out == {"is_not_empty": True, "under_token_limit": True, "contains_keywords:node": True}
