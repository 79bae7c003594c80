import json

import pytest

from legalease.core.errors import LLMServiceError
from legalease.pipeline.analysis import (
    DEFAULT_KEY_POINTS,
    DEFAULT_WARNINGS,
    SYSTEM_PROMPT,
    AnalysisRequester,
    DocumentMetadata,
    ParseStatus,
    parse_analysis,
    strip_code_fence,
)
from legalease.tests.conftest import VALID_ANALYSIS, StubGenerator

METADATA = DocumentMetadata(title="Lease", filename="lease.pdf", file_type="pdf", file_size=2048)


def assert_complete(analysis):
    assert analysis.summary.strip()
    assert analysis.key_points
    assert analysis.legal_terms
    assert analysis.warnings


class TestStripCodeFence:
    def test_json_fence(self):
        assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        assert strip_code_fence('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence(self):
        assert strip_code_fence('  {"a": 1} ') == '{"a": 1}'


class TestParseAnalysis:
    def test_valid_reply_is_parsed(self):
        outcome = parse_analysis(json.dumps(VALID_ANALYSIS), METADATA)

        assert outcome.parse_status == ParseStatus.PARSED
        assert outcome.defaulted_fields == []
        assert outcome.analysis.summary == VALID_ANALYSIS["summary"]
        assert outcome.analysis.key_points == VALID_ANALYSIS["keyPoints"]
        assert outcome.analysis.legal_terms[0].term == "Governing law"
        assert outcome.analysis.warnings == VALID_ANALYSIS["warnings"]

    def test_fenced_reply_is_parsed(self):
        reply = f"```json\n{json.dumps(VALID_ANALYSIS)}\n```"
        assert parse_analysis(reply, METADATA).parse_status == ParseStatus.PARSED

    def test_snake_case_keys_are_accepted(self):
        reply = {
            "summary": "A lease.",
            "key_points": ["Rent is due monthly."],
            "legal_terms": [{"term": "Lessee", "explanation": "The tenant."}],
            "warnings": ["Late fees apply."],
        }
        outcome = parse_analysis(json.dumps(reply), METADATA)

        assert outcome.parse_status == ParseStatus.PARSED
        assert outcome.analysis.key_points == ["Rent is due monthly."]

    def test_prose_reply_is_fully_defaulted(self):
        outcome = parse_analysis("I'm sorry, this document looks corrupted.", METADATA)

        assert outcome.parse_status == ParseStatus.DEFAULTED
        assert set(outcome.defaulted_fields) == {"summary", "key_points", "legal_terms", "warnings"}
        assert_complete(outcome.analysis)
        assert "lease.pdf" in outcome.analysis.summary
        assert "PDF" in outcome.analysis.summary
        assert outcome.analysis.key_points == DEFAULT_KEY_POINTS
        assert outcome.analysis.warnings == DEFAULT_WARNINGS

    @pytest.mark.parametrize("reply", ["", "[1, 2, 3]", '"just a string"', "null"])
    def test_non_object_replies_are_defaulted(self, reply):
        outcome = parse_analysis(reply, METADATA)

        assert outcome.parse_status == ParseStatus.DEFAULTED
        assert_complete(outcome.analysis)

    def test_missing_fields_are_defaulted_individually(self):
        reply = {"summary": "A short lease.", "keyPoints": [], "warnings": ["Check the deposit terms."]}

        outcome = parse_analysis(json.dumps(reply), METADATA)

        assert outcome.parse_status == ParseStatus.PARTIAL
        assert outcome.defaulted_fields == ["key_points", "legal_terms"]
        assert outcome.analysis.summary == "A short lease."
        assert outcome.analysis.key_points == DEFAULT_KEY_POINTS
        assert outcome.analysis.warnings == ["Check the deposit terms."]
        assert_complete(outcome.analysis)

    def test_wrongly_typed_fields_are_defaulted(self):
        reply = {"summary": 42, "keyPoints": "not a list", "legalTerms": 7, "warnings": [None, ""]}

        outcome = parse_analysis(json.dumps(reply), METADATA)

        assert outcome.parse_status == ParseStatus.PARTIAL
        assert len(outcome.defaulted_fields) == 4
        assert_complete(outcome.analysis)

    def test_legal_term_shapes(self):
        reply = dict(
            VALID_ANALYSIS,
            legalTerms=[
                {"name": "Indemnity", "definition": "A promise to cover losses."},
                "Force majeure: Events outside anyone's control.",
                {"term": "Missing explanation"},
                "no separator here",
            ],
        )

        terms = parse_analysis(json.dumps(reply), METADATA).analysis.legal_terms

        assert [(t.term, t.explanation) for t in terms] == [
            ("Indemnity", "A promise to cover losses."),
            ("Force majeure", "Events outside anyone's control."),
        ]

    def test_legal_terms_mapping(self):
        reply = dict(VALID_ANALYSIS, legalTerms={"Escrow": "Money held by a third party."})

        terms = parse_analysis(json.dumps(reply), METADATA).analysis.legal_terms

        assert terms[0].term == "Escrow"
        assert terms[0].explanation == "Money held by a third party."


class TestAnalysisRequester:
    async def test_single_call_with_prompt_and_settings(self):
        generator = StubGenerator()
        requester = AnalysisRequester(generator, max_input_chars=8000, temperature=0.3, max_tokens=2000)

        outcome = await requester.analyze("The lease runs for twelve months.", METADATA)

        assert outcome.parse_status == ParseStatus.PARSED
        assert len(generator.calls) == 1
        call = generator.calls[0]
        assert call["temperature"] == 0.3
        assert call["max_tokens"] == 2000
        system, user = call["messages"]
        assert system == {"role": "system", "content": SYSTEM_PROMPT}
        assert user["role"] == "user"
        assert "Lease" in user["content"]
        assert "lease.pdf" in user["content"]
        assert user["content"].endswith("The lease runs for twelve months.")

    async def test_input_text_is_truncated(self):
        generator = StubGenerator()
        requester = AnalysisRequester(generator, max_input_chars=100)

        await requester.analyze("x" * 500 + "TAIL", METADATA)

        content = generator.calls[0]["messages"][1]["content"]
        assert "x" * 100 in content
        assert "x" * 101 not in content
        assert "TAIL" not in content

    async def test_unparseable_reply_still_completes(self):
        requester = AnalysisRequester(StubGenerator(reply="Sorry, I cannot read this."))

        outcome = await requester.analyze("Some text", METADATA)

        assert outcome.parse_status == ParseStatus.DEFAULTED
        assert_complete(outcome.analysis)

    async def test_generator_failure_propagates(self):
        requester = AnalysisRequester(StubGenerator(error=LLMServiceError("endpoint down")))

        with pytest.raises(LLMServiceError):
            await requester.analyze("Some text", METADATA)
