import json
from datetime import date

import pytest

from dataset_engine.query_classifier import (
    EntityKind,
    QueryClassifier,
    QueryType,
    classify_by_rules,
    extract_team_names,
    parse_model_classification,
    strip_code_fences,
)
from rag_pipeline.errors import ServiceUnreachable


class _Catalog:
    def list_team_names(self):
        return ["Arsenal", "Chelsea"]

    def list_competitions(self):
        return ["Premier League"]


class TestRuleTier:
    def test_team_count_question(self):
        result = classify_by_rules("How many teams are in the database?")

        assert result.query_type == QueryType.TEAMS_COUNT
        assert result.confidence >= 0.9
        assert result.entities == frozenset({EntityKind.TEAMS})

    def test_match_count_question(self):
        result = classify_by_rules("What is the total number of matches?")

        assert result.query_type == QueryType.MATCHES_COUNT
        assert result.confidence == pytest.approx(0.9)

    def test_unrecognised_question_defaults_to_general(self):
        result = classify_by_rules("Tell me something interesting")

        assert result.query_type == QueryType.GENERAL
        assert result.confidence == 0.5
        assert result.source == "rules"

    def test_team_matches_extracts_capitalised_words(self):
        result = classify_by_rules("Show matches for team Arsenal")

        assert result.query_type == QueryType.TEAM_MATCHES
        assert result.parameters.team_names == ("Show", "Arsenal")
        assert result.confidence == pytest.approx(0.8)

    def test_team_matches_without_names_is_weak(self):
        result = classify_by_rules("which team has the most games?")

        assert result.query_type == QueryType.TEAM_MATCHES
        assert result.parameters.team_names == ()
        assert result.confidence == pytest.approx(0.7)

    def test_upcoming_matches(self):
        result = classify_by_rules("What are the upcoming fixtures?")

        assert result.query_type == QueryType.UPCOMING_MATCHES
        assert result.entities == frozenset({EntityKind.MATCHES})

    def test_competition_with_known_keyword(self):
        result = classify_by_rules("Which matches are in the Premier League?")

        assert result.query_type == QueryType.COMPETITION_MATCHES
        assert result.parameters.competitions == ("premier league",)
        assert result.confidence == pytest.approx(0.8)

    def test_competition_without_known_keyword_is_weak(self):
        result = classify_by_rules("Show the tournament schedule")

        assert result.query_type == QueryType.COMPETITION_MATCHES
        assert result.parameters.competitions == ()
        assert result.confidence == pytest.approx(0.7)

    def test_date_range(self):
        result = classify_by_rules("Matches between 2024-01-31 and 2024-01-01 please")

        assert result.query_type == QueryType.DATE_RANGE_MATCHES
        assert result.parameters.date_from == date(2024, 1, 1)
        assert result.parameters.date_to == date(2024, 1, 31)
        assert result.confidence == pytest.approx(0.85)

    def test_single_date_is_a_one_day_range(self):
        result = classify_by_rules("Fixtures on 2024-03-02")

        assert result.parameters.date_from == result.parameters.date_to == date(2024, 3, 2)

    def test_invalid_date_is_ignored(self):
        assert classify_by_rules("Anything on 2024-13-45?").query_type == QueryType.GENERAL

    @pytest.mark.parametrize("question, expected", [
        ("List all teams", QueryType.ALL_TEAMS),
        ("please list teams", QueryType.ALL_TEAMS),
        ("Show all matches", QueryType.ALL_MATCHES),
    ])
    def test_listings(self, question, expected):
        result = classify_by_rules(question)

        assert result.query_type == expected
        assert result.confidence == pytest.approx(0.85)

    def test_team_name_heuristic_is_lossy(self):
        assert extract_team_names("Did arsenal beat Chelsea in It") == ["Did", "Chelsea"]


class TestModelTier:
    def _reply(self, **overrides):
        payload = {
            "queryType": "team_matches",
            "entities": ["teams", "matches"],
            "parameters": {"teamNames": ["Chelsea"], "competitions": [], "dateFrom": None, "dateTo": None},
            "confidence": 0.95,
        }
        payload.update(overrides)
        return json.dumps(payload)

    def test_low_confidence_question_is_refined(self):
        prompts = []

        def complete(prompt):
            prompts.append(prompt)
            return self._reply()

        result = QueryClassifier(complete=complete, catalog=_Catalog()).classify("what about the blues?")

        assert result.query_type == QueryType.TEAM_MATCHES
        assert result.parameters.team_names == ("Chelsea",)
        assert result.source == "model"
        assert "Known teams: Arsenal, Chelsea" in prompts[0]
        assert "Known competitions: Premier League" in prompts[0]

    def test_high_confidence_question_skips_model(self):
        calls = []
        classifier = QueryClassifier(complete=lambda p: calls.append(p) or self._reply(), catalog=_Catalog())

        result = classifier.classify("How many teams are in the database?")

        assert result.query_type == QueryType.TEAMS_COUNT
        assert calls == []

    def test_malformed_reply_falls_back_to_rules(self):
        classifier = QueryClassifier(complete=lambda p: "Sure! It is about teams.", catalog=_Catalog())

        result = classifier.classify("Tell me something interesting")

        assert result.query_type == QueryType.GENERAL
        assert result.source == "rules"

    def test_model_outage_falls_back_to_rules(self):
        def complete(prompt):
            raise ServiceUnreachable("Cannot connect to Ollama")

        result = QueryClassifier(complete=complete, catalog=_Catalog()).classify("Tell me something")

        assert result.source == "rules"

    def test_no_model_configured_uses_rules_only(self):
        assert QueryClassifier().classify("Tell me something").source == "rules"

    @pytest.mark.parametrize("overrides", [
        {"queryType": "weather"},
        {"confidence": 1.5},
        {"entities": ["players"]},
        {"parameters": {"teamNames": []}},
        {"queryType": "date_range_matches", "parameters": {"dateFrom": "2024-05-01", "dateTo": "2024-04-01"}},
        {"queryType": "competition_matches", "parameters": {"competitions": []}},
    ])
    def test_invalid_payloads_are_rejected(self, overrides):
        assert parse_model_classification(self._reply(**overrides)) is None

    def test_fenced_reply_is_accepted(self):
        fenced = "```json\n" + self._reply(queryType="all_teams", parameters={}) + "\n```"

        result = parse_model_classification(fenced)

        assert result is not None
        assert result.query_type == QueryType.ALL_TEAMS

    def test_date_range_without_end_uses_start(self):
        reply = self._reply(queryType="date_range_matches", parameters={"dateFrom": "2024-01-10"})

        result = parse_model_classification(reply)

        assert result.parameters.date_from == result.parameters.date_to == date(2024, 1, 10)

    def test_strip_code_fences(self):
        assert strip_code_fences("```\n{}\n```") == "{}"
        assert strip_code_fences("  {}  ") == "{}"
