"""
Shared test fixtures.

Provides: a scripted stand-in for the Ollama client, an in-memory SQLite
dataset seeded with four teams and five matches, and the repository over it.
"""

from typing import Dict, List, Optional, Sequence

import pytest

from dataset_engine.data_source import (
    SqlMatchRepository,
    create_db_engine,
    create_session_factory,
    init_db,
    seed_dataset,
)
from rag_pipeline.ollama_client import OllamaStatus


class ScriptedOllama:
    """
    Duck-typed replacement for ``OllamaClient``.

    ``vectors`` maps prompt text to its embedding; unknown text gets
    ``default_vector``. ``replies`` maps model name to a reply string or to an
    exception instance that ``generate`` raises.
    """

    def __init__(
        self,
        vectors: Optional[Dict[str, Sequence[float]]] = None,
        default_vector: Sequence[float] = (0.0, 0.0, 1.0),
        replies: Optional[Dict[str, object]] = None,
        embed_error: Optional[Exception] = None,
    ):
        self.vectors = dict(vectors or {})
        self.default_vector = list(default_vector)
        self.replies = dict(replies or {})
        self.embed_error = embed_error
        self.embedded: List[str] = []
        self.prompts: List[str] = []
        self.models_tried: List[str] = []

    def embed(self, model: str, prompt: str) -> List[float]:
        if self.embed_error is not None:
            raise self.embed_error
        self.embedded.append(prompt)
        return list(self.vectors.get(prompt, self.default_vector))

    def generate(self, model: str, prompt: str) -> str:
        self.models_tried.append(model)
        self.prompts.append(prompt)
        reply = self.replies.get(model, "stub answer")
        if isinstance(reply, Exception):
            raise reply
        return reply

    def check_availability(self) -> OllamaStatus:
        return OllamaStatus(available=True, models=sorted(self.replies) or ["gemma3:1b"])


TEAMS = [
    {"name": "Arsenal", "image": "https://img.example/arsenal.png"},
    {"name": "Chelsea", "image": "https://img.example/chelsea.png"},
    {"name": "Barcelona", "image": None},
    {"name": "Real Madrid", "image": None},
]

MATCHES = [
    {
        "home_team_name": "Arsenal", "away_team_name": "Chelsea",
        "competition_name": "Premier League", "match_time": "2024-01-10T15:00:00",
    },
    {
        "home_team_name": "Chelsea", "away_team_name": "Arsenal",
        "competition_name": "Premier League", "match_time": "2024-03-02T17:30:00",
    },
    {
        "home_team_name": "Barcelona", "away_team_name": "Real Madrid",
        "competition_name": "La Liga", "match_time": "2024-01-20T21:00:00",
    },
    {
        "home_team_name": "Arsenal", "away_team_name": "Barcelona",
        "competition_name": "Champions League", "match_time": "2030-05-01T20:00:00",
    },
    {
        "home_team_name": "Real Madrid", "away_team_name": "Chelsea",
        "competition_name": "Champions League", "match_time": "2030-05-08T20:00:00",
    },
]


@pytest.fixture
def scripted_ollama():
    return ScriptedOllama()


@pytest.fixture
def session_factory():
    engine = create_db_engine("sqlite:///:memory:")
    init_db(engine)
    factory = create_session_factory(engine)
    seed_dataset(factory, TEAMS, MATCHES)
    yield factory
    engine.dispose()


@pytest.fixture
def repository(session_factory):
    return SqlMatchRepository(session_factory)
