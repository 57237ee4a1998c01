from types import SimpleNamespace

import pytest

from app.main import app
from app.integrations.errors import ExternalServiceError
from app.integrations.pinecone_client import VectorIndex
from app.modules.knowledge.routes import get_knowledge_service
from app.modules.knowledge.service import KnowledgeService


class StubEmbedder:
    def __init__(self, error=None):
        self.error = error
        self.texts = []

    def embed(self, text):
        if self.error:
            raise self.error
        self.texts.append(text)
        return [0.1, 0.2, 0.3]


class StubIndex:
    def __init__(self):
        self.calls = []

    def query(self, vector, top_k=5, namespace=None):
        self.calls.append((vector, top_k, namespace))
        return [{"id": "doc-1", "score": 0.91, "metadata": {"title": "Grounding techniques"}}]


@pytest.fixture
def index(db):
    stub = StubIndex()
    app.dependency_overrides[get_knowledge_service] = lambda: KnowledgeService(StubEmbedder(), lambda: stub)
    return stub


def test_query_returns_matches(client, index):
    resp = client.post("/api/v1/knowledge/query", json={"query": " panic attacks ", "top_k": 3, "namespace": "cbt"})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["matches"] == [{"id": "doc-1", "score": 0.91, "metadata": {"title": "Grounding techniques"}}]
    assert index.calls == [([0.1, 0.2, 0.3], 3, "cbt")]


def test_empty_query_rejected(client, index):
    resp = client.post("/api/v1/knowledge/query", json={"query": "   "})
    assert resp.status_code == 400
    assert index.calls == []


def test_top_k_bounds(client, index):
    resp = client.post("/api/v1/knowledge/query", json={"query": "sleep", "top_k": 500})
    assert resp.status_code == 400


def test_index_is_built_lazily():
    built = []
    service = KnowledgeService(StubEmbedder(), lambda: built.append(1) or StubIndex())
    assert built == []
    service.query(SimpleNamespace(query="sleep", namespace=None, top_k=5))
    service.query(SimpleNamespace(query="grief", namespace=None, top_k=5))
    assert built == [1]


def test_embedding_failure_maps_status():
    service = KnowledgeService(StubEmbedder(ExternalServiceError("OpenAI", "quota exceeded", 429)), StubIndex)
    with pytest.raises(Exception) as exc:
        service.query(SimpleNamespace(query="sleep", namespace=None, top_k=5))
    assert exc.value.status_code == 429
    assert exc.value.detail == "OpenAI API error: quota exceeded"


def test_vector_index_requires_key():
    with pytest.raises(ExternalServiceError):
        VectorIndex(api_key="")


def test_vector_index_flattens_matches():
    vector_index = VectorIndex.__new__(VectorIndex)
    vector_index.index_name = "risetwice"
    seen = {}

    def query(**kwargs):
        seen.update(kwargs)
        return SimpleNamespace(matches=[SimpleNamespace(id="a", score=0.5, metadata=None)])

    vector_index.index = SimpleNamespace(query=query)
    assert vector_index.query([1.0], top_k=2) == [{"id": "a", "score": 0.5, "metadata": {}}]
    assert seen == {"vector": [1.0], "top_k": 2, "include_metadata": True}
