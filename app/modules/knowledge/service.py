import logging
from typing import Callable, Optional

from fastapi import HTTPException

from app.config.settings import settings
from app.integrations.errors import ExternalServiceError
from app.integrations.openai_client import OpenAIService
from app.integrations.pinecone_client import VectorIndex, get_vector_index
from app.modules.knowledge.schemas import KnowledgeQuery, KnowledgeResponse, KnowledgeMatch

logger = logging.getLogger(__name__)


class KnowledgeService:
    """Semantic search over the therapy knowledge index"""

    def __init__(self, openai_service: OpenAIService, index_factory: Callable[[], VectorIndex] = get_vector_index):
        self.openai = openai_service
        self._index_factory = index_factory
        self._index: Optional[VectorIndex] = None

    @property
    def index(self) -> VectorIndex:
        if self._index is None:
            self._index = self._index_factory()
        return self._index

    def query(self, data: KnowledgeQuery) -> KnowledgeResponse:
        text = data.query.strip()
        if not text:
            raise HTTPException(status_code=400, detail="Query is required")
        namespace = data.namespace or settings.pinecone_namespace
        try:
            vector = self.openai.embed(text)
            matches = self.index.query(vector, top_k=data.top_k, namespace=namespace)
        except ExternalServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=f"{e.service} API error: {e.message}")
        logger.info(f"Knowledge query returned {len(matches)} matches (namespace={namespace})")
        return KnowledgeResponse(matches=[KnowledgeMatch(**m) for m in matches])
