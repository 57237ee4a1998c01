import logging
from typing import Any, Dict, List, Optional

from pinecone import Pinecone

from app.config.settings import settings
from app.integrations.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class VectorIndex:
    def __init__(self, api_key: Optional[str] = None, index_name: Optional[str] = None):
        api_key = api_key if api_key is not None else settings.pinecone_api_key
        if not api_key:
            raise ExternalServiceError("Pinecone", "Pinecone API key not configured")
        self.index_name = index_name or settings.pinecone_index
        logger.info(f"Connecting to Pinecone index: {self.index_name}")
        pc = Pinecone(api_key=api_key)
        self.index = pc.Index(self.index_name)

    def query(self, vector: List[float], top_k: int = 5, namespace: Optional[str] = None) -> List[Dict[str, Any]]:
        try:
            kwargs = {"vector": vector, "top_k": top_k, "include_metadata": True}
            if namespace:
                kwargs["namespace"] = namespace
            results = self.index.query(**kwargs)
        except Exception as e:
            logger.error(f"Pinecone query failed on {self.index_name}: {e}")
            raise ExternalServiceError("Pinecone", str(e))
        return [
            {"id": match.id, "score": match.score, "metadata": match.metadata or {}}
            for match in results.matches
        ]


def get_vector_index() -> VectorIndex:
    return VectorIndex()
