from fastapi import APIRouter, Depends
from app.integrations.openai_client import OpenAIService, get_openai_service
from app.modules.knowledge.schemas import KnowledgeQuery, KnowledgeResponse
from app.modules.knowledge.service import KnowledgeService

router = APIRouter(prefix="/knowledge", tags=["knowledge"])


def get_knowledge_service(openai_service: OpenAIService = Depends(get_openai_service)) -> KnowledgeService:
    return KnowledgeService(openai_service)


@router.post("/query", response_model=KnowledgeResponse)
async def query_knowledge(
    body: KnowledgeQuery,
    service: KnowledgeService = Depends(get_knowledge_service)
):
    return service.query(body)
