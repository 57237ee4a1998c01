from fastapi import APIRouter, Depends, Query, Response
from app.database.supabase_client import get_supabase
from app.modules.engagement.schemas import VoteRequest, ReactionRequest
from app.modules.engagement.service import EngagementService
from supabase import Client
from typing import Optional

router = APIRouter(prefix="/community", tags=["engagement"])


def get_engagement_service(supabase: Client = Depends(get_supabase)) -> EngagementService:
    return EngagementService(supabase)


def _split(ids: Optional[str]):
    return [i for i in ids.split(",") if i] if ids else []


@router.post("/votes")
async def cast_vote(
    vote: VoteRequest,
    response: Response,
    service: EngagementService = Depends(get_engagement_service)
):
    """Create, switch or toggle off a vote"""
    body, status_code = service.vote(vote.user_id, vote.post_id, vote.comment_id, vote.vote_type)
    response.status_code = status_code
    return body


@router.delete("/votes")
async def remove_vote(
    user_id: str = Query(..., min_length=1),
    post_id: Optional[str] = None,
    comment_id: Optional[str] = None,
    service: EngagementService = Depends(get_engagement_service)
):
    return service.remove_vote(user_id, post_id, comment_id)


@router.get("/votes")
async def get_votes(
    user_id: str = Query(..., min_length=1),
    post_ids: Optional[str] = None,
    comment_ids: Optional[str] = None,
    service: EngagementService = Depends(get_engagement_service)
):
    return service.get_votes(user_id, _split(post_ids), _split(comment_ids))


@router.post("/reactions")
async def react(
    reaction: ReactionRequest,
    response: Response,
    service: EngagementService = Depends(get_engagement_service)
):
    """A null reaction_type removes the user's reaction"""
    body, status_code = service.react(reaction.user_id, reaction.post_id, reaction.comment_id, reaction.reaction_type)
    response.status_code = status_code
    return body


@router.delete("/reactions")
async def remove_reaction(
    user_id: str = Query(..., min_length=1),
    post_id: Optional[str] = None,
    comment_id: Optional[str] = None,
    service: EngagementService = Depends(get_engagement_service)
):
    return service.remove_reaction(user_id, post_id, comment_id)


@router.get("/reactions")
async def get_reactions(
    user_id: str = Query(..., min_length=1),
    post_id: Optional[str] = None,
    comment_id: Optional[str] = None,
    service: EngagementService = Depends(get_engagement_service)
):
    return service.get_reactions(user_id, post_id, comment_id)
