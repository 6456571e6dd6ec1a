"""Score store API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from api.limiter import RATE_LIMIT, limiter
from api.schemas import (
    AckResponse,
    LeaderboardEntry,
    LeaderboardResponse,
    ScoreResponse,
    ScoreUpsertRequest,
)
from api.store import ScoreRepository, get_score_repository
from config import config
from core.identity import normalize_address

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def get_scores(
    repository: Annotated[ScoreRepository, Depends(get_score_repository)],
    address: Annotated[str | None, Query()] = None,
) -> ScoreResponse | LeaderboardResponse:
    """
    Get one wallet's score, or the leaderboard when no address is given.

    Unknown addresses score 0.
    """
    address = normalize_address(address) if address else None
    if address:
        return ScoreResponse(address=address, score=await repository.get_score(address))

    entries = await repository.leaderboard(config.scores.leaderboard_size)
    return LeaderboardResponse(
        leaderboard=[
            LeaderboardEntry(address=e.address, score=e.score, updated_at=e.updated_at)
            for e in entries
        ],
    )


@router.post("")
@limiter.limit(RATE_LIMIT)
async def upsert_score(
    request: Request,
    payload: ScoreUpsertRequest,
    repository: Annotated[ScoreRepository, Depends(get_score_repository)],
) -> AckResponse:
    """Create or overwrite a wallet's score. Any caller may set any address."""
    address = normalize_address(payload.address)
    await repository.set_score(address, payload.score)
    logger.info("Score for %s set to %d", address, payload.score)
    return AckResponse()
