"""Edit-ingestion hook.

POST /api/v1/hooks/edit-committed -- the host platform reports a saved edit
"""

from fastapi import APIRouter, HTTPException

from contribscores.dependencies import DbSession, RedisClient
from contribscores.schemas.leaderboard import EditCommitted, EditCommittedAccepted
from contribscores.services.cache import ResultCache, on_edit_committed
from contribscores.services.evaluator import find_registered_user

router = APIRouter(prefix="/api/v1", tags=["hooks"])


@router.post(
    "/hooks/edit-committed",
    response_model=EditCommittedAccepted,
    status_code=202,
)
async def edit_committed(
    body: EditCommitted,
    db: DbSession,
    redis_client: RedisClient,
) -> EditCommittedAccepted:
    """Invalidate every cached metric of the editing user.

    Runs even when caching is currently disabled, so no stale value survives
    the cache being switched back on.
    """
    user = await find_registered_user(db, body.user_name)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    removed = await on_edit_committed(ResultCache(redis_client), user.id)
    return EditCommittedAccepted(user_id=user.id, invalidated_keys=removed)
