from __future__ import annotations

import logging

from talentbridge.core.match_scorer import MatchScorer
from talentbridge.core.match_service import calculate_match_score_for_job_user_with_client
from talentbridge.core.tasks import TaskScheduler
from talentbridge.db.session import Store

logger = logging.getLogger(__name__)


class MatchScoreQueue:
    """Background match scoring on an elevated repository."""

    def __init__(self, store: Store, scorer: MatchScorer, scheduler: TaskScheduler):
        self.store = store
        self.scorer = scorer
        self.scheduler = scheduler

    def enqueue(self, job_id: str, user_id: str) -> None:
        logger.info("Queueing match score job_id=%s user_id=%s", job_id, user_id)
        self.scheduler.schedule(self._run_logged, job_id, user_id)

    async def run_match_score_job(self, job_id: str, user_id: str) -> None:
        async with self.store.elevated() as repo:
            await calculate_match_score_for_job_user_with_client(repo, self.scorer, job_id, user_id)

    async def _run_logged(self, job_id: str, user_id: str) -> None:
        try:
            await self.run_match_score_job(job_id, user_id)
        except Exception:
            logger.exception("Failed to calculate match score in background job_id=%s user_id=%s", job_id, user_id)
