"""
Pipeline Manager — one ranking-update run.

  WINDOWS → TELEMETRY → ORACLE → COMMIT

Each stage feeds the next; any stage failure aborts the run. The run is
audited through the event sink (start, success with full evidence, failure
with error detail) and store handles are released on every exit path.
"""
import logging
import traceback
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from driver_ranking.config import REQUEST_DETAILS
from driver_ranking.extensions import open_stores
from driver_ranking.pipeline.base import RankingEntry, utcnow
from driver_ranking.pipeline.oracle import (
    build_system_prompt, load_prompt_template, propose_ranking, serialize_evidence,
)
from driver_ranking.pipeline.telemetry import enrich_windows
from driver_ranking.pipeline.windows import fetch_rank_effects
from driver_ranking.services.events import EventRecorder
from driver_ranking.services.llm_backends import RankingBackend
from driver_ranking.services.ranking_store import commit_ranking, fetch_active_drivers

logger = logging.getLogger('pipeline.manager')


class RankingUpdateError(RuntimeError):
    """Raised when a run cannot produce a ranking to commit."""


@dataclass
class RunOutcome:
    success: bool
    error: Optional[BaseException] = None
    new_rankings: List[RankingEntry] = field(default_factory=list)


def update_driver_ranking(
    stores,
    record_event: Callable,
    backend: RankingBackend = None,
    provider: str = None,
    clock: Callable = utcnow,
) -> List[RankingEntry]:
    """
    Run every stage against already-open store handles.

    Raises on any terminal failure after recording it.
    """
    record_event('info', 'API called', dict(REQUEST_DETAILS), admin_log=True)

    try:
        session = stores.session()
        try:
            # Stage 1: windows + reviews from the relational store
            windows = fetch_rank_effects(session, now=clock())
            active_drivers = fetch_active_drivers(session)
            logger.info("%d windows, %d active drivers", len(windows), len(active_drivers))
            # No transaction stays open across the slow stages; commit starts a new one
            session.rollback()

            # Stage 2: profile views from the event log
            windows = enrich_windows(stores.events_collection(), windows)

            # Stage 3: oracle
            system_prompt = build_system_prompt(load_prompt_template(), active_drivers)
            evidence = serialize_evidence(windows)
            result = propose_ranking(
                system_prompt, evidence, active_drivers,
                backend=backend,
                provider=provider,
                record_event=record_event,
                request_details=REQUEST_DETAILS,
            )
            if not result.ai_call_successful:
                raise RankingUpdateError('Failed to make LLM call')

            # Stage 4: commit, timestamp captured once right before the write
            enforced_at = clock()
            commit_ranking(session, result.new_rankings, enforced_at)
        finally:
            session.close()

        record_event('info', 'Successful response', {
            'new_rankings': [entry.to_dict() for entry in result.new_rankings],
            'rank_effects': [window.to_dict() for window in windows],
            'active_drivers': [driver.to_dict() for driver in active_drivers],
            'enforced_at': enforced_at.isoformat(),
            **REQUEST_DETAILS,
        }, admin_log=True)
        logger.info("Ranking update committed — %d drivers at %s",
                    len(result.new_rankings), enforced_at.isoformat())
        return result.new_rankings

    except Exception as e:
        logger.error("Ranking update FAILED: %s", e)
        record_event('error', 'Error in updateDriverRanking', {
            'error': str(e),
            'stack': traceback.format_exc(),
            **REQUEST_DETAILS,
        }, admin_log=True)
        raise


def run_ranking_update(backend: RankingBackend = None, provider: str = None, **store_kwargs) -> RunOutcome:
    """Open the stores, run the pipeline once, close the stores. Never raises."""
    with open_stores(**store_kwargs) as stores:
        recorder = EventRecorder(stores.events_collection)
        try:
            new_rankings = update_driver_ranking(stores, recorder, backend=backend, provider=provider)
        except Exception as e:
            return RunOutcome(success=False, error=e)
        return RunOutcome(success=True, new_rankings=new_rankings)
