"""
Pipeline Stage 2: TELEMETRY — profile-view counts from the event log.

One aggregation per window, fanned out on a thread pool and joined before the
stage returns. Any failing query fails the whole stage.
"""
import concurrent.futures
import logging
from dataclasses import replace
from typing import Dict, List, Any

from driver_ranking.config import PROFILE_VIEW_MESSAGE, PROFILE_VIEW_URL, ENRICHMENT_MAX_WORKERS
from driver_ranking.pipeline.base import ProfileViewStats, RankingWindow

logger = logging.getLogger('pipeline.telemetry')


def profile_view_pipeline(window: RankingWindow) -> List[Dict[str, Any]]:
    """Mongo aggregation counting views and distinct viewers per driver in a window."""
    return [
        {
            '$match': {
                'message': PROFILE_VIEW_MESSAGE,
                'url': PROFILE_VIEW_URL,
                'timestamp': {
                    '$gt': window.start_time,
                    '$lte': window.end_time,
                },
                'body.driver_id': {'$in': [int(driver_id) for driver_id in window.driver_ids]},
            }
        },
        {
            '$group': {
                '_id': '$body.driver_id',
                'profile_views': {'$sum': 1},
                'distinct_users': {'$addToSet': '$user_id'},
            }
        },
        {
            '$project': {
                'profile_views': 1,
                'distinct_profile_views': {'$size': '$distinct_users'},
            }
        },
    ]


def fetch_profile_views(collection, window: RankingWindow) -> Dict[int, ProfileViewStats]:
    """Run the aggregation for one window. An empty driver set skips the query."""
    if not window.driver_ids:
        return {}

    stats = {}
    for result in collection.aggregate(profile_view_pipeline(window)):
        stats[int(result['_id'])] = ProfileViewStats(
            profile_views=result.get('profile_views', 0) or 0,
            distinct_profile_views=result.get('distinct_profile_views', 0) or 0,
        )
    return stats


def enrich_window(collection, window: RankingWindow) -> RankingWindow:
    """Return a copy of the window with profile-view fields set on every entry."""
    stats = fetch_profile_views(collection, window)
    entries = []
    for entry in window.entries:
        views = stats.get(entry.driver_id, ProfileViewStats())
        entries.append(replace(
            entry,
            profile_views=views.profile_views,
            distinct_profile_views=views.distinct_profile_views,
        ))
    return replace(window, entries=entries)


def enrich_windows(collection, windows: List[RankingWindow], max_workers: int = None) -> List[RankingWindow]:
    """Enrich all windows concurrently; result order matches input order."""
    if not windows:
        return []

    workers = max(1, min(max_workers or ENRICHMENT_MAX_WORKERS, len(windows)))
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(enrich_window, collection, window) for window in windows]
        enriched = [future.result() for future in futures]

    logger.info("Enriched %d windows with profile views", len(enriched))
    return enriched
