"""
Pipeline Stage 3: ORACLE — ask the LLM for a new ranking and validate it.

The instruction template gets the active-driver list substituted in; the
enriched windows go in as the request. A response is accepted only if every
validation rule passes. Any failure (transport, JSON, validation, unknown
provider) costs one retry; running out of retries is reported through
OracleResult.ai_call_successful rather than raised.
"""
import json
import logging
import math
import traceback
from dataclasses import dataclass
from typing import Callable, Dict, List, Any, Optional

from driver_ranking import config
from driver_ranking.pipeline.base import ActiveDriver, RankingEntry, RankingWindow
from driver_ranking.services.llm_backends import RankingBackend, get_backend

logger = logging.getLogger('pipeline.oracle')

PLACEHOLDER = '{active_driver_ids}'
REQUIRED_FIELDS = ('driver_id', 'rank', 'tag')


# ── Validation errors ────────────────────────────────────────────────────────

class InvalidOracleOutput(ValueError):
    """Base class for every rejected oracle response."""

    def __init__(self, provider: str, detail: str):
        self.provider = provider
        self.detail = detail
        super().__init__(f"Invalid LLM output ({provider}) - {detail}")


class MissingRankingResults(InvalidOracleOutput):
    pass


class UnexpectedTopLevelKeys(InvalidOracleOutput):
    pass


class RankingResultsNotArray(InvalidOracleOutput):
    pass


class MissingRequiredFields(InvalidOracleOutput):
    pass


class UnexpectedEntryFields(InvalidOracleOutput):
    pass


class InvalidDriverId(InvalidOracleOutput):
    pass


class InvalidRank(InvalidOracleOutput):
    pass


class DuplicateRank(InvalidOracleOutput):
    pass


class DuplicateDriver(InvalidOracleOutput):
    pass


class UnknownDriver(InvalidOracleOutput):
    pass


class UnrankedDrivers(InvalidOracleOutput):
    pass


@dataclass
class OracleResult:
    ai_call_successful: bool
    new_rankings: Optional[List[RankingEntry]] = None


# ── Prompt construction ──────────────────────────────────────────────────────

def load_prompt_template(path: str = None) -> str:
    with open(path or config.RANKING_PROMPT_PATH, encoding='utf-8') as f:
        return f.read()


def build_system_prompt(template: str, active_drivers: List[ActiveDriver]) -> str:
    """Substitute the JSON-encoded active-driver list into the template."""
    return template.replace(PLACEHOLDER, json.dumps([d.to_dict() for d in active_drivers]))


def serialize_evidence(windows: List[RankingWindow]) -> str:
    return json.dumps([window.to_dict() for window in windows])


# ── Validation ───────────────────────────────────────────────────────────────

def validate_ranking_payload(
    payload: Any,
    active_driver_ids,
    provider: str = '',
) -> List[RankingEntry]:
    """
    Check a parsed oracle response against the active-driver set.

    Raises the InvalidOracleOutput subclass for the first rule broken; the
    whole response is rejected, never a single entry.
    """
    if not isinstance(payload, dict) or 'ranking_results' not in payload:
        raise MissingRankingResults(provider, "missing ranking_results key")
    if len(payload) != 1:
        raise UnexpectedTopLevelKeys(provider, "additional fields present in ai_response")
    results = payload['ranking_results']
    if not isinstance(results, list):
        raise RankingResultsNotArray(provider, "ranking_results is NOT an array.")

    active_ids = set(active_driver_ids)
    seen_ranks = set()
    seen_driver_ids = set()
    entries = []

    for result in results:
        if not isinstance(result, dict) or any(result.get(f) is None for f in REQUIRED_FIELDS):
            raise MissingRequiredFields(provider, "missing required fields in ranking_results")
        if len(result) != len(REQUIRED_FIELDS):
            raise UnexpectedEntryFields(provider, "additional fields present in ranking_results")

        driver_id = _coerce_int(result['driver_id'])
        rank = _coerce_int(result['rank'])

        if driver_id is None:
            raise InvalidDriverId(provider, f"invalid driver_id: {result['driver_id']}")
        if rank is None:
            raise InvalidRank(provider, f"invalid rank: {result['rank']}")
        if not 1 <= rank <= len(active_ids):
            raise InvalidRank(provider, f"rank out of range 1..{len(active_ids)}: {rank}")
        if rank in seen_ranks:
            raise DuplicateRank(provider, f"duplicate rank: {rank}")
        if driver_id in seen_driver_ids:
            raise DuplicateDriver(provider, f"duplicate driver_id: {driver_id}")
        if driver_id not in active_ids:
            raise UnknownDriver(provider, f"driver {driver_id} NOT in active drivers")

        seen_ranks.add(rank)
        seen_driver_ids.add(driver_id)
        entries.append(RankingEntry(driver_id=driver_id, rank=rank, tag=str(result['tag'])))

    if len(seen_driver_ids) != len(active_ids):
        raise UnrankedDrivers(provider, "didn't rank all active drivers")

    return entries


# ── Oracle call with retries ─────────────────────────────────────────────────

def propose_ranking(
    system_context: str,
    evidence: str,
    active_drivers: List[ActiveDriver],
    backend: RankingBackend = None,
    provider: str = None,
    record_event: Callable = None,
    request_details: Dict[str, Any] = None,
    retries: int = None,
) -> OracleResult:
    """
    Call the backend and validate, up to `retries` times.

    Each failed attempt is logged and recorded with the retries left. Never
    raises for a failed attempt; check ai_call_successful.
    """
    retries = config.LLM_MAX_RETRIES if retries is None else retries
    provider = provider or (backend.provider if backend else config.AI_PROVIDER)
    request_details = request_details or {}
    active_ids = [driver.id for driver in active_drivers]

    while retries > 0:
        try:
            current = backend or get_backend(provider)
            raw = current.complete(system_context, evidence)
            entries = validate_ranking_payload(json.loads(raw), active_ids, provider)
            logger.info("Oracle (%s) proposed a ranking for %d drivers", provider, len(entries))
            return OracleResult(ai_call_successful=True, new_rankings=entries)
        except Exception as e:
            retries -= 1
            logger.warning("Oracle attempt failed (%d retries left): %s", retries, e)
            if record_event:
                record_event('error', 'Error in proposeRanking', {
                    'error': str(e),
                    'stack': traceback.format_exc(),
                    'retries_left': retries,
                    **request_details,
                }, admin_log=True)

    logger.error("Oracle (%s) gave no valid ranking — retries exhausted", provider)
    return OracleResult(ai_call_successful=False, new_rankings=None)


# ── Private helpers ──────────────────────────────────────────────────────────

def _coerce_int(value) -> Optional[int]:
    """Integer value of an int, integral float, or numeric string; None otherwise."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) and value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        return int(number) if math.isfinite(number) and number.is_integer() else None
    return None
