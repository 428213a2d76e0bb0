"""Home Assistant hub client with a cached entity directory.

The directory is a snapshot of every entity the hub reports, indexed by id
and by domain (category). Snapshots are rebuilt wholesale on refresh and
swapped in one assignment, so readers never see the two indexes out of sync.

Refreshes are coalesced: while one fetch is in flight, every other caller
awaits that same task instead of hitting the hub again.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

import aiohttp

from .const import (
    CONF_HUB_TOKEN,
    CONF_HUB_URL,
    CONF_REQUEST_TIMEOUT_MS,
    CONF_STATES_TTL_MS,
    CONF_WARMUP_ON_START,
    DEFAULTS,
    FIND_ENTITIES_LIMIT,
)
from .errors import HubTimeoutError, NotFoundError, RemoteError, ValidationError
from .utils.fuzzy_utils import score_entity
from .utils.text_utils import tokenize

_LOGGER = logging.getLogger(__name__)

WARMUP_ATTEMPTS = 3
WARMUP_BACKOFF_SECONDS = 0.25


@dataclass
class Entity:
    """One entity as reported by the hub's bulk state listing."""

    entity_id: str
    name: str
    state: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    tokens: List[str] = field(default_factory=list, repr=False, compare=False)

    @property
    def domain(self) -> str:
        return self.entity_id.split(".", 1)[0]

    @classmethod
    def from_state(cls, record: Dict[str, Any]) -> "Entity":
        attributes = record.get("attributes") or {}
        name = attributes.get("friendly_name") or record["entity_id"]
        return cls(
            entity_id=record["entity_id"],
            name=name,
            state=record.get("state"),
            attributes=attributes,
            tokens=tokenize(name),
        )

    def as_state(self) -> Dict[str, Any]:
        """Hub-shaped state record (what a point lookup would return)."""
        return {
            "entity_id": self.entity_id,
            "state": self.state,
            "attributes": dict(self.attributes),
        }

    def as_listing(self) -> Dict[str, Any]:
        """Public projection: no attributes, no tokens."""
        return {"entity_id": self.entity_id, "name": self.name, "state": self.state}


@dataclass(frozen=True)
class DirectorySnapshot:
    """Immutable, fully indexed view of the hub's entities."""

    refreshed_at: Optional[float] = None
    by_id: Dict[str, Entity] = field(default_factory=dict)
    by_domain: Dict[str, List[Entity]] = field(default_factory=dict)

    @classmethod
    def build(cls, states: Sequence[Dict[str, Any]], refreshed_at: float) -> "DirectorySnapshot":
        by_id: Dict[str, Entity] = {}
        by_domain: Dict[str, List[Entity]] = {}
        for record in states:
            if not record.get("entity_id"):
                continue
            entity = Entity.from_state(record)
            by_id[entity.entity_id] = entity
            by_domain.setdefault(entity.domain, []).append(entity)
        return cls(refreshed_at=refreshed_at, by_id=by_id, by_domain=by_domain)


class HubClient:
    """Client for the hub REST API plus the refreshable entity directory."""

    def __init__(
        self,
        config: Dict[str, Any],
        session: Optional[aiohttp.ClientSession] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._base_url = (config.get(CONF_HUB_URL) or "").rstrip("/")
        token = config.get(CONF_HUB_TOKEN)
        if not self._base_url:
            raise ValidationError(f"{CONF_HUB_URL} is required")
        if not token:
            raise ValidationError(f"{CONF_HUB_TOKEN} is required")

        self._headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        self._states_ttl = config.get(CONF_STATES_TTL_MS, DEFAULTS[CONF_STATES_TTL_MS]) / 1000
        self._timeout = (
            config.get(CONF_REQUEST_TIMEOUT_MS, DEFAULTS[CONF_REQUEST_TIMEOUT_MS]) / 1000
        )
        self._warmup_on_start = config.get(
            CONF_WARMUP_ON_START, DEFAULTS[CONF_WARMUP_ON_START]
        )

        self._session = session
        self._owns_session = session is None
        self._clock = clock

        self._snapshot = DirectorySnapshot()
        self._refresh_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        """Send one bounded request to the hub and decode the JSON body.

        Raises:
            NotFoundError: on HTTP 404
            RemoteError: on any other non-success status, a non-JSON body, or a
                connection error
            HubTimeoutError: when the request exceeds the configured timeout
        """
        url = f"{self._base_url}{path}"
        session = self._get_session()
        try:
            async with session.request(
                method,
                url,
                headers=self._headers,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                if resp.status == 404:
                    raise NotFoundError(f"Hub returned 404 for '{path}'")
                if resp.status >= 400:
                    body = await resp.text()
                    raise RemoteError(resp.status, body)
                try:
                    return await resp.json(content_type=None)
                except ValueError as err:
                    body = await resp.text()
                    raise RemoteError(resp.status, body) from err
        except asyncio.TimeoutError as err:
            raise HubTimeoutError(self._timeout, path) from err
        except aiohttp.ClientError as err:
            raise RemoteError(0, str(err)) from err

    # ------------------------------------------------------------------
    # Directory
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> DirectorySnapshot:
        return self._snapshot

    def _is_fresh(self) -> bool:
        refreshed_at = self._snapshot.refreshed_at
        if refreshed_at is None:
            return False
        return self._clock() - refreshed_at <= self._states_ttl

    async def _fetch_and_index(self) -> None:
        states = await self._request("GET", "/api/states")
        if not isinstance(states, list):
            raise RemoteError(200, "", message="Hub state listing is not a list")
        self._snapshot = DirectorySnapshot.build(states, refreshed_at=self._clock())
        _LOGGER.debug(
            "[HubClient] Directory refreshed: %d entities in %d domains",
            len(self._snapshot.by_id),
            len(self._snapshot.by_domain),
        )

    def _clear_refresh_task(self, task: asyncio.Task) -> None:
        if self._refresh_task is task:
            self._refresh_task = None

    async def refresh(self, force: bool = False) -> None:
        """Refresh the directory unless it is still fresh.

        Concurrent callers share one in-flight fetch. On failure the previous
        snapshot is kept and the error propagates to every waiting caller.
        """
        if not force and self._is_fresh():
            return

        task = self._refresh_task
        if task is None or task.done():
            task = asyncio.ensure_future(self._fetch_and_index())
            task.add_done_callback(self._clear_refresh_task)
            self._refresh_task = task
        else:
            _LOGGER.debug("[HubClient] Joining in-flight directory refresh")

        await asyncio.shield(task)

    async def ensure_fresh(self) -> None:
        await self.refresh(force=False)

    async def _ensure_known(self, entity_id: str) -> Optional[Entity]:
        """Look up an entity, forcing one refresh if it is missing."""
        await self.ensure_fresh()
        entity = self._snapshot.by_id.get(entity_id)
        if entity is not None:
            return entity

        await self.refresh(force=True)
        return self._snapshot.by_id.get(entity_id)

    async def warmup(self) -> None:
        """Best-effort startup prefetch. Never raises."""
        if not self._warmup_on_start:
            return

        for attempt in range(WARMUP_ATTEMPTS):
            try:
                await self.refresh(force=True)
                _LOGGER.info(
                    "[HubClient] Warmup loaded %d entities", len(self._snapshot.by_id)
                )
                return
            except Exception as err:
                if attempt == WARMUP_ATTEMPTS - 1:
                    _LOGGER.warning(
                        "[HubClient] Warmup failed after %d attempts: %s",
                        WARMUP_ATTEMPTS,
                        err,
                    )
                    return
                _LOGGER.debug("[HubClient] Warmup attempt %d failed: %s", attempt + 1, err)
                await asyncio.sleep(WARMUP_BACKOFF_SECONDS * (attempt + 1))

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def get_state(self, entity_id: str) -> Dict[str, Any]:
        """Return the state record for an entity.

        Falls back from the cached directory to a forced refresh and finally
        to a direct point lookup (entities missing from the bulk listing).
        """
        if not entity_id:
            raise ValidationError("entity_id is required")

        entity = await self._ensure_known(entity_id)
        if entity is not None:
            return entity.as_state()

        _LOGGER.debug("[HubClient] '%s' not in directory, asking hub directly", entity_id)
        try:
            return await self._request("GET", f"/api/states/{entity_id}")
        except NotFoundError as err:
            raise NotFoundError(f"Entity '{entity_id}' not found") from err

    async def call_service(
        self,
        domain: str,
        service: str,
        target: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Invoke a hub service, guarding against stale/deleted target entities."""
        if not domain:
            raise ValidationError("domain is required")
        if not service:
            raise ValidationError("service is required")

        target = target or {}
        entity_id = target.get("entity_id")
        area_id = target.get("area_id")

        if entity_id and await self._ensure_known(entity_id) is None:
            raise NotFoundError(f"Entity '{entity_id}' not found")

        service_data = dict(data or {})
        if entity_id:
            service_data["entity_id"] = entity_id
        if area_id:
            service_data["area_id"] = area_id

        _LOGGER.debug("[HubClient] Calling %s.%s with %s", domain, service, service_data)
        await self._request("POST", f"/api/services/{domain}/{service}", service_data)
        return {"success": True, "message": f"Called {domain}.{service}"}

    async def find_entities(self, domain: str, search: Optional[str] = None) -> List[Dict[str, Any]]:
        """List up to 50 entities of a domain, optionally ranked by a search phrase."""
        if not domain:
            raise ValidationError("domain is required")

        await self.ensure_fresh()
        entities = self._snapshot.by_domain.get(domain, [])

        if not search:
            return [e.as_listing() for e in entities[:FIND_ENTITIES_LIMIT]]

        query_tokens = tokenize(search)
        scored = [
            (score_entity(e, search, query_tokens, penalize=False), e) for e in entities
        ]
        scored = [item for item in scored if item[0] > 0]
        scored.sort(key=lambda item: item[0], reverse=True)
        return [e.as_listing() for _, e in scored[:FIND_ENTITIES_LIMIT]]

    def get_summary(self, entity_id: str) -> Optional[Dict[str, Any]]:
        """Cached summary for rendering; never touches the hub."""
        entity = self._snapshot.by_id.get(entity_id)
        if entity is None:
            return None
        return {
            "entity_id": entity_id,
            "name": entity.name,
            "domain": entity.domain,
            "attributes": dict(entity.attributes),
        }

    async def resolve_entity_id(
        self, domains: Sequence[str], search: Optional[str], min_score: int = 4
    ) -> Optional[str]:
        """Pick the best-scoring entity id across domains, or None.

        Ties keep enumeration order (stable sort, first seen wins).
        """
        if not domains or not search:
            return None

        await self.ensure_fresh()
        query_tokens = tokenize(search)

        candidates = []
        for domain in domains:
            for entity in self._snapshot.by_domain.get(domain, []):
                score = score_entity(entity, search, query_tokens)
                if score > 0:
                    candidates.append((score, entity.entity_id))

        if not candidates:
            return None

        candidates.sort(key=lambda item: item[0], reverse=True)
        best_score, best_id = candidates[0]
        if best_score < min_score:
            _LOGGER.debug(
                "[HubClient] Best match for '%s' is %s (%d) below min score %d",
                search,
                best_id,
                best_score,
                min_score,
            )
            return None
        return best_id
