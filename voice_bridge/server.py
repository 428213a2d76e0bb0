"""HTTP surface for the Voice Bridge agent.

Routes:
    POST /voice   {"text": "..."} -> {"response": "..."}
    GET  /health  -> {"status": "ok"}

/voice requires ``Authorization: Bearer <api_key>``; without a configured key
every request is rejected.
"""

import hmac
import logging
from typing import Optional

from aiohttp import web

from . import async_start
from .const import CONF_API_KEY
from .constants.messages_en import APOLOGY, ERROR_MESSAGES
from .errors import ValidationError

_LOGGER = logging.getLogger(__name__)

AGENT_KEY = web.AppKey("agent", object)
WARMUP_TASK_KEY = web.AppKey("warmup_task", object)

_BEARER_PREFIX = "Bearer "


def _is_authorized(request: web.Request, api_key: Optional[str]) -> bool:
    if not api_key:
        return False
    header = request.headers.get("Authorization", "")
    if not header.startswith(_BEARER_PREFIX):
        return False
    return hmac.compare_digest(header[len(_BEARER_PREFIX):], api_key)


async def handle_voice(request: web.Request) -> web.Response:
    agent = request.app[AGENT_KEY]

    if not _is_authorized(request, agent.config.get(CONF_API_KEY)):
        _LOGGER.warning("Rejected /voice request from %s", request.remote)
        return web.json_response({"error": ERROR_MESSAGES["unauthorized"]}, status=401)

    try:
        body = await request.json()
    except ValueError:
        body = None
    text = body.get("text") if isinstance(body, dict) else None
    if not isinstance(text, str) or not text.strip():
        return web.json_response({"error": ERROR_MESSAGES["no_text"]}, status=400)

    try:
        response = await agent.async_process(text)
    except ValidationError:
        return web.json_response({"error": ERROR_MESSAGES["no_text"]}, status=400)
    except Exception:
        _LOGGER.exception("Unhandled error for /voice")
        return web.json_response({"response": APOLOGY}, status=500)

    return web.json_response({"response": response})


async def handle_health(_: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


async def _on_startup(app: web.Application) -> None:
    app[WARMUP_TASK_KEY] = await async_start(app[AGENT_KEY])


async def _on_cleanup(app: web.Application) -> None:
    task = app.get(WARMUP_TASK_KEY)
    if task is not None and not task.done():
        task.cancel()
    await app[AGENT_KEY].hub.close()


def create_app(agent) -> web.Application:
    """Build the aiohttp application around a ready agent."""
    app = web.Application()
    app[AGENT_KEY] = agent
    app.router.add_post("/voice", handle_voice)
    app.router.add_get("/health", handle_health)
    app.on_startup.append(_on_startup)
    app.on_cleanup.append(_on_cleanup)
    return app
