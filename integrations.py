"""Provider registry used by workflow actions that reach third-party services.

Providers are registered per `(provider, action)` pair. A provider is a
callable taking the request dict `{appId, userId, payload, variables}` and
returning the result data (or a full `{success, data, error}` dict). Sync
providers run in a worker thread so they never block the event loop.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Tuple

import anyio

logger = logging.getLogger("appforge.integrations")

Provider = Callable[[dict], Any]


@dataclass
class IntegrationError(Exception):
    code: str
    message: str
    provider: str | None = None

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return self.message


def _normalize_result(value: Any) -> dict:
    if isinstance(value, dict) and "success" in value:
        out = {"success": bool(value.get("success"))}
        if value.get("data") is not None:
            out["data"] = value["data"]
        if value.get("error"):
            out["error"] = str(value["error"])
        return out
    return {"success": True, "data": value}


class IntegrationRegistry:
    def __init__(self) -> None:
        self._providers: Dict[Tuple[str, str], Provider] = {}

    def register(self, provider: str, action: str, handler: Provider) -> None:
        if not provider or not action:
            raise IntegrationError("INTEGRATION_KEY_INVALID", "provider and action are required", provider)
        if not callable(handler):
            raise IntegrationError("INTEGRATION_HANDLER_INVALID", "handler must be callable", provider)
        self._providers[(provider, action)] = handler

    def unregister(self, provider: str, action: str) -> None:
        self._providers.pop((provider, action), None)

    def has(self, provider: str, action: str) -> bool:
        return (provider, action) in self._providers

    def list_actions(self) -> list[str]:
        return sorted(f"{provider}.{action}" for provider, action in self._providers)

    async def execute_action(self, provider: str, action: str, request: dict | None = None) -> dict:
        handler = self._providers.get((provider, action))
        if handler is None:
            return {"success": False, "error": f"Integration not configured: {provider}.{action}"}
        request = {
            "appId": (request or {}).get("appId"),
            "userId": (request or {}).get("userId"),
            "payload": dict((request or {}).get("payload") or {}),
            "variables": dict((request or {}).get("variables") or {}),
        }
        try:
            if inspect.iscoroutinefunction(handler):
                value = await handler(request)
            else:
                value = await anyio.to_thread.run_sync(handler, request)
                if inspect.isawaitable(value):
                    value = await value
        except IntegrationError as exc:
            logger.warning("integration_failed provider=%s action=%s code=%s error=%s", provider, action, exc.code, exc.message)
            return {"success": False, "error": exc.message}
        except Exception as exc:
            logger.exception("integration_crashed provider=%s action=%s", provider, action)
            return {"success": False, "error": str(exc) or exc.__class__.__name__}
        result = _normalize_result(value)
        logger.info("integration_executed provider=%s action=%s success=%s", provider, action, result["success"])
        return result
