"""Grid factory contract and the session request/response models."""

from __future__ import annotations

import inspect
import uuid
from collections.abc import Awaitable
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field


class SessionRequest(BaseModel):
    """Parameters for a ``POST /session`` request."""

    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    browser_name: str = Field("chromium", description="Browser type the client will connect with.")
    launch_options: dict[str, Any] = Field(default_factory=dict)


class SessionTarget(BaseModel):
    """Where a client connects to use the session a factory launched."""

    session_id: str
    ws_endpoint: str
    metadata: dict[str, Any] = Field(default_factory=dict)


@runtime_checkable
class GridFactory(Protocol):
    """Anything with a display ``name`` and a ``launch`` capability.

    ``launch`` may be a plain function or a coroutine function; it may return
    a ``SessionTarget`` or a dict with the same fields.
    """

    name: str

    def launch(self, request: SessionRequest) -> SessionTarget | Awaitable[SessionTarget]:
        ...


async def launch_target(factory: GridFactory, request: SessionRequest) -> SessionTarget:
    """Call ``factory.launch`` and normalize its result to a ``SessionTarget``."""
    result = factory.launch(request)
    if inspect.isawaitable(result):
        result = await result
    if isinstance(result, SessionTarget):
        return result
    return SessionTarget.model_validate(result)
