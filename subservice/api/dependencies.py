"""Shared API dependencies."""
from __future__ import annotations

import asyncio
import functools
import time
from typing import Any

from fastapi import Request

from subservice.core.exceptions import OperationTimeoutError
from subservice.services.subscription_repository import SubscriptionRepository


class RequestStore:
    """Runs repository operations within the time left in the request budget."""

    def __init__(self, repository: SubscriptionRepository, deadline: float):
        self.repository = repository
        self.deadline = deadline

    async def run(self, operation: str, *args: Any) -> Any:
        remaining = self.deadline - time.monotonic()
        if remaining <= 0:
            raise OperationTimeoutError(f"Request budget spent before {operation} started")
        return await run_bounded(getattr(self.repository, operation), *args, timeout=remaining)


async def run_bounded(func, *args: Any, timeout: float) -> Any:
    """Run a blocking call in a worker thread; stop waiting for it after ``timeout`` seconds.

    The worker is not interrupted, its result is discarded.
    """
    loop = asyncio.get_running_loop()
    try:
        return await asyncio.wait_for(loop.run_in_executor(None, functools.partial(func, *args)), timeout=timeout)
    except asyncio.TimeoutError as exc:
        name = getattr(func, "__name__", "operation")
        raise OperationTimeoutError(f"{name} did not finish within {timeout:.2f}s") from exc


def get_repository(request: Request) -> SubscriptionRepository:
    return request.app.state.repository


def get_store(request: Request) -> RequestStore:
    started_at = getattr(request.state, "started_at", None) or time.monotonic()
    deadline = started_at + request.app.state.settings.request_timeout
    return RequestStore(get_repository(request), deadline)
