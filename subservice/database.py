"""
Database connection pool lifecycle.

The pool is a SQLAlchemy ``Engine`` built once at startup, verified with a
liveness query, handed to the repository and disposed of at shutdown.
"""
from __future__ import annotations

import enum
import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError

from subservice.core.exceptions import ConfigurationError, ConnectivityError

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 10
DEFAULT_TIMEOUT = 5.0


class AttemptPhase(str, enum.Enum):
    CONSTRUCTING = "constructing"
    CHECKING_LIVENESS = "checking-liveness"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


def backoff_delay(attempt: int) -> float:
    """Seconds to wait after failed attempt number ``attempt`` (1-based). Linear, no jitter."""
    return float(attempt)


def parse_descriptor(descriptor: str) -> URL:
    """Parse a connection descriptor, raising ``ConfigurationError`` when it is malformed."""
    try:
        url = make_url(descriptor)
        # Resolves the dialect so an unknown scheme fails here rather than on every retry.
        url.get_dialect()
    except (ArgumentError, ValueError, TypeError) as exc:
        raise ConfigurationError(f"Malformed database descriptor: {exc}") from exc

    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        raise ConfigurationError("An in-memory SQLite database cannot back a shared pool")
    return url


def safe_descriptor(descriptor: str | URL) -> str:
    """Render a descriptor with its password masked, for logs."""
    try:
        url = descriptor if isinstance(descriptor, URL) else make_url(descriptor)
    except (ArgumentError, ValueError, TypeError):
        return "<unparsable descriptor>"
    return url.render_as_string(hide_password=True)


def _connect_args(url: URL, timeout: float, statement_timeout: Optional[float]) -> dict[str, Any]:
    backend = url.get_backend_name()
    if backend == "postgresql":
        args: dict[str, Any] = {"connect_timeout": max(int(timeout), 1)}
        if statement_timeout:
            # Lets the server cancel queries whose request budget has run out.
            args["options"] = f"-c statement_timeout={int(statement_timeout * 1000)}"
        return args
    if backend == "sqlite":
        return {"timeout": timeout, "check_same_thread": False}
    return {}


def create_pool(
    url: URL,
    max_connections: int,
    timeout: float = DEFAULT_TIMEOUT,
    statement_timeout: Optional[float] = None,
) -> Engine:
    """Build an engine whose pool never holds more than ``max_connections`` connections."""
    return create_engine(
        url,
        pool_size=max_connections,
        max_overflow=0,
        pool_timeout=timeout,
        pool_pre_ping=True,
        connect_args=_connect_args(url, timeout, statement_timeout),
    )


def ping(engine: Engine) -> None:
    """Borrow a connection and run a trivial query on it."""
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))


def release(engine: Optional[Engine]) -> None:
    """Close every pooled connection. Safe to call more than once."""
    if engine is None:
        return
    engine.dispose()
    logger.info("Database pool released (%s)", safe_descriptor(engine.url))


class StepTimeout(TimeoutError):
    """A construction or liveness step outlived its limit and was abandoned."""


def _call_with_timeout(
    limit: float,
    func: Callable[..., Any],
    *args: Any,
    on_abandon: Optional[Callable[[Future], None]] = None,
    **kwargs: Any,
) -> Any:
    """
    Run ``func`` on a worker thread and stop waiting after ``limit`` seconds.

    An abandoned worker keeps running. ``on_abandon`` is attached to its
    future and runs once the worker finally returns.
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="db-connect")
    future = executor.submit(func, *args, **kwargs)
    try:
        return future.result(timeout=limit)
    except FutureTimeoutError as exc:
        if on_abandon is not None:
            future.add_done_callback(on_abandon)
        name = getattr(func, "__name__", repr(func))
        raise StepTimeout(f"{name} did not finish within {limit:g}s") from exc
    finally:
        executor.shutdown(wait=False)


def _release_late_engine(future: Future) -> None:
    if not future.cancelled() and future.exception() is None:
        release(future.result())


def _release_after_check(engine: Engine) -> Callable[[Future], None]:
    # Disposes the pool only once the late check has returned its connection.
    return lambda _future: release(engine)


def acquire(
    descriptor: str,
    max_connections: int = 10,
    *,
    attempts: int = DEFAULT_ATTEMPTS,
    timeout: float = DEFAULT_TIMEOUT,
    statement_timeout: Optional[float] = None,
    engine_factory: Callable[..., Engine] = create_pool,
    liveness_check: Callable[[Engine], None] = ping,
    sleep: Callable[[float], None] = time.sleep,
) -> Engine:
    """
    Turn a descriptor into a verified connection pool.

    Each attempt builds a pool and pings it, each step bounded by ``timeout``.
    A failed attempt disposes of whatever it built and waits ``backoff_delay``
    before the next one. A step that timed out is disposed of once its worker
    finally returns. When every attempt fails, ``ConnectivityError`` is
    raised from the last failure.
    """
    url = parse_descriptor(descriptor)
    safe_url = safe_descriptor(url)
    last_error: Optional[BaseException] = None

    for attempt in range(1, attempts + 1):
        phase = AttemptPhase.CONSTRUCTING
        engine: Optional[Engine] = None
        try:
            engine = _call_with_timeout(
                timeout,
                engine_factory,
                url,
                max_connections=max_connections,
                timeout=timeout,
                statement_timeout=statement_timeout,
                on_abandon=_release_late_engine,
            )
            phase = AttemptPhase.CHECKING_LIVENESS
            _call_with_timeout(timeout, liveness_check, engine, on_abandon=_release_after_check(engine))
        except (SQLAlchemyError, OSError, TimeoutError) as exc:
            last_error = exc
            if engine is not None and not isinstance(exc, StepTimeout):
                release(engine)
            delay = backoff_delay(attempt)
            logger.warning(
                "Database %s: attempt %s/%s failed while %s: %s; waiting %.0fs",
                safe_url,
                attempt,
                attempts,
                phase.value,
                exc,
                delay,
            )
            sleep(delay)
            continue

        logger.info(
            "Database %s: %s on attempt %s/%s (max_connections=%s)",
            safe_url,
            AttemptPhase.SUCCEEDED.value,
            attempt,
            attempts,
            max_connections,
        )
        return engine

    logger.error("Database %s: %s after %s attempts", safe_url, AttemptPhase.EXHAUSTED.value, attempts)
    raise ConnectivityError(f"Database {safe_url} unreachable after {attempts} attempts") from last_error


def database_health(engine: Engine) -> dict[str, Any]:
    """
    Return structured database health details.
    """
    try:
        ping(engine)
        return {
            "ok": True,
            "dialect": engine.dialect.name,
            "database": engine.url.database,
            "pool": engine.pool.status(),
        }
    except SQLAlchemyError as exc:
        return {
            "ok": False,
            "error": str(exc),
        }
