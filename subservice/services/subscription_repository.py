from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Any, List, Optional, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from subservice.core.exceptions import NotFoundError, StorageError
from subservice.core.months import parse_month, parse_optional_month
from subservice.models import Subscription, SubscriptionRecord
from subservice.schemas.subscription import SubscriptionPayload

logger = logging.getLogger(__name__)


def period_filter(from_month: Optional[date], to_month: Optional[date]) -> List[Any]:
    """
    WHERE clauses for a listing bounded by ``from_month`` and/or ``to_month``.

    A row matches when its start is on or after ``from_month`` and its end is
    on or before ``to_month``. Ongoing subscriptions have no end month, so an
    upper bound always excludes them.
    """
    clauses: List[Any] = []
    if from_month is not None:
        clauses.append(SubscriptionRecord.start_date >= from_month)
    if to_month is not None:
        # ongoing subscriptions never satisfy an upper bound
        clauses.append(SubscriptionRecord.end_date.is_not(None))
        clauses.append(SubscriptionRecord.end_date <= to_month)
    return clauses


def _parse_period(payload: SubscriptionPayload) -> Tuple[date, Optional[date]]:
    start_date = parse_month(payload.start_date, "start_date")
    end_date = parse_optional_month(payload.end_date, "end_date")
    return start_date, end_date


def _parse_id(subscription_id: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(subscription_id))
    except ValueError:
        return None


class SubscriptionRepository:
    """Validates, persists and queries subscriptions on an injected engine."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._sessions = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    def create(self, payload: SubscriptionPayload) -> str:
        start_date, end_date = _parse_period(payload)
        subscription_id = uuid.uuid4()
        record = SubscriptionRecord(
            id=subscription_id,
            user_id=payload.user_id,
            service_name=payload.service_name,
            price=payload.price,
            start_date=start_date,
            end_date=end_date,
        )
        try:
            with self._sessions.begin() as session:
                session.add(record)
        except SQLAlchemyError as exc:
            logger.exception(
                "Failed to insert subscription id=%s user_id=%s service_name=%s price=%s end_date=%s",
                subscription_id,
                payload.user_id,
                payload.service_name,
                payload.price,
                end_date,
            )
            raise StorageError("create", str(subscription_id)) from exc
        return str(subscription_id)

    def get(self, subscription_id: str) -> Subscription:
        key = _parse_id(subscription_id)
        found: Optional[Subscription] = None
        if key is not None:
            try:
                with self._sessions() as session:
                    record = session.get(SubscriptionRecord, key)
                    if record is not None:
                        found = record.to_domain()
            except SQLAlchemyError as exc:
                logger.exception("Failed to fetch subscription id=%s", subscription_id)
                raise StorageError("fetch", subscription_id) from exc

        if found is None:
            logger.debug("Subscription %s not found", subscription_id)
            raise NotFoundError(subscription_id)
        return found

    def update(self, subscription_id: str, payload: SubscriptionPayload) -> Subscription:
        """Replace every field of an existing subscription."""
        start_date, end_date = _parse_period(payload)
        key = _parse_id(subscription_id)
        if key is None:
            logger.debug("Subscription %s not found for update", subscription_id)
            raise NotFoundError(subscription_id)

        statement = (
            update(SubscriptionRecord)
            .where(SubscriptionRecord.id == key)
            .values(
                user_id=payload.user_id,
                service_name=payload.service_name,
                price=payload.price,
                start_date=start_date,
                end_date=end_date,
            )
            .execution_options(synchronize_session=False)
        )
        try:
            with self._sessions.begin() as session:
                affected = session.execute(statement).rowcount
        except SQLAlchemyError as exc:
            logger.exception("Failed to update subscription id=%s", subscription_id)
            raise StorageError("update", subscription_id) from exc

        if affected == 0:
            logger.debug("Subscription %s not found for update", subscription_id)
            raise NotFoundError(subscription_id)
        return Subscription(
            id=str(key),
            user_id=payload.user_id,
            service_name=payload.service_name,
            price=payload.price,
            start_date=start_date,
            end_date=end_date,
        )

    def delete(self, subscription_id: str) -> None:
        """Remove a subscription. Deleting a missing id raises ``NotFoundError``."""
        key = _parse_id(subscription_id)
        affected = 0
        if key is not None:
            statement = (
                delete(SubscriptionRecord)
                .where(SubscriptionRecord.id == key)
                .execution_options(synchronize_session=False)
            )
            try:
                with self._sessions.begin() as session:
                    affected = session.execute(statement).rowcount
            except SQLAlchemyError as exc:
                logger.exception("Failed to delete subscription id=%s", subscription_id)
                raise StorageError("delete", subscription_id) from exc

        if affected == 0:
            logger.debug("Subscription %s not found for delete", subscription_id)
            raise NotFoundError(subscription_id)

    def list(self, from_month: Optional[str] = None, to_month: Optional[str] = None) -> List[Subscription]:
        """
        Subscriptions inside a month period. Both bounds are optional MM-YYYY strings.

        No ordering is applied beyond what the database returns.
        """
        lower = parse_optional_month(from_month, "from")
        upper = parse_optional_month(to_month, "to")
        statement = select(SubscriptionRecord).where(*period_filter(lower, upper))
        try:
            with self._sessions() as session:
                return [record.to_domain() for record in session.scalars(statement)]
        except SQLAlchemyError as exc:
            logger.exception("Failed to list subscriptions from=%s to=%s", from_month, to_month)
            raise StorageError("list") from exc
