"""Asynchronous tasks of the core module."""

from __future__ import annotations

import structlog
from celery import shared_task
from django.conf import settings
from django.db import transaction

from modules.core.models import EventStatus, OutboxEvent
from shared.domain.events import event_from_payload
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


@shared_task(name="core.relay_outbox_events")
def relay_outbox_events(batch_size: int = 100) -> dict:
    """Publish pending outbox events to the in-process event bus.

    Each event is claimed with ``SELECT ... FOR UPDATE SKIP LOCKED`` so
    concurrent relays never publish the same row twice.  Failed events are
    retried on later runs until ``OUTBOX_MAX_RETRIES`` is reached.
    """
    max_retries = settings.OUTBOX_MAX_RETRIES
    candidate_ids = list(
        OutboxEvent.objects.relayable(max_retries).values_list("id", flat=True)[
            :batch_size
        ]
    )

    published = failed = 0
    for event_id in candidate_ids:
        with transaction.atomic():
            outbox = (
                OutboxEvent.objects.select_for_update(skip_locked=True)
                .filter(
                    id=event_id,
                    status__in=[EventStatus.PENDING, EventStatus.FAILED],
                )
                .first()
            )
            if outbox is None:
                continue

            log = logger.bind(
                outbox_id=str(outbox.id),
                event_type=outbox.event_type,
                aggregate_id=outbox.aggregate_id,
            )
            try:
                with transaction.atomic():
                    event_bus.publish(
                        event_from_payload(outbox.event_type, outbox.payload)
                    )
            except Exception as exc:
                outbox.mark_as_failed(str(exc))
                failed += 1
                log.warning(
                    "outbox.publish_failed",
                    error=str(exc),
                    retry_count=outbox.retry_count,
                )
                continue

            outbox.mark_as_published()
            published += 1
            log.info("outbox.published")

    logger.info("outbox.relay_completed", published=published, failed=failed)
    return {"published": published, "failed": failed}
