"""
PawMatch — Default collaborator implementations.

Push delivery and calendar integrations live outside this service, so the
defaults here log notifications, validate venues structurally and report no
availability data (which never blocks scheduling).
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

import structlog

from pawmatch.schemas.dog import Venue
from pawmatch.schemas.playdate import TimeSlot

logger = structlog.get_logger("pawmatch.collaborators")


class LoggingNotificationSink:
    """Emits each notification as a structured log event."""

    async def send_match_notification(
        self, user_id: UUID, title: str, message: str, data: dict[str, str]
    ) -> None:
        logger.info(
            "match_notification_sent",
            user_id=str(user_id),
            title=title,
            message=message,
            data=data,
        )

    async def send_playdate_request_notification(
        self, request_id: UUID, other_dog_name: str, recipient_id: UUID
    ) -> None:
        logger.info(
            "playdate_request_notification_sent",
            request_id=str(request_id),
            recipient_id=str(recipient_id),
            other_dog_name=other_dog_name,
        )


class VenueValidator:
    """Accepts venues with a place id and, when given, sane coordinates."""

    async def validate(self, location: Venue) -> None:
        if not location.place_id.strip():
            raise ValueError("Venue has no place id")
        if (location.latitude is None) != (location.longitude is None):
            raise ValueError("Venue coordinates must include both latitude and longitude")
        if location.latitude is not None and not -90.0 <= location.latitude <= 90.0:
            raise ValueError(f"Latitude {location.latitude} out of range")
        if location.longitude is not None and not -180.0 <= location.longitude <= 180.0:
            raise ValueError(f"Longitude {location.longitude} out of range")


class NoAvailabilityData:
    async def get_availability_window(
        self, user_id: UUID, week_start: date
    ) -> list[TimeSlot] | None:
        return None
