"""Wire payloads exchanged with the remote store."""

from .models import AvailabilityPayload, CreatedPayload, ErrorPayload, EventPayload, ServiceInfo

__all__ = ["AvailabilityPayload", "CreatedPayload", "ErrorPayload", "EventPayload", "ServiceInfo"]
