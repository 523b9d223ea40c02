"""HTTP request bodies for the notification endpoints."""

from typing import List

from pydantic import Field, field_validator

from hera.notifications.broadcast import Urgency
from hera.pipeline.states import resolve_state
from hera.schemas.records import RecordModel


def _non_blank(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be empty")
    return value


class BroadcastRequest(RecordModel):
    state: str = Field(..., description="State the legal update concerns")
    title: str
    description: str
    urgency: Urgency = Urgency.NORMAL

    @field_validator("title", "description")
    @classmethod
    def _required_text(cls, value: str) -> str:
        return _non_blank(value)

    @field_validator("state")
    @classmethod
    def _known_state(cls, value: str) -> str:
        state = resolve_state(_non_blank(value))
        if state is None:
            raise ValueError(f"unknown state {value!r}")
        return state


class SubscriptionKeys(RecordModel):
    p256dh: str
    auth: str


class BrowserSubscription(RecordModel):
    endpoint: str
    keys: SubscriptionKeys

    @field_validator("endpoint")
    @classmethod
    def _required_endpoint(cls, value: str) -> str:
        return _non_blank(value)


class SubscribeRequest(RecordModel):
    subscription: BrowserSubscription
    states: List[str] = Field(default_factory=list, description="States whose legal updates are pushed")


class UnsubscribeRequest(RecordModel):
    endpoint: str
