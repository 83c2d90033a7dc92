"""Pydantic models for the API server's envelope payloads.

Object bodies are parsed by the domain models in ``corehosts.domain.objects``;
this module only covers lists, watch events and error statuses.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class KubeEnvelopeModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ListMeta(KubeEnvelopeModel):
    resource_version: str | None = Field(default=None, alias="resourceVersion")


class ListPayload(KubeEnvelopeModel):
    metadata: ListMeta = Field(default_factory=ListMeta)
    items: list[dict[str, Any]] | None = None


class StatusPayload(KubeEnvelopeModel):
    """``kind: Status`` body returned with failed requests and watch ERROR events."""

    status: str | None = None
    message: str | None = None
    reason: str | None = None
    code: int | None = None


class WatchEventPayload(KubeEnvelopeModel):
    type: str
    object: dict[str, Any]
