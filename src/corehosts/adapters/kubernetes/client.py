"""HTTP client for the Kubernetes API server."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from corehosts.adapters.http_resilience import ResilienceConfig, ResilientClient
from corehosts.domain.errors import (
    ConflictError,
    NotFoundError,
    RemoteAPIError,
    RemoteObjectError,
    ResourceExpiredError,
    TransportError,
)
from corehosts.domain.objects import EventType, ResourceList, WatchEvent

from .schema import ListPayload, StatusPayload, WatchEventPayload

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from types import TracebackType

    from corehosts.config.kube import KubeConfig
    from corehosts.domain.objects import KubeObject, ObjectRef, ResourceKind

log = getLogger(__name__)

_HTTP_NOT_FOUND = 404
_HTTP_CONFLICT = 409
_HTTP_GONE = 410
_HTTP_TOO_MANY_REQUESTS = 429
_HTTP_SERVER_ERROR = 500


def error_for_status(
    status_code: int,
    message: str,
    *,
    kind: str | None = None,
    ref: ObjectRef | None = None,
) -> RemoteObjectError:
    """Map an API server status code onto the error taxonomy."""

    if status_code == _HTTP_NOT_FOUND:
        return NotFoundError(message, kind=kind, ref=ref)
    if status_code == _HTTP_CONFLICT:
        return ConflictError(message, kind=kind, ref=ref)
    if status_code == _HTTP_GONE:
        return ResourceExpiredError(message, kind=kind, ref=ref)
    if status_code == _HTTP_TOO_MANY_REQUESTS or status_code >= _HTTP_SERVER_ERROR:
        return TransportError(message, kind=kind, ref=ref)
    return RemoteAPIError(message, status_code=status_code, kind=kind, ref=ref)


def _status_message(response: httpx.Response) -> str:
    try:
        status = StatusPayload.model_validate(response.json())
    except (ValueError, ValidationError):
        return response.text or response.reason_phrase
    return status.message or response.reason_phrase


def _malformed(
    path: str, response: httpx.Response, kind: ResourceKind[Any], exc: ValidationError
) -> RemoteAPIError:
    return RemoteAPIError(
        f"malformed watch event from {path}: {exc.error_count()} validation error(s)",
        status_code=response.status_code,
        kind=kind.name,
    )


def resource_path(
    kind: ResourceKind[Any],
    *,
    namespace: str | None = None,
    name: str | None = None,
) -> str:
    parts = [kind.api_prefix]
    if kind.namespaced and namespace:
        parts += ["namespaces", namespace]
    parts.append(kind.plural)
    if name:
        parts.append(name)
    return "/".join(parts)


class KubeClient:
    """``ResourceClient`` over the API server's REST interface.

    Every call goes to the server; nothing is cached between calls.
    """

    def __init__(
        self,
        config: KubeConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        headers = {"Accept": "application/json"}
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"
        self._http = ResilientClient(
            ResilienceConfig(
                name="kubernetes",
                base_url=config.api_server,
                timeout_seconds=config.timeout_seconds,
                ratelimit=config.ratelimit,
                verify=config.verify,
                default_headers=headers,
            ),
            transport=transport,
        )

    async def __aenter__(self) -> KubeClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def get[T: KubeObject](self, kind: ResourceKind[T], ref: ObjectRef) -> T:
        path = resource_path(kind, namespace=ref.namespace, name=ref.name)
        payload = await self._request("GET", path, kind=kind, ref=ref)
        return kind.parse(payload)

    async def create[T: KubeObject](self, kind: ResourceKind[T], obj: T) -> T:
        path = resource_path(kind, namespace=obj.metadata.namespace)
        payload = await self._request("POST", path, kind=kind, ref=obj.ref, json=obj.to_payload())
        return kind.parse(payload)

    async def update[T: KubeObject](self, kind: ResourceKind[T], obj: T) -> T:
        ref = obj.ref
        path = resource_path(kind, namespace=ref.namespace, name=ref.name)
        payload = await self._request("PUT", path, kind=kind, ref=ref, json=obj.to_payload())
        return kind.parse(payload)

    async def list[T: KubeObject](
        self,
        kind: ResourceKind[T],
        *,
        namespace: str | None = None,
        field_selector: str | None = None,
    ) -> ResourceList[T]:
        params: dict[str, str] = {}
        if field_selector:
            params["fieldSelector"] = field_selector
        path = resource_path(kind, namespace=namespace)
        payload = ListPayload.model_validate(
            await self._request("GET", path, kind=kind, ref=None, params=params)
        )
        return ResourceList(
            items=[kind.parse(item) for item in payload.items or ()],
            resource_version=payload.metadata.resource_version,
        )

    async def watch[T: KubeObject](
        self,
        kind: ResourceKind[T],
        *,
        namespace: str | None = None,
        field_selector: str | None = None,
        resource_version: str | None = None,
        timeout_seconds: int | None = None,
    ) -> AsyncIterator[WatchEvent[T]]:
        """Stream change events until the server closes the watch.

        An expired ``resource_version`` raises ``ResourceExpiredError``, whether
        the server rejects the request or reports it as an ERROR event.
        """

        params: dict[str, str] = {"watch": "true"}
        if field_selector:
            params["fieldSelector"] = field_selector
        if resource_version:
            params["resourceVersion"] = resource_version
        if timeout_seconds is not None:
            params["timeoutSeconds"] = str(timeout_seconds)
        path = resource_path(kind, namespace=namespace)
        # a quiet stream may stay open for timeoutSeconds, but never longer
        read_deadline = self.config.timeout_seconds
        if timeout_seconds is not None:
            read_deadline += timeout_seconds
        timeout = httpx.Timeout(self.config.timeout_seconds, read=read_deadline)

        log.debug("Watching %s at %s from resourceVersion %s", kind.name, path, resource_version)
        try:
            async with self._http.stream("GET", path, params=params, timeout=timeout) as response:
                if not response.is_success:
                    await response.aread()
                    raise error_for_status(
                        response.status_code, _status_message(response), kind=kind.name
                    )
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    try:
                        event = WatchEventPayload.model_validate_json(line)
                    except ValidationError as exc:
                        raise _malformed(path, response, kind, exc) from exc
                    try:
                        event_type = EventType(event.type)
                    except ValueError:
                        log.warning("Skipping watch event of unknown type %r", event.type)
                        continue
                    if event_type == EventType.ERROR:
                        status = StatusPayload.model_validate(event.object)
                        raise error_for_status(
                            status.code or _HTTP_SERVER_ERROR,
                            status.message or "watch failed",
                            kind=kind.name,
                        )
                    if event_type == EventType.BOOKMARK:
                        # bookmark objects only carry a resourceVersion
                        continue
                    try:
                        obj = kind.parse(event.object)
                    except ValidationError as exc:
                        raise _malformed(path, response, kind, exc) from exc
                    yield WatchEvent(type=event_type, obj=obj)
        except httpx.TransportError as exc:
            raise TransportError(f"watch on {path} failed: {exc}", kind=kind.name) from exc

    async def _request(
        self,
        method: str,
        path: str,
        *,
        kind: ResourceKind[Any],
        ref: ObjectRef | None,
        json: object = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        log.debug("%s %s", method, path)
        try:
            if json is None:
                response = await self._http.request(method, path, params=params)
            else:
                response = await self._http.request(method, path, params=params, json=json)
        except httpx.TransportError as exc:
            raise TransportError(f"{method} {path} failed: {exc}", kind=kind.name, ref=ref) from exc
        if not response.is_success:
            raise error_for_status(
                response.status_code, _status_message(response), kind=kind.name, ref=ref
            )
        return response.json()
