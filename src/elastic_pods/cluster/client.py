"""Kubernetes access for elastic agent pods.

The rest of the plugin talks to the cluster through the small
``ClusterClient`` protocol. ``KubernetesClient`` implements it against the
core v1 pods REST API using httpx; tests substitute an in-memory fake.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Protocol

import httpx
import structlog

from elastic_pods.errors import ClusterPlatformError, PodNotFoundError
from elastic_pods.settings import PluginSettings

logger = structlog.get_logger(__name__)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp as reported in pod metadata."""
    if not value or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Pod:
    """The parts of a Kubernetes pod the plugin cares about."""

    name: str
    creation_timestamp: Optional[datetime] = None
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Pod":
        metadata = data.get("metadata") or {}
        return cls(
            name=metadata.get("name", ""),
            creation_timestamp=parse_timestamp(metadata.get("creationTimestamp")),
            labels=dict(metadata.get("labels") or {}),
            annotations=dict(metadata.get("annotations") or {}),
        )


class ClusterClient(Protocol):
    def create_pod(self, namespace: str, manifest: dict[str, Any]) -> Pod: ...

    def list_pods(self, namespace: str, label_selector: Optional[str] = None) -> list[Pod]: ...

    def get_pod(self, namespace: str, name: str) -> Pod: ...

    def delete_pod(self, namespace: str, name: str) -> bool: ...


class KubernetesClient:
    """Blocking client for the Kubernetes pods API.

    Args:
        cluster_url: API server URL.
        token: Optional bearer token.
        ca_cert: Optional CA bundle path used to verify the API server.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport, for tests.
    """

    def __init__(
        self,
        cluster_url: str,
        token: Optional[str] = None,
        ca_cert: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.cluster_url = cluster_url.rstrip("/")
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(
            base_url=self.cluster_url,
            headers=headers,
            timeout=httpx.Timeout(timeout),
            verify=ca_cert or True,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: PluginSettings) -> "KubernetesClient":
        return cls(
            cluster_url=settings.kubernetes_cluster_url,
            token=settings.security_token,
            ca_cert=settings.cluster_ca_cert,
            timeout=settings.request_timeout,
        )

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def _pods_path(namespace: str, name: Optional[str] = None) -> str:
        path = f"/api/v1/namespaces/{namespace}/pods"
        return f"{path}/{name}" if name else path

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error("cluster_request_failed", method=method, path=path, error=str(e))
            raise ClusterPlatformError(f"{method} {path} failed: {e}") from e

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        raise ClusterPlatformError(
            f"Kubernetes API returned {response.status_code}: {response.text[:200]}",
            status_code=response.status_code,
        )

    @staticmethod
    def _decode(response: httpx.Response, parse: Callable[[Any], Any]) -> Any:
        try:
            return parse(response.json())
        except (ValueError, TypeError, AttributeError) as e:
            logger.error("cluster_response_invalid", url=str(response.url), error=str(e))
            raise ClusterPlatformError(
                f"Unreadable Kubernetes API response: {e}",
                status_code=response.status_code,
            ) from e

    def create_pod(self, namespace: str, manifest: dict[str, Any]) -> Pod:
        response = self._request("POST", self._pods_path(namespace), json=manifest)
        self._raise_for_status(response)
        return self._decode(response, Pod.from_api)

    def list_pods(self, namespace: str, label_selector: Optional[str] = None) -> list[Pod]:
        params = {"labelSelector": label_selector} if label_selector else None
        response = self._request("GET", self._pods_path(namespace), params=params)
        self._raise_for_status(response)
        return self._decode(
            response, lambda data: [Pod.from_api(item) for item in data.get("items") or []],
        )

    def get_pod(self, namespace: str, name: str) -> Pod:
        response = self._request("GET", self._pods_path(namespace, name))
        if response.status_code == 404:
            raise PodNotFoundError(namespace, name)
        self._raise_for_status(response)
        return self._decode(response, Pod.from_api)

    def delete_pod(self, namespace: str, name: str) -> bool:
        """Delete a pod. Returns False if it was already gone."""
        response = self._request("DELETE", self._pods_path(namespace, name))
        if response.status_code == 404:
            return False
        self._raise_for_status(response)
        return True


class ClientFactory:
    """Hands out one cluster client per connection settings.

    A new client is built (and the previous one closed) whenever the settings
    passed in differ from the ones the cached client was built with.
    """

    def __init__(
        self,
        builder: Callable[[PluginSettings], ClusterClient] = KubernetesClient.from_settings,
    ) -> None:
        self._builder = builder
        self._lock = threading.Lock()
        self._client: Optional[ClusterClient] = None
        self._settings: Optional[PluginSettings] = None

    def client_for(self, settings: PluginSettings) -> ClusterClient:
        with self._lock:
            if self._client is not None and self._settings == settings:
                return self._client
            if self._client is not None:
                logger.info("cluster_client_rebuilt", cluster_url=settings.kubernetes_cluster_url)
                self._close(self._client)
            self._client = self._builder(settings)
            self._settings = settings
            return self._client

    def close(self) -> None:
        with self._lock:
            if self._client is not None:
                self._close(self._client)
            self._client = None
            self._settings = None

    @staticmethod
    def _close(client: ClusterClient) -> None:
        close = getattr(client, "close", None)
        if callable(close):
            close()
