"""
Settlement Dutch Auction Remote Registry

ProjectRegistry and SplitProvider backed by a registry HTTP API.

Endpoints:
    GET  /projects/{id}        -> {"invocations": int, "maxInvocations": int}
    POST /projects/{id}/mint   {"to": address} -> {"tokenId": int}
    GET  /projects/{id}/split  -> {"capability": str, "parties": [...]}
    GET  /projects/{id}/balance/{owner} -> {"balance": int}
"""

from __future__ import annotations
import logging
from typing import Any, Optional

import httpx

from dasettle.constants import REGISTRY_HTTP_TIMEOUT_SEC
from dasettle.core.types import Address
from dasettle.errors import (
    MaximumInvocationsReachedError,
    RegistryUnavailableError,
    UnknownProjectError,
)
from dasettle.registry.base import RevenueSplitConfig, SplitCapability, SplitParty

logger = logging.getLogger(__name__)


class RemoteRegistry:
    """Registry client over HTTP (sync httpx client)."""

    def __init__(
        self,
        base_url: str,
        address: Address,
        timeout: float = REGISTRY_HTTP_TIMEOUT_SEC,
        client: Optional[httpx.Client] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.address = address
        self._client = client or httpx.Client(base_url=self.base_url, timeout=timeout)

    def close(self):
        self._client.close()

    def __enter__(self) -> RemoteRegistry:
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _request(self, method: str, path: str, project_id: int, **kwargs) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.debug(f"Registry request {method} {path} failed: {e}")
            raise RegistryUnavailableError(self.base_url, str(e)) from e

        if response.status_code == 404:
            raise UnknownProjectError(project_id)
        if response.status_code == 409:
            body = response.json()
            raise MaximumInvocationsReachedError(
                project_id,
                int(body.get("invocations", 0)),
                int(body.get("maxInvocations", 0)),
            )
        if response.is_error:
            raise RegistryUnavailableError(
                self.base_url, f"HTTP {response.status_code} for {method} {path}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise RegistryUnavailableError(self.base_url, f"invalid JSON: {e}") from e

    def _project(self, project_id: int) -> dict:
        return self._request("GET", f"/projects/{project_id}", project_id)

    def current_invocations(self, project_id: int) -> int:
        return int(self._project(project_id)["invocations"])

    def max_invocations(self, project_id: int) -> int:
        return int(self._project(project_id)["maxInvocations"])

    def mint(self, project_id: int, to: Address) -> int:
        body = self._request(
            "POST",
            f"/projects/{project_id}/mint",
            project_id,
            json={"to": to.checksum()},
        )
        token_id = int(body["tokenId"])
        logger.info(f"Remote registry minted token {token_id} to {to}")
        return token_id

    def balance_of(self, owner: Address, project_id: int) -> int:
        """Tokens of a project held by an owner."""
        body = self._request(
            "GET", f"/projects/{project_id}/balance/{owner.checksum()}", project_id
        )
        return int(body["balance"])

    def get_split_config(self, project_id: int) -> RevenueSplitConfig:
        body = self._request("GET", f"/projects/{project_id}/split", project_id)
        parties = [
            SplitParty(
                role=party["role"],
                address=Address.from_hex(party["address"]),
                percentage=int(party["percentage"]),
            )
            for party in body.get("parties", [])
        ]
        return RevenueSplitConfig(
            capability=SplitCapability(body["capability"]),
            parties=parties,
        )
