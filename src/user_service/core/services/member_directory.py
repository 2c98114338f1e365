"""Member directory client used to confirm member organizations exist."""

from typing import Protocol
from urllib.parse import quote

import httpx
from loguru import logger

from src.user_service.core.services.user.errors import MemberDirectoryError
from src.user_service.runtime.config.config_data import MemberDirectoryConfig
from src.user_service.runtime.context import get_config


class MemberDirectory(Protocol):
    """Anything that can tell whether a member organization exists."""

    def exists(self, salesforce_id: str) -> bool: ...


class MemberDirectoryClient:
    """HTTP client for the member service's existence lookup.

    ``GET {url}/members/{salesforce_id}`` answers 200 when the member exists
    and 404 when it does not. Anything else, including a timeout, means the
    directory could not answer and raises ``MemberDirectoryError``; lookups
    are never retried here.
    """

    def __init__(
        self,
        config: MemberDirectoryConfig | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._config = config or get_config().member_directory
        headers = {"Accept": "application/json"}
        if self._config.api_token:
            headers["Authorization"] = f"Bearer {self._config.api_token}"
        self._client = client or httpx.Client(
            base_url=self._config.url.rstrip("/"),
            timeout=self._config.timeout_seconds,
            headers=headers,
        )

    def exists(self, salesforce_id: str) -> bool:
        path = f"/members/{quote(salesforce_id, safe='')}"
        try:
            response = self._client.get(path)
        except httpx.TimeoutException as e:
            raise MemberDirectoryError(
                f"member directory timed out after {self._config.timeout_seconds}s"
            ) from e
        except httpx.HTTPError as e:
            raise MemberDirectoryError(f"member directory unreachable: {e}") from e

        if response.status_code == 404:
            return False
        if response.is_success:
            return True

        logger.error(
            "Member directory returned {} for {}", response.status_code, salesforce_id
        )
        raise MemberDirectoryError(
            f"member directory returned HTTP {response.status_code}"
        )

    def close(self) -> None:
        self._client.close()
