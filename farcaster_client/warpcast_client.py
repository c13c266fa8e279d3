"""Client for Warpcast's unauthenticated client API."""

import logging
from typing import Optional

import httpx
from eth_utils import to_checksum_address
from pydantic import BaseModel, ValidationError

from .exceptions import DecodeError, NoDataFoundError, RemoteRejectedError, RequestTransportError
from .warpcast_models import (
    RecentUsersResponse,
    SuggestedUsersResponse,
    UserProfile,
    VerificationResponse,
)

logger = logging.getLogger(__name__)

USER_URL = "https://client.warpcast.com/v2/user"
VERIFICATIONS_URL = "https://client.warpcast.com/v2/verifications"
RECENT_USERS_URL = "https://api.warpcast.com/v2/recent-users"
SUGGESTED_USERS_URL = "https://client.warpcast.com/v2/suggested-users"

PROTOCOL_ETHEREUM = "ethereum"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/103.0.0.0 Safari/537.36"
)


class WarpcastClient:
    """Reads user data from Warpcast without credentials."""

    def __init__(
        self,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": USER_AGENT},
            transport=transport,
        )

    async def _get(self, url: str, params: dict, model: type[BaseModel], what: str):
        try:
            response = await self._client.get(url, params=params)
        except httpx.RequestError as e:
            raise RequestTransportError(f"failed to get {what}: {e}", url) from e
        if response.status_code != 200:
            raise RemoteRejectedError(response.status_code, response.reason_phrase, url)
        try:
            return model.model_validate_json(response.content)
        except ValidationError as e:
            raise DecodeError(f"failed to decode {what}: {e}") from e

    async def user_profile_by_fid(self, fid: int) -> UserProfile:
        return await self._get(USER_URL, {"fid": fid}, UserProfile, "user profile")

    async def addresses_by_fid(self, fid: int) -> list[str]:
        """Return the checksummed Ethereum addresses verified by ``fid``."""
        response = await self._get(
            VERIFICATIONS_URL,
            {"fid": fid, "limit": 100},
            VerificationResponse,
            "user verifications",
        )
        return [
            to_checksum_address(v.address)
            for v in response.result.verifications
            if v.protocol == PROTOCOL_ETHEREUM
        ]

    async def last_registered_fid(self) -> int:
        """Return the FID of the most recently registered user."""
        response = await self._get(
            RECENT_USERS_URL,
            {"filter": "off", "limit": 1},
            RecentUsersResponse,
            "recent users",
        )
        if not response.result.users:
            raise NoDataFoundError("no recent users")
        return response.result.users[0].fid

    async def suggested_users(self) -> SuggestedUsersResponse:
        return await self._get(
            SUGGESTED_USERS_URL,
            {"limit": 10, "randomized": "true"},
            SuggestedUsersResponse,
            "suggested users",
        )

    async def close(self) -> None:
        await self._client.aclose()
