"""Neynar API client for Farcaster."""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence, TypeVar

import httpx
from eth_utils import to_checksum_address
from pydantic import BaseModel, TypeAdapter, ValidationError

from .config import RequestConfig
from .exceptions import (
    ChannelNotFoundError,
    ContentTooLongError,
    DecodeError,
    FarcasterUserNotSetError,
    NoDataFoundError,
    RemoteRejectedError,
    RequestError,
    WebhookPayloadError,
)
from .hub import MAX_CAST_BYTES, APIMessage, Channel, ParentAPIMessage, Userdata
from .neynar_models import (
    CastData,
    CastEmbed,
    CastPostRequest,
    CastResponse,
    CastsWebhookRequest,
    ChannelData,
    ChannelResponse,
    ChannelsResponse,
    FollowersResponse,
    NeynarUser,
    UserBulkResponse,
)
from .services.mention_queue import MentionQueue
from .services.requester import RateLimitedRequester

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

NEYNAR_API_ENDPOINT = "https://api.neynar.com"

USER_BULK_URL = NEYNAR_API_ENDPOINT + "/v2/farcaster/user/bulk"
USER_BULK_BY_ADDRESS_URL = NEYNAR_API_ENDPOINT + "/v2/farcaster/user/bulk-by-address"
USER_FOLLOWERS_URL = NEYNAR_API_ENDPOINT + "/v1/farcaster/followers"
CAST_URL = NEYNAR_API_ENDPOINT + "/v2/farcaster/cast"
CHANNEL_URL = NEYNAR_API_ENDPOINT + "/v2/farcaster/channel"
CHANNEL_SEARCH_URL = NEYNAR_API_ENDPOINT + "/v2/farcaster/channel/search"
CHANNEL_FOLLOWERS_URL = NEYNAR_API_ENDPOINT + "/v2/farcaster/channel/followers"

MAX_ADDRESSES_PER_REQUEST = 200
USER_FOLLOWERS_PAGE_SIZE = 150
CHANNEL_FOLLOWERS_PAGE_SIZE = 1000
CHANNEL_FOLLOWERS_MAX_FAILURES = 5

GET_BOT_USERNAME_TIMEOUT = 10.0

CAST_CREATED_TYPE = "cast.created"
CAST_OBJECT_TYPE = "cast"
WEBHOOK_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

USERS_BY_ADDRESS = TypeAdapter(dict[str, list[NeynarUser]])


def _build_url(base: str, **params) -> str:
    return str(httpx.URL(base, params={k: v for k, v in params.items() if v not in (None, "")}))


def _decode(model: type[ModelT], body: bytes, what: str) -> ModelT:
    try:
        return model.model_validate_json(body)
    except ValidationError as e:
        raise DecodeError(f"error decoding {what}: {e}") from e


def _to_userdata(user: NeynarUser) -> Userdata:
    return Userdata(
        fid=user.fid,
        username=user.username,
        display_name=user.display_name or "",
        custody_address=user.custody_address or "",
        verification_addresses=_checksum_addresses(user.verified_addresses.eth_addresses),
        avatar=user.pfp_url or "",
        bio=user.profile.bio.text,
    )


def _to_channel(data: ChannelData) -> Channel:
    return Channel(
        id=data.id,
        name=data.name,
        description=data.description or "",
        followers=data.follower_count,
        image=data.image_url or "",
        url=data.url or "",
    )


def _checksum_addresses(addresses: Sequence[str]) -> list[str]:
    normalized = []
    for address in addresses:
        try:
            normalized.append(to_checksum_address(address))
        except ValueError:
            logger.warning("Skipping malformed address %r", address)
    return normalized


def parse_webhook_timestamp(value: str) -> int:
    """Convert a webhook cast timestamp to unix seconds."""
    parsed = datetime.strptime(value, WEBHOOK_TIME_FORMAT).replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


class NeynarAPI:
    """Client for the Neynar API and its Farcaster hub.

    Outbound calls share one RateLimitedRequester. Casts delivered by the
    Neynar webhook are buffered in a MentionQueue until ``last_mentions``
    drains them.
    """

    def __init__(
        self,
        api_key: str,
        request_config: Optional[RequestConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        request_config = request_config or RequestConfig()
        self.request_timeout = request_config.default_timeout
        self._requester = RateLimitedRequester(
            api_key,
            max_concurrent_requests=request_config.max_concurrent_requests,
            max_retries=request_config.max_retries,
            base_delay=request_config.base_delay,
            max_jitter_ms=request_config.max_jitter_ms,
            default_timeout=request_config.default_timeout,
            transport=transport,
        )
        self._mentions = MentionQueue()
        self._fid = 0
        self._username = ""
        self._signer_uuid = ""

    @property
    def fid(self) -> int:
        """FID of the bot account, 0 until set."""
        return self._fid

    @property
    def username(self) -> str:
        return self._username

    async def set_farcaster_user(self, fid: int, signer_uuid: str) -> None:
        """Set the bot account and look up its username.

        Args:
            fid: FID of the bot account.
            signer_uuid: Neynar signer UUID that signs the bot's casts.
        """
        try:
            userdata = await self.user_data_by_fid(fid, timeout=GET_BOT_USERNAME_TIMEOUT)
        except Exception as e:
            logger.error("Error getting bot username for fid %d: %s", fid, e)
            raise
        if not userdata.username:
            raise NoDataFoundError(f"user {fid} has no username")
        self._fid, self._signer_uuid, self._username = fid, signer_uuid, userdata.username
        logger.info("Farcaster user set: @%s (fid %d)", self._username, fid)

    def _require_user(self) -> None:
        if self._fid == 0 or not self._username:
            raise FarcasterUserNotSetError("farcaster user not set")

    async def last_mentions(self, timestamp: int) -> tuple[list[APIMessage], int]:
        """Return the casts received since ``timestamp`` and the new watermark."""
        self._require_user()
        return self._mentions.drain_since(timestamp)

    async def cast(self, cast_hash: str) -> APIMessage:
        """Fetch a cast by its hash."""
        url = _build_url(CAST_URL, identifier=cast_hash, type="hash")
        body = await self._requester.execute(url, "GET", timeout=self.request_timeout)
        response = _decode(CastResponse, body, "cast")
        if response.cast is None:
            raise NoDataFoundError(f"no cast found for hash {cast_hash}")
        return self.parse_cast_data(response.cast)

    async def publish(self, content: str, embeds: Sequence[str] = ()) -> None:
        """Publish a new cast as the bot account."""
        await self._post_cast(content, embeds, parent=None, timeout=self.request_timeout)

    async def reply(
        self, target: APIMessage, content: str, embeds: Sequence[str] = ()
    ) -> None:
        """Reply to ``target`` as the bot account."""
        await self._post_cast(content, embeds, parent=target.hash, timeout=None)

    async def _post_cast(
        self,
        content: str,
        embeds: Sequence[str],
        parent: Optional[str],
        timeout: Optional[float],
    ) -> None:
        self._require_user()
        if len(content.encode("utf-8")) > MAX_CAST_BYTES:
            raise ContentTooLongError(
                f"content is too long ({len(content.encode('utf-8'))} > {MAX_CAST_BYTES} bytes)"
            )
        request = CastPostRequest(
            signer_uuid=self._signer_uuid,
            text=content,
            parent=parent,
            embeds=[CastEmbed(url=embed) for embed in embeds],
        )
        body = request.model_dump_json(exclude_none=True).encode("utf-8")
        await self._requester.execute(CAST_URL, "POST", body=body, timeout=timeout)
        logger.info("Published cast%s", f" in reply to {parent}" if parent else "")

    async def user_data_by_fid(self, fid: int, timeout: Optional[float] = None) -> Userdata:
        """Return the profile and verified addresses of the user with ``fid``."""
        url = _build_url(USER_BULK_URL, fids=fid)
        body = await self._requester.execute(url, "GET", timeout=timeout or self.request_timeout)
        response = _decode(UserBulkResponse, body, "user data")
        if not response.users:
            raise NoDataFoundError(f"no user found for fid {fid}")
        return _to_userdata(response.users[0])

    async def user_data_by_verification_addresses(
        self, addresses: Sequence[str]
    ) -> list[Userdata]:
        """Return the users holding at least one of ``addresses``.

        Only the first user with verified addresses is kept for each address.
        """
        if len(addresses) > MAX_ADDRESSES_PER_REQUEST:
            raise ValueError(
                f"address list exceeds the maximum of {MAX_ADDRESSES_PER_REQUEST} addresses"
            )
        url = _build_url(USER_BULK_BY_ADDRESS_URL, addresses=",".join(addresses))
        body = await self._requester.execute(url, "GET", timeout=self.request_timeout)
        try:
            results = USERS_BY_ADDRESS.validate_json(body)
        except ValidationError as e:
            raise DecodeError(f"error decoding users by address: {e}") from e

        users: list[Userdata] = []
        for items in results.values():
            for item in items:
                if not item.username:
                    continue
                if not item.verified_addresses.eth_addresses:
                    logger.warning("No verified addresses found for user %s", item.username)
                    continue
                users.append(_to_userdata(item))
                break
        if not users:
            raise NoDataFoundError("no users found for the given addresses")
        return users

    async def user_followers(self, fid: int) -> list[int]:
        """Return the FIDs of the followers of ``fid``."""
        fids: list[int] = []
        cursor = ""
        while True:
            url = _build_url(
                USER_FOLLOWERS_URL, fid=fid, limit=USER_FOLLOWERS_PAGE_SIZE, cursor=cursor
            )
            body = await self._requester.execute(url, "GET", timeout=self.request_timeout)
            response = _decode(FollowersResponse, body, "followers")
            if response.result.users is None:
                raise NoDataFoundError(f"no followers data for fid {fid}")
            fids.extend(user.fid for user in response.result.users)
            if response.result.next is None or not response.result.next.cursor:
                break
            cursor = response.result.next.cursor
        return fids

    async def channel(self, channel_id: str) -> Optional[Channel]:
        """Return the details of a channel, or None for an empty id.

        Raises:
            ChannelNotFoundError: The channel does not exist.
        """
        if not channel_id:
            return None
        url = _build_url(CHANNEL_URL, id=channel_id)
        try:
            body = await self._requester.execute(url, "GET", timeout=self.request_timeout)
        except RemoteRejectedError as e:
            logger.warning("Error getting channel %s: %s", channel_id, e)
            if e.status_code == 404:
                raise ChannelNotFoundError(f"channel {channel_id} not found") from e
            raise
        response = _decode(ChannelResponse, body, "channel")
        if response.channel is None:
            raise NoDataFoundError(f"no data for channel {channel_id}")
        return _to_channel(response.channel)

    async def channel_fids(
        self, channel_id: str, progress: Optional[Callable[[int], None]] = None
    ) -> list[int]:
        """Return the FIDs of the users following a channel.

        Args:
            channel_id: Channel to inspect.
            progress: Called with the percentage of followers fetched so far,
                and with 100 once done.
        """
        channel = await self.channel(channel_id)
        if channel is None:
            raise ChannelNotFoundError("empty channel id")
        if channel.followers == 0:
            raise NoDataFoundError(f"channel {channel_id} has no followers")

        fids: list[int] = []
        cursor = ""
        failures_left = CHANNEL_FOLLOWERS_MAX_FAILURES
        while True:
            url = _build_url(
                CHANNEL_FOLLOWERS_URL,
                id=channel_id,
                limit=CHANNEL_FOLLOWERS_PAGE_SIZE,
                cursor=cursor,
            )
            try:
                body = await self._requester.execute(url, "GET", timeout=self.request_timeout)
            except RequestError as e:
                failures_left -= 1
                if failures_left == 0:
                    raise
                logger.warning(
                    "Error getting channel %s followers, retrying: %s", channel_id, e
                )
                continue
            response = _decode(UserBulkResponse, body, "channel followers")
            fids.extend(user.fid for user in response.users)
            if progress is not None:
                progress(min(100, int(len(fids) / channel.followers * 100)))
            if response.next is None or not response.next.cursor:
                break
            cursor = response.next.cursor
        if progress is not None:
            progress(100)
        return fids

    async def channel_exists(self, channel_id: str) -> bool:
        try:
            await self.channel(channel_id)
        except ChannelNotFoundError:
            return False
        return True

    async def find_channel(self, query: str) -> list[Channel]:
        """Search channels matching ``query``."""
        url = _build_url(CHANNEL_SEARCH_URL, q=query)
        logger.debug("Searching channels: %s", url)
        body = await self._requester.execute(url, "GET", timeout=self.request_timeout)
        response = _decode(ChannelsResponse, body, "channels")
        if not response.channels:
            raise NoDataFoundError(f"no channels match {query!r}")
        return [_to_channel(data) for data in response.channels]

    def parse_webhook(self, body: bytes) -> Optional[tuple[int, APIMessage]]:
        """Decode a verified Neynar webhook delivery.

        Returns:
            The cast's unix timestamp and message, or None for deliveries
            other than ``cast.created``.

        Raises:
            WebhookPayloadError: The body could not be parsed.
        """
        try:
            request = CastsWebhookRequest.model_validate_json(body)
        except ValidationError as e:
            raise WebhookPayloadError(f"error decoding webhook body: {e}") from e
        if request.type != CAST_CREATED_TYPE:
            logger.debug("Ignoring webhook event type %s", request.type)
            return None
        if request.data is None:
            raise WebhookPayloadError("webhook body has no cast data")

        try:
            data = CastData.model_validate(request.data)
            message = self.parse_cast_data(data)
        except (ValidationError, DecodeError) as e:
            raise WebhookPayloadError(f"error parsing cast data: {e}") from e
        try:
            timestamp = parse_webhook_timestamp(data.timestamp)
        except ValueError as e:
            raise WebhookPayloadError(f"error parsing timestamp {data.timestamp!r}: {e}") from e
        return timestamp, message

    def webhook_mentions_handler(self, body: bytes) -> None:
        """Queue the cast carried by a verified Neynar webhook delivery.

        Deliveries other than ``cast.created`` are ignored.

        Raises:
            WebhookPayloadError: The body could not be parsed.
        """
        parsed = self.parse_webhook(body)
        if parsed is None:
            return
        timestamp, message = parsed
        self._mentions.record(timestamp, message)
        logger.info(
            "Queued cast %s from fid %d (mention=%s)", message.hash, message.author, message.is_mention
        )

    def parse_cast_data(self, data: CastData) -> APIMessage:
        """Build an APIMessage from a cast, stripping the bot mention prefix."""
        if data.object != CAST_OBJECT_TYPE:
            raise DecodeError(
                f"invalid object type: {data.object} ({CAST_OBJECT_TYPE} expected)"
            )
        text = data.text
        mention_needle = f"@{self._username}"
        # Without a username every "@" would match.
        is_mention = bool(self._username) and text.startswith(mention_needle)
        if is_mention:
            text = text[len(mention_needle):].strip()

        parent = None
        if data.parent_author is not None and data.parent_author.fid is not None:
            parent = ParentAPIMessage(fid=data.parent_author.fid, hash=data.parent_hash or "")

        return APIMessage(
            is_mention=is_mention,
            content=text,
            author=data.author.fid,
            hash=data.hash,
            parent=parent,
            embeds=[embed.url for embed in data.embeds if embed.url],
        )

    async def close(self) -> None:
        await self._requester.close()
