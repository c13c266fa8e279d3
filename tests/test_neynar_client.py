"""Tests for NeynarAPI."""

import json
from datetime import datetime, timezone

import httpx
import pytest

from farcaster_client.config import RequestConfig
from farcaster_client.exceptions import (
    ChannelNotFoundError,
    ConfigurationError,
    ContentTooLongError,
    FarcasterUserNotSetError,
    NoDataFoundError,
    RemoteRejectedError,
    WebhookPayloadError,
)
from farcaster_client.hub import APIMessage, ParentAPIMessage
from farcaster_client.neynar_client import NeynarAPI, parse_webhook_timestamp
from farcaster_client.neynar_models import CastData

BOT_USER = {"users": [{"fid": 42, "username": "bot", "display_name": "Bot"}]}
ADDRESS = "0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed"
CHECKSUMMED = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


def cast_payload(text: str, **overrides) -> dict:
    data = {
        "object": "cast",
        "hash": "0xabc",
        "author": {"fid": 7, "username": "alice"},
        "text": text,
        "timestamp": "2024-03-14T10:00:00.000Z",
        "parent_hash": None,
        "parent_author": {"fid": None},
        "embeds": [],
    }
    data.update(overrides)
    return data


def webhook_body(data: dict, event_type: str = "cast.created") -> bytes:
    return json.dumps({"created_at": 1710410400, "type": event_type, "data": data}).encode()


class FakeNeynar:
    """Routes requests by path and records what was sent."""

    def __init__(self, routes: dict):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404)
        if callable(route):
            return route(request)
        return httpx.Response(200, json=route)


def make_client(routes: dict) -> tuple[NeynarAPI, FakeNeynar]:
    fake = FakeNeynar({"/v2/farcaster/user/bulk": BOT_USER, **routes})
    config = RequestConfig(base_delay=0.0, max_jitter_ms=0)
    return NeynarAPI("test-key", request_config=config, transport=httpx.MockTransport(fake)), fake


async def make_bot_client(routes: dict | None = None) -> tuple[NeynarAPI, FakeNeynar]:
    client, fake = make_client(routes or {})
    await client.set_farcaster_user(42, "signer-uuid")
    return client, fake


class TestConstruction:
    def test_empty_api_key(self):
        """Test that a missing API key fails fast."""
        with pytest.raises(ConfigurationError):
            NeynarAPI("")

    @pytest.mark.asyncio
    async def test_set_farcaster_user_fetches_username(self):
        """Test that the bot username is looked up from its fid."""
        client, fake = await make_bot_client()

        assert client.fid == 42
        assert client.username == "bot"
        assert fake.requests[0].url.params["fids"] == "42"

    @pytest.mark.asyncio
    async def test_failed_lookup_leaves_user_unset(self):
        """Test that a failed username lookup does not half-configure the bot."""
        client, _ = make_client({"/v2/farcaster/user/bulk": lambda request: httpx.Response(500)})

        with pytest.raises(RemoteRejectedError):
            await client.set_farcaster_user(42, "signer-uuid")

        assert client.fid == 0
        assert client.username == ""
        with pytest.raises(FarcasterUserNotSetError):
            await client.last_mentions(0)

        client.webhook_mentions_handler(webhook_body(cast_payload("@alice hello")))
        messages, _ = client._mentions.drain_since(0)

        assert [m.is_mention for m in messages] == [False]
        assert messages[0].content == "@alice hello"

    @pytest.mark.asyncio
    async def test_lookup_without_username(self):
        """Test that an account with no username is rejected."""
        client, _ = make_client(
            {"/v2/farcaster/user/bulk": {"users": [{"fid": 42, "username": ""}]}}
        )

        with pytest.raises(NoDataFoundError):
            await client.set_farcaster_user(42, "signer-uuid")

        assert client.fid == 0


class TestParseCastData:
    """Test mention detection and message mapping."""

    def setup_method(self):
        """Set up test fixtures."""
        self.client, _ = make_client({})
        self.client._username = "bot"

    def test_mention_prefix_is_stripped(self):
        """Test that '@bot hello' is a mention with content 'hello'."""
        message = self.client.parse_cast_data(CastData.model_validate(cast_payload("@bot hello")))

        assert message.is_mention is True
        assert message.content == "hello"

    def test_plain_text_is_not_a_mention(self):
        """Test that text without the prefix is kept unchanged."""
        message = self.client.parse_cast_data(CastData.model_validate(cast_payload("random text")))

        assert message.is_mention is False
        assert message.content == "random text"

    def test_prefix_match_ignores_word_boundary(self):
        """Test that a longer handle sharing the prefix still counts as a mention.

        Matching is a plain prefix check, so "@botanist" is read as "@bot".
        """
        message = self.client.parse_cast_data(CastData.model_validate(cast_payload("@botanist hi")))

        assert message.is_mention is True
        assert message.content == "anist hi"

    def test_parent_and_embeds(self):
        """Test that reply and embed fields are mapped."""
        data = cast_payload(
            "@bot look",
            parent_hash="0xparent",
            parent_author={"fid": 9},
            embeds=[{"url": "https://example.com/a.png"}, {"cast_id": {"fid": 1, "hash": "0x1"}}],
        )
        message = self.client.parse_cast_data(CastData.model_validate(data))

        assert message.parent == ParentAPIMessage(fid=9, hash="0xparent")
        assert message.embeds == ["https://example.com/a.png"]
        assert message.author == 7
        assert message.hash == "0xabc"

    def test_root_cast_has_no_parent(self):
        """Test that a null parent author means no parent."""
        message = self.client.parse_cast_data(CastData.model_validate(cast_payload("hi")))

        assert message.parent is None


class TestWebhookMentionsHandler:
    """Test webhook deliveries feeding the mention queue."""

    @pytest.mark.asyncio
    async def test_cast_created_is_queued(self):
        """Test that a cast.created delivery can be drained by timestamp."""
        client, _ = await make_bot_client()
        client.webhook_mentions_handler(webhook_body(cast_payload("@bot gm")))

        messages, watermark = await client.last_mentions(0)

        expected_ts = int(datetime(2024, 3, 14, 10, 0, tzinfo=timezone.utc).timestamp())
        assert watermark == expected_ts
        assert messages == [
            APIMessage(is_mention=True, content="gm", author=7, hash="0xabc", embeds=[])
        ]

    @pytest.mark.asyncio
    async def test_other_event_types_are_ignored(self):
        """Test that non cast.created deliveries leave the queue untouched."""
        client, _ = await make_bot_client()
        client.webhook_mentions_handler(webhook_body(cast_payload("@bot gm")))
        client.webhook_mentions_handler(
            webhook_body({"object": "follow", "user": {"fid": 1}}, event_type="follow.created")
        )

        messages, watermark = await client.last_mentions(0)

        expected_ts = int(datetime(2024, 3, 14, 10, 0, tzinfo=timezone.utc).timestamp())
        assert watermark == expected_ts
        assert messages == [
            APIMessage(is_mention=True, content="gm", author=7, hash="0xabc", embeds=[])
        ]

    def test_invalid_json(self):
        """Test that an unparseable body is reported."""
        client, _ = make_client({})
        with pytest.raises(WebhookPayloadError):
            client.webhook_mentions_handler(b"not json")

    def test_wrong_object_type(self):
        """Test that cast.created with a non-cast object is reported."""
        client, _ = make_client({})
        with pytest.raises(WebhookPayloadError):
            client.webhook_mentions_handler(webhook_body(cast_payload("hi", object="reaction")))

    def test_bad_timestamp(self):
        """Test that a malformed timestamp is reported."""
        client, _ = make_client({})
        with pytest.raises(WebhookPayloadError):
            client.webhook_mentions_handler(
                webhook_body(cast_payload("hi", timestamp="yesterday"))
            )

    @pytest.mark.asyncio
    async def test_last_mentions_requires_user(self):
        """Test that polling without a bot account fails."""
        client, _ = make_client({})
        with pytest.raises(FarcasterUserNotSetError):
            await client.last_mentions(0)

    def test_parse_webhook_timestamp(self):
        assert parse_webhook_timestamp("1970-01-01T00:01:00.000Z") == 60


class TestCasts:
    """Test cast lookup and publication."""

    @pytest.mark.asyncio
    async def test_cast_by_hash(self):
        """Test fetching a cast by hash."""
        client, fake = await make_bot_client(
            {"/v2/farcaster/cast": {"cast": cast_payload("@bot question?")}}
        )

        message = await client.cast("0xabc")

        assert message.content == "question?"
        assert fake.requests[-1].url.params["identifier"] == "0xabc"
        assert fake.requests[-1].url.params["type"] == "hash"

    @pytest.mark.asyncio
    async def test_cast_missing(self):
        client, _ = make_client({"/v2/farcaster/cast": {}})
        with pytest.raises(NoDataFoundError):
            await client.cast("0xabc")

    @pytest.mark.asyncio
    async def test_publish_sends_signer_and_embeds(self):
        """Test the body of a published cast."""
        client, fake = await make_bot_client({"/v2/farcaster/cast": {"success": True}})

        await client.publish("hello world", embeds=["https://example.com"])

        request = fake.requests[-1]
        assert request.method == "POST"
        assert json.loads(request.content) == {
            "signer_uuid": "signer-uuid",
            "text": "hello world",
            "embeds": [{"url": "https://example.com"}],
        }

    @pytest.mark.asyncio
    async def test_reply_sets_parent(self):
        """Test that a reply references the target hash."""
        client, fake = await make_bot_client({"/v2/farcaster/cast": {"success": True}})
        target = APIMessage(is_mention=True, content="hi", author=7, hash="0xtarget")

        await client.reply(target, "hi back")

        assert json.loads(fake.requests[-1].content)["parent"] == "0xtarget"

    @pytest.mark.asyncio
    async def test_publish_too_long(self):
        """Test the cast byte limit."""
        client, fake = await make_bot_client()
        sent_before = len(fake.requests)

        with pytest.raises(ContentTooLongError):
            await client.publish("é" * 176)

        assert len(fake.requests) == sent_before

    @pytest.mark.asyncio
    async def test_publish_requires_user(self):
        client, _ = make_client({})
        with pytest.raises(FarcasterUserNotSetError):
            await client.publish("hi")


class TestUsers:
    """Test user lookups."""

    @pytest.mark.asyncio
    async def test_user_data_by_fid(self):
        client, _ = make_client(
            {
                "/v2/farcaster/user/bulk": {
                    "users": [
                        {
                            "fid": 3,
                            "username": "dwr",
                            "display_name": "Dan",
                            "custody_address": "0xcustody",
                            "pfp_url": "https://example.com/pfp.png",
                            "profile": {"bio": {"text": "hello"}},
                            "verified_addresses": {"eth_addresses": [ADDRESS]},
                        }
                    ]
                }
            }
        )

        user = await client.user_data_by_fid(3)

        assert user.username == "dwr"
        assert user.display_name == "Dan"
        assert user.bio == "hello"
        assert user.avatar == "https://example.com/pfp.png"
        assert user.verification_addresses == [CHECKSUMMED]

    @pytest.mark.asyncio
    async def test_user_data_by_fid_empty(self):
        client, _ = make_client({"/v2/farcaster/user/bulk": {"users": []}})
        with pytest.raises(NoDataFoundError):
            await client.user_data_by_fid(3)

    @pytest.mark.asyncio
    async def test_users_by_verification_addresses(self):
        """Test that the first verified user per address is kept."""
        client, fake = make_client(
            {
                "/v2/farcaster/user/bulk-by-address": {
                    ADDRESS: [
                        {"fid": 1, "username": "unverified"},
                        {
                            "fid": 2,
                            "username": "verified",
                            "verified_addresses": {"eth_addresses": [ADDRESS]},
                        },
                    ]
                }
            }
        )

        users = await client.user_data_by_verification_addresses([ADDRESS])

        assert [u.fid for u in users] == [2]
        assert users[0].verification_addresses == [CHECKSUMMED]
        assert fake.requests[-1].url.params["addresses"] == ADDRESS

    @pytest.mark.asyncio
    async def test_too_many_addresses(self):
        client, _ = make_client({})
        with pytest.raises(ValueError):
            await client.user_data_by_verification_addresses([ADDRESS] * 201)

    @pytest.mark.asyncio
    async def test_user_followers_paginates(self):
        """Test that follower pages are followed until the cursor is empty."""
        pages = {
            "": {"result": {"users": [{"fid": 1}, {"fid": 2}], "next": {"cursor": "p2"}}},
            "p2": {"result": {"users": [{"fid": 3}], "next": {"cursor": None}}},
        }

        def followers(request):
            return httpx.Response(200, json=pages[request.url.params.get("cursor", "")])

        client, _ = make_client({"/v1/farcaster/followers": followers})

        assert await client.user_followers(10) == [1, 2, 3]


class TestChannels:
    """Test channel lookups."""

    @pytest.mark.asyncio
    async def test_channel(self):
        client, _ = make_client(
            {
                "/v2/farcaster/channel": {
                    "channel": {
                        "id": "vocdoni",
                        "name": "Vocdoni",
                        "description": "votes",
                        "follower_count": 3,
                        "image_url": "https://example.com/c.png",
                        "url": "chain://vocdoni",
                    }
                }
            }
        )

        channel = await client.channel("vocdoni")

        assert channel.id == "vocdoni"
        assert channel.followers == 3
        assert channel.image == "https://example.com/c.png"

    @pytest.mark.asyncio
    async def test_empty_channel_id(self):
        client, fake = make_client({})
        assert await client.channel("") is None
        assert fake.requests == []

    @pytest.mark.asyncio
    async def test_channel_not_found(self):
        """Test that a 404 maps to ChannelNotFoundError."""
        client, _ = make_client({})

        with pytest.raises(ChannelNotFoundError):
            await client.channel("missing")
        assert await client.channel_exists("missing") is False

    @pytest.mark.asyncio
    async def test_channel_fids_with_progress(self):
        """Test paginated channel followers and progress reports."""
        pages = {
            "": {"users": [{"fid": 1}, {"fid": 2}], "next": {"cursor": "p2"}},
            "p2": {"users": [{"fid": 3}, {"fid": 4}], "next": {"cursor": ""}},
        }

        def followers(request):
            return httpx.Response(200, json=pages[request.url.params.get("cursor", "")])

        client, _ = make_client(
            {
                "/v2/farcaster/channel": {"channel": {"id": "c", "follower_count": 4}},
                "/v2/farcaster/channel/followers": followers,
            }
        )
        progress = []

        fids = await client.channel_fids("c", progress=progress.append)

        assert fids == [1, 2, 3, 4]
        assert progress == [50, 100, 100]

    @pytest.mark.asyncio
    async def test_channel_fids_without_followers(self):
        client, _ = make_client(
            {"/v2/farcaster/channel": {"channel": {"id": "c", "follower_count": 0}}}
        )
        with pytest.raises(NoDataFoundError):
            await client.channel_fids("c")

    @pytest.mark.asyncio
    async def test_find_channel(self):
        client, fake = make_client(
            {"/v2/farcaster/channel/search": {"channels": [{"id": "a"}, {"id": "b"}]}}
        )

        channels = await client.find_channel("vo")

        assert [c.id for c in channels] == ["a", "b"]
        assert fake.requests[-1].url.params["q"] == "vo"

    @pytest.mark.asyncio
    async def test_find_channel_no_results(self):
        client, _ = make_client({"/v2/farcaster/channel/search": {"channels": []}})
        with pytest.raises(NoDataFoundError):
            await client.find_channel("zzz")
