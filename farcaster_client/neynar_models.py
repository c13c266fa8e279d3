"""Request and response shapes of the Neynar endpoints used by the client.

Each endpoint decodes into its own model; unknown fields are ignored.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class NextCursor(BaseModel):
    cursor: Optional[str] = None


class VerifiedAddresses(BaseModel):
    eth_addresses: list[str] = Field(default_factory=list)


class UserBio(BaseModel):
    text: str = ""


class UserProfile(BaseModel):
    bio: UserBio = Field(default_factory=UserBio)


class NeynarUser(BaseModel):
    """A user object as returned by the v2 user endpoints."""

    fid: int
    username: str = ""
    display_name: Optional[str] = None
    custody_address: Optional[str] = None
    pfp_url: Optional[str] = None
    profile: UserProfile = Field(default_factory=UserProfile)
    verifications: list[str] = Field(default_factory=list)
    verified_addresses: VerifiedAddresses = Field(default_factory=VerifiedAddresses)


class UserBulkResponse(BaseModel):
    """/v2/farcaster/user/bulk and /v2/farcaster/channel/followers"""

    users: list[NeynarUser] = Field(default_factory=list)
    next: Optional[NextCursor] = None


class FollowersResult(BaseModel):
    users: Optional[list[NeynarUser]] = None
    next: Optional[NextCursor] = None


class FollowersResponse(BaseModel):
    """/v1/farcaster/followers"""

    result: FollowersResult = Field(default_factory=FollowersResult)


class CastAuthor(BaseModel):
    fid: int


class ParentAuthor(BaseModel):
    fid: Optional[int] = None


class CastEmbed(BaseModel):
    url: Optional[str] = None


class CastData(BaseModel):
    """A cast object, shared by the cast endpoint and webhook deliveries."""

    object: str = ""
    hash: str
    author: CastAuthor
    text: str = ""
    timestamp: str = ""
    parent_hash: Optional[str] = None
    parent_author: Optional[ParentAuthor] = None
    embeds: list[CastEmbed] = Field(default_factory=list)


class CastResponse(BaseModel):
    """/v2/farcaster/cast"""

    cast: Optional[CastData] = None


class CastsWebhookRequest(BaseModel):
    """Envelope of a webhook delivery. ``data`` depends on ``type``."""

    type: str
    created_at: Optional[int] = None
    data: Optional[dict[str, Any]] = None


class ChannelData(BaseModel):
    id: str
    name: str = ""
    description: Optional[str] = None
    follower_count: int = 0
    image_url: Optional[str] = None
    url: Optional[str] = None


class ChannelResponse(BaseModel):
    """/v2/farcaster/channel"""

    channel: Optional[ChannelData] = None


class ChannelsResponse(BaseModel):
    """/v2/farcaster/channel/search"""

    channels: list[ChannelData] = Field(default_factory=list)


class CastPostRequest(BaseModel):
    """Body of POST /v2/farcaster/cast"""

    signer_uuid: str
    text: str
    parent: Optional[str] = None
    embeds: list[CastEmbed] = Field(default_factory=list)
