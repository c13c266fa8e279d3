"""Response shapes of the Warpcast client API."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WarpcastModel(BaseModel):
    """Warpcast answers in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Pfp(WarpcastModel):
    url: str = ""
    verified: bool = False


class Bio(WarpcastModel):
    text: str = ""
    mentions: list[str] = Field(default_factory=list)
    channel_mentions: list[str] = Field(default_factory=list)


class Location(WarpcastModel):
    place_id: str = ""
    description: str = ""


class Profile(WarpcastModel):
    bio: Bio = Field(default_factory=Bio)
    location: Location = Field(default_factory=Location)


class ViewerContext(WarpcastModel):
    following: bool = False
    followed_by: bool = False
    can_send_direct_casts: bool = False
    has_uploaded_inbox_keys: bool = False
    enable_notifications: bool = False


class WarpcastUser(WarpcastModel):
    fid: int
    username: str = ""
    display_name: str = ""
    pfp: Pfp = Field(default_factory=Pfp)
    profile: Profile = Field(default_factory=Profile)
    follower_count: int = 0
    following_count: int = 0
    active_on_fc_network: bool = False
    referrer_username: Optional[str] = None
    viewer_context: ViewerContext = Field(default_factory=ViewerContext)


class UserExtras(WarpcastModel):
    fid: int = 0
    custody_address: str = ""


class UserProfileResult(WarpcastModel):
    user: WarpcastUser
    inviter_is_referrer: bool = False
    extras: UserExtras = Field(default_factory=UserExtras)


class UserProfile(WarpcastModel):
    """/v2/user"""

    result: UserProfileResult


class Verification(WarpcastModel):
    fid: int
    address: str
    timestamp: int = 0
    version: str = ""
    protocol: str = ""


class VerificationsResult(WarpcastModel):
    verifications: list[Verification] = Field(default_factory=list)


class VerificationResponse(WarpcastModel):
    """/v2/verifications"""

    result: VerificationsResult = Field(default_factory=VerificationsResult)


class RecentUser(WarpcastModel):
    fid: int


class RecentUsersResult(WarpcastModel):
    users: list[RecentUser] = Field(default_factory=list)


class RecentUsersResponse(WarpcastModel):
    """/v2/recent-users"""

    result: RecentUsersResult = Field(default_factory=RecentUsersResult)


class SuggestedUsersResult(WarpcastModel):
    users: list[WarpcastUser] = Field(default_factory=list)


class Cursor(WarpcastModel):
    cursor: str = ""


class SuggestedUsersResponse(WarpcastModel):
    """/v2/suggested-users"""

    result: SuggestedUsersResult = Field(default_factory=SuggestedUsersResult)
    next: Cursor = Field(default_factory=Cursor)
