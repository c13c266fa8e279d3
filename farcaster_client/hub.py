"""Farcaster domain objects shared by the API clients."""

from dataclasses import dataclass, field
from typing import Optional

# Maximum number of UTF-8 bytes a cast can hold.
MAX_CAST_BYTES = 350


@dataclass(frozen=True)
class ParentAPIMessage:
    """Reference to the cast a message replies to."""

    fid: int
    hash: str


@dataclass(frozen=True)
class APIMessage:
    """A cast as seen by the bot."""

    is_mention: bool
    content: str
    author: int
    hash: str
    parent: Optional[ParentAPIMessage] = None
    embeds: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return f"{self.author}/{self.hash}: {self.content}"


@dataclass
class Userdata:
    """Profile and verification data of a Farcaster user."""

    fid: int
    username: str
    display_name: str = ""
    custody_address: str = ""
    verification_addresses: list[str] = field(default_factory=list)
    signers: list[str] = field(default_factory=list)
    avatar: str = ""
    bio: str = ""


@dataclass
class Channel:
    """A Farcaster channel."""

    id: str
    name: str
    description: str = ""
    followers: int = 0
    image: str = ""
    url: str = ""
