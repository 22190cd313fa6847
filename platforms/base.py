from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class AssetKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"


class ErrorKind(str, Enum):
    NETWORK_FAILURE = "network_failure"
    SERVER_ERROR = "server_error"
    AUTHORIZATION_FAILURE = "authorization_failure"
    DESTINATION_NOT_FOUND = "destination_not_found"
    PROTOCOL_ERROR = "protocol_error"
    MEDIA_UNREADABLE = "media_unreadable"


@dataclass(frozen=True)
class Credential:
    access_token: str = field(repr=False)
    account_name: Optional[str] = None


@dataclass(frozen=True)
class Destination:
    id: int
    display_name: str = ""


@dataclass(frozen=True)
class ShareItem:
    raw_text: Optional[str] = None
    image_location: Optional[str] = None


@dataclass(frozen=True)
class FormattedContent:
    title: str = ""
    body: str = ""


@dataclass(frozen=True)
class SubmissionRequest:
    destination: Destination
    status: str
    content: FormattedContent
    image_location: Optional[str] = None


@dataclass
class UploadOutcome:
    asset_kind: AssetKind
    success: bool
    remote_id: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    error: str = ""


class PublishingClient(ABC):
    name: str = ""

    @abstractmethod
    def create_post(self, destination_id, status, title, body, on_complete):
        """Hand a text post to the transport. Returns a transfer handle."""
        pass

    @abstractmethod
    def create_media(self, destination_id, image_location, on_complete):
        """Hand a media upload to the transport. Returns a transfer handle."""
        pass
