"""Dispatch of one share session's text post and optional image.

The coordinator moves Idle -> Validating -> Submitting -> Done. It hands both
assets to the transport and reaches Done as soon as they are enqueued; the
outcomes arrive later, independently, through ``on_outcome``. Nothing links
the image to the post once both are uploaded.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from platforms import get_platform
from platforms.base import SubmissionRequest
from platforms.transport import SessionConfiguration, TransportSession
from services.content_formatter import format_content
from services.lifecycle_gate import PreconditionFailure, missing_precondition
from statuses import DEFAULT_STATUS, get_status_label, is_valid_status

logger = logging.getLogger(__name__)


class CoordinatorState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    DONE = "done"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Ready:
    request: SubmissionRequest
    handles: list = field(default_factory=list)


@dataclass(frozen=True)
class BlockedPrecondition:
    reason: PreconditionFailure
    cause: Optional[PreconditionFailure] = None


class SubmissionCoordinator:
    def __init__(self, credential, destination=None, status=DEFAULT_STATUS,
                 client_factory=None, on_outcome=None, on_request_complete=None,
                 platform="wpcom"):
        if not is_valid_status(status):
            raise ValueError(f"Unknown post status: {status}")
        self.credential = credential
        self.destination = destination
        self.status = status
        self.state = CoordinatorState.IDLE
        self.platform = platform
        self.on_outcome = on_outcome
        self.on_request_complete = on_request_complete
        self._client_factory = client_factory or self._default_client
        self._configuration = None
        self._client = None

    @property
    def session_id(self):
        return self._configuration.identifier if self._configuration else None

    def _default_client(self, configuration):
        return get_platform(self.platform, TransportSession(configuration))

    def _get_client(self):
        if self._client is None:
            self._configuration = SessionConfiguration.with_randomized_identifier(
                self.credential
            )
            self._client = self._client_factory(self._configuration)
        return self._client

    # --- picker state ---

    def is_content_valid(self):
        """Whether the host should enable its post action."""
        return self.state is CoordinatorState.IDLE and self.destination is not None

    def configuration_items(self):
        return [
            {
                "title": "Post to:",
                "value": self.destination.display_name if self.destination else "Select a site",
            },
            {
                "title": "Post Status:",
                "value": get_status_label(self.status),
            },
        ]

    def select_destination(self, destination):
        self._require_idle("change the destination")
        self.destination = destination

    def select_status(self, status):
        self._require_idle("change the post status")
        if not is_valid_status(status):
            raise ValueError(f"Unknown post status: {status}")
        self.status = status

    def _require_idle(self, action):
        if self.state is not CoordinatorState.IDLE:
            raise RuntimeError(f"Cannot {action} once the share is {self.state.value}")

    # --- submission ---

    def validate(self, share_item):
        """Return Ready(request) or BlockedPrecondition(reason). No I/O."""
        failure = missing_precondition(self.credential, self.destination)
        if failure is not None:
            return BlockedPrecondition(reason=failure)
        request = SubmissionRequest(
            destination=self.destination,
            status=self.status,
            content=format_content(share_item.raw_text),
            image_location=share_item.image_location,
        )
        return Ready(request=request)

    def post(self, share_item):
        self._require_idle("post")
        self.state = CoordinatorState.VALIDATING
        result = self.validate(share_item)
        if isinstance(result, BlockedPrecondition):
            # The host should have kept the post action disabled.
            self.state = CoordinatorState.IDLE
            logger.error("Post attempted with unmet precondition: %s", result.reason.value)
            return BlockedPrecondition(
                reason=PreconditionFailure.PROGRAMMING_CONTRACT_VIOLATION,
                cause=result.reason,
            )

        self.state = CoordinatorState.SUBMITTING
        handles = self._dispatch(result.request)
        self.state = CoordinatorState.DONE
        logger.info(
            "Dispatched %d transfer(s) to site %s on session %s",
            len(handles), result.request.destination.id, self.session_id,
        )
        if self.on_request_complete is not None:
            self.on_request_complete()
        return Ready(request=result.request, handles=handles)

    def _dispatch(self, request):
        client = self._get_client()
        handles = [
            client.create_post(
                request.destination.id,
                request.status,
                request.content.title,
                request.content.body,
                self._deliver,
            )
        ]
        if request.image_location:
            handles.append(
                client.create_media(
                    request.destination.id, request.image_location, self._deliver
                )
            )
        return handles

    def _deliver(self, outcome):
        if outcome.success:
            logger.info("%s upload succeeded: %s", outcome.asset_kind.value, outcome.remote_id)
        else:
            logger.warning(
                "%s upload failed (%s): %s",
                outcome.asset_kind.value, outcome.error_kind.value, outcome.error,
            )
        if self.on_outcome is not None:
            self.on_outcome(outcome)

    def cancel(self):
        """Cancel the local interaction. Enqueued transfers keep running."""
        if self.state is CoordinatorState.IDLE:
            self.state = CoordinatorState.CANCELLED
            logger.info("Share cancelled before submission")
            return True
        return False
