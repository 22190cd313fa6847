from dataclasses import dataclass
from enum import Enum


class GateDecision(str, Enum):
    PROCEED = "proceed"
    MUST_ABORT = "must_abort"


class PreconditionFailure(str, Enum):
    MISSING_CREDENTIAL = "missing_credential"
    MISSING_DESTINATION = "missing_destination"
    PROGRAMMING_CONTRACT_VIOLATION = "programming_contract_violation"


@dataclass(frozen=True)
class Notice:
    title: str
    message: str
    accept_label: str


MISSING_TOKEN_NOTICE = Notice(
    title="No WordPress.com Account",
    message=(
        "Launch the WordPress app and sign into your WordPress.com "
        "or Jetpack site to share."
    ),
    accept_label="Cancel Share",
)


def _has_credential(credential):
    return credential is not None and bool(credential.access_token)


def on_entry(credential):
    """Decide whether a share session may start at all.

    Without a credential the host shows MISSING_TOKEN_NOTICE and cancels the
    whole session once the user acknowledges it.
    """
    return GateDecision.PROCEED if _has_credential(credential) else GateDecision.MUST_ABORT


def missing_precondition(credential, destination):
    """Return the first unmet PreconditionFailure, or None."""
    if not _has_credential(credential):
        return PreconditionFailure.MISSING_CREDENTIAL
    if destination is None:
        return PreconditionFailure.MISSING_DESTINATION
    return None


def can_proceed(credential, destination):
    return missing_precondition(credential, destination) is None
