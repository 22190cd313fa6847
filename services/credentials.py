"""Lookups for the credential and primary site the host app stored for us."""

import logging

import config
from platforms.base import Credential, Destination

logger = logging.getLogger(__name__)


def retrieve_credential():
    """Return the stored Credential, or None when the user never signed in."""
    if not config.credential_configured():
        return None
    return Credential(
        access_token=config.WPCOM_ACCESS_TOKEN,
        account_name=config.WPCOM_USERNAME or None,
    )


def retrieve_primary_destination():
    """Return the previously selected site, or None."""
    if not config.primary_site_configured():
        return None
    try:
        site_id = int(config.WPCOM_PRIMARY_SITE_ID)
    except ValueError:
        logger.warning("Ignoring non-numeric primary site id %r", config.WPCOM_PRIMARY_SITE_ID)
        return None
    return Destination(id=site_id, display_name=config.WPCOM_PRIMARY_SITE_NAME)
