STATUSES = {
    "draft": {
        "label": "Draft",
    },
    "publish": {
        "label": "Publish",
    },
}

DEFAULT_STATUS = "publish"


def all_statuses():
    """Return the status table as {key: label} for picker consumption."""
    return {key: value["label"] for key, value in STATUSES.items()}


def get_status_label(status):
    """Return the display label for a status key, or None."""
    entry = STATUSES.get(status)
    return entry["label"] if entry else None


def is_valid_status(status):
    return status in STATUSES
