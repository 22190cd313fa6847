from platforms.wpcom_client import WordPressComClient

PLATFORMS = {
    "wpcom": WordPressComClient,
}


def get_platform(name, transport):
    cls = PLATFORMS.get(name)
    if cls is None:
        raise ValueError(f"Unknown platform: {name}")
    return cls(transport)
