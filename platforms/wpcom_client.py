from urllib.parse import urlparse
from urllib.request import url2pathname

from platforms.base import AssetKind, ErrorKind, PublishingClient, UploadOutcome
from platforms.transport import TransferRequest, TransportSession
from services.media import get_mime_type

AUTH_ERROR_CODES = {"unauthorized", "authorization_required", "invalid_token"}
NOT_FOUND_ERROR_CODES = {"unknown_blog", "unknown_site"}


def local_image_path(image_location):
    """Return a filesystem path for a ``file://`` URI or a plain path."""
    parsed = urlparse(image_location)
    if parsed.scheme == "file":
        return url2pathname(parsed.path)
    return image_location


def is_remote_image(image_location):
    return urlparse(image_location).scheme in ("http", "https")


def refine_error_kind(result):
    """Split transport-level failures into the publishing API's error kinds."""
    code = (result.payload or {}).get("error")
    if not isinstance(code, str):
        code = None
    if result.status_code in (401, 403) or code in AUTH_ERROR_CODES:
        return ErrorKind.AUTHORIZATION_FAILURE
    if result.status_code == 404 or code in NOT_FOUND_ERROR_CODES:
        return ErrorKind.DESTINATION_NOT_FOUND
    return result.error_kind


def _created_id(asset_kind, payload):
    if not isinstance(payload, dict):
        return None
    if asset_kind is AssetKind.TEXT:
        return payload.get("ID")
    media = payload.get("media")
    if isinstance(media, list) and media and isinstance(media[0], dict):
        return media[0].get("ID")
    return None


def _first_error_message(payload):
    errors = payload.get("errors") if isinstance(payload, dict) else None
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        return str(errors[0].get("message") or "")
    return ""


def interpret_result(result):
    """Turn a TransferResult into the UploadOutcome callers see."""
    asset_kind = AssetKind(result.asset_kind)
    if not result.success:
        return UploadOutcome(
            asset_kind=asset_kind,
            success=False,
            error_kind=refine_error_kind(result),
            error=result.error,
        )

    remote_id = _created_id(asset_kind, result.payload)
    if remote_id is None:
        message = _first_error_message(result.payload)
        return UploadOutcome(
            asset_kind=asset_kind,
            success=False,
            error_kind=ErrorKind.PROTOCOL_ERROR,
            error=message or "Response did not include the created object ID",
        )
    return UploadOutcome(asset_kind=asset_kind, success=True, remote_id=str(remote_id))


class WordPressComClient(PublishingClient):
    name = "wpcom"

    def __init__(self, transport):
        self.transport = transport

    @classmethod
    def resume(cls, configuration, on_complete):
        """Reattach to an earlier session and deliver its outcomes."""
        transport = TransportSession.resume(
            configuration, lambda result: on_complete(interpret_result(result))
        )
        return cls(transport)

    def create_post(self, destination_id, status, title, body, on_complete):
        request = TransferRequest(
            method="POST",
            path=f"/sites/{destination_id}/posts/new",
            asset_kind=AssetKind.TEXT.value,
            data={"title": title, "content": body, "status": status},
        )
        return self.transport.enqueue(request, self._completion(on_complete))

    def create_media(self, destination_id, image_location, on_complete):
        path = f"/sites/{destination_id}/media/new"
        if is_remote_image(image_location):
            # The server sideloads remote images itself.
            request = TransferRequest(
                method="POST",
                path=path,
                asset_kind=AssetKind.IMAGE.value,
                data={"media_urls[]": [image_location]},
            )
        else:
            file_path = local_image_path(image_location)
            request = TransferRequest(
                method="POST",
                path=path,
                asset_kind=AssetKind.IMAGE.value,
                file_path=file_path,
                file_field="media[]",
                mime_type=get_mime_type(file_path),
            )
        return self.transport.enqueue(request, self._completion(on_complete))

    def _completion(self, on_complete):
        if on_complete is None:
            return None
        return lambda result: on_complete(interpret_result(result))
