import logging
import os
from dataclasses import asdict

from flask import Flask, jsonify, request
from werkzeug.utils import secure_filename

import config
from platforms.base import AssetKind, Destination, ShareItem
from platforms.transfer_journal import TransferJournal
from platforms.transport import SessionConfiguration, TransferResult
from platforms.wpcom_client import WordPressComClient, interpret_result
from services.content_formatter import compose_shared_text
from services.coordinator import BlockedPrecondition, SubmissionCoordinator
from services.credentials import retrieve_credential, retrieve_primary_destination
from services.lifecycle_gate import MISSING_TOKEN_NOTICE, GateDecision, on_entry
from services.media import allowed_file, cleanup_upload, save_upload
from statuses import DEFAULT_STATUS, all_statuses, is_valid_status

config.configure_logging()
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["MAX_CONTENT_LENGTH"] = 16 * 1024 * 1024  # 16MB upload limit


def _abort_payload():
    return {
        "decision": GateDecision.MUST_ABORT.value,
        "notice": asdict(MISSING_TOKEN_NOTICE),
    }


def _outcome_payload(outcome):
    return {
        "asset_kind": outcome.asset_kind.value,
        "success": outcome.success,
        "remote_id": outcome.remote_id,
        "error_kind": outcome.error_kind.value if outcome.error_kind else None,
        "error": outcome.error,
    }


def _destination_from_form(form):
    """Site picked in the host UI, else the stored primary site."""
    site_id = form.get("site_id", "").strip()
    if not site_id:
        return retrieve_primary_destination()
    try:
        return Destination(id=int(site_id), display_name=form.get("site_name", "").strip())
    except ValueError:
        logger.warning("Ignoring non-numeric site id %r", site_id)
        return None


@app.route("/share")
def share_state():
    credential = retrieve_credential()
    if on_entry(credential) is GateDecision.MUST_ABORT:
        return jsonify(_abort_payload())

    coordinator = SubmissionCoordinator(credential, retrieve_primary_destination())
    return jsonify({
        "decision": GateDecision.PROCEED.value,
        "account_name": credential.account_name,
        "configuration_items": coordinator.configuration_items(),
        "content_valid": coordinator.is_content_valid(),
        "statuses": all_statuses(),
    })


@app.route("/share", methods=["POST"])
def share():
    credential = retrieve_credential()
    if on_entry(credential) is GateDecision.MUST_ABORT:
        return jsonify(_abort_payload()), 401

    status = request.form.get("status", "").strip() or DEFAULT_STATUS
    if not is_valid_status(status):
        return jsonify({"error": f"Unknown post status: {status}"}), 400

    text = compose_shared_text(
        request.form.get("text", ""),
        request.form.get("source_url", "").strip(),
    )
    upload = request.files.get("image")
    if upload and upload.filename and not allowed_file(upload.filename):
        return jsonify({"error": f"Unsupported image type: {upload.filename}"}), 400
    image_path = save_upload(upload)
    image_location = image_path or request.form.get("image_url", "").strip() or None

    def on_outcome(outcome):
        if outcome.asset_kind is AssetKind.IMAGE:
            cleanup_upload(image_path)

    completed = []
    coordinator = SubmissionCoordinator(
        credential,
        _destination_from_form(request.form),
        status=status,
        on_outcome=on_outcome,
        on_request_complete=lambda: completed.append(True),
    )
    result = coordinator.post(ShareItem(raw_text=text, image_location=image_location))
    if isinstance(result, BlockedPrecondition):
        cleanup_upload(image_path)
        return jsonify({
            "error": result.reason.value,
            "cause": result.cause.value if result.cause else None,
        }), 409

    return jsonify({"complete": bool(completed), "session_id": coordinator.session_id})


@app.route("/share/<session_id>/outcomes")
def share_outcomes(session_id):
    credential = retrieve_credential()
    if on_entry(credential) is GateDecision.MUST_ABORT:
        return jsonify(_abort_payload()), 401

    journal = TransferJournal(config.TRANSFER_DIR, secure_filename(session_id))
    if secure_filename(session_id) != session_id or not os.path.exists(journal.path):
        return jsonify({"error": "Unknown share session"}), 404

    # Polling counts as delivery; every finished transfer is reported below.
    configuration = SessionConfiguration.for_identifier(session_id, credential)
    client = WordPressComClient.resume(configuration, lambda outcome: None)
    client.transport.wait(config.REQUEST_TIMEOUT)
    entries = client.transport.journal.entries()

    return jsonify({
        "session_id": session_id,
        "outcomes": [
            _outcome_payload(interpret_result(TransferResult.from_dict(e["result"])))
            for e in entries if e["result"]
        ],
        "transfers": [
            {"id": e["id"], "state": e["state"], "result": e["result"]}
            for e in entries
        ],
    })


if __name__ == "__main__":
    os.makedirs(config.UPLOAD_FOLDER, exist_ok=True)
    os.makedirs(config.TRANSFER_DIR, exist_ok=True)
    app.run(host="127.0.0.1", port=5555, debug=True)
