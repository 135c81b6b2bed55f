"""
Files Blueprint — links to stored attachments.

  GET /api/v1/files/url?path=<storage path>   — Time-bounded download URL
  GET /api/v1/files/download?token=<token>    — Stream a file (local / memory backends)
"""

import io

from flask import Blueprint, jsonify, request, send_file

from flowform.auth import require_auth
from flowform.services import attachment_service
from flowform.utils.errors import E, api_error

files_bp = Blueprint("files", __name__, url_prefix="/api/v1/files")


@files_bp.route("/url", methods=["GET"])
@require_auth
def file_url():
    path = request.args.get("path")
    if not path:
        return api_error(E.VALIDATION_REQUIRED, "path is required")
    return jsonify(attachment_service.get_download_url(path)), 200


@files_bp.route("/download", methods=["GET"])
def download():
    """The signed token is the credential; no bearer header is needed."""
    content, filename, mimetype = attachment_service.open_download(request.args.get("token"))
    return send_file(io.BytesIO(content), mimetype=mimetype, download_name=filename)
