"""Image verification upload route.

Provides endpoint for:
- Browser image upload and verification (POST /api/verify)
"""
from flask import Blueprint, request, jsonify, current_app
from werkzeug.utils import secure_filename
import logging

from imgverify.lib.errors import UnreadableImageError, UnsupportedFileTypeError
from imgverify.lib.geocoding import normalize_device_location
from imgverify.lib.processing import verify_submission
from imgverify.lib.thumbnail import detect_image_type
from imgverify.routes.common import (
    ERROR_INTERNAL, ERROR_NO_FILE, ERROR_UNREADABLE, ERROR_UNSUPPORTED,
    allowed_file, get_history_store,
)

logger = logging.getLogger(__name__)

verify_bp = Blueprint('verify', __name__)


def device_location_from_form(form):
    """
    Browser-supplied device coordinates, validated.

    Returns None when the browser did not send a usable location.
    """
    return normalize_device_location({
        'latitude': form.get('deviceLatitude'),
        'longitude': form.get('deviceLongitude'),
    })


@verify_bp.route('/api/verify', methods=['POST'])
def verify_upload():
    """
    Verify a single uploaded image.

    Accepts multipart/form-data with a 'file' field (JPEG or PNG) and
    optional 'deviceLatitude'/'deviceLongitude' fields.

    Returns:
        JSON: {hash, metadata, verification, entry, history, deviceLocation}
    """
    upload = request.files.get('file')
    if upload is None or upload.filename == '':
        return jsonify({'error': ERROR_NO_FILE}), 400

    if not allowed_file(upload.filename):
        return jsonify({'error': ERROR_UNSUPPORTED}), 400

    data = upload.read()
    try:
        detect_image_type(data)
    except UnsupportedFileTypeError as e:
        logger.info(f"Rejected upload {upload.filename}: {e}")
        return jsonify({'error': ERROR_UNSUPPORTED}), 400
    except UnreadableImageError as e:
        logger.warning(f"Unreadable upload {upload.filename}: {e}")
        return jsonify({'error': ERROR_UNREADABLE}), 422

    file_name = secure_filename(upload.filename) or 'upload'

    try:
        submission = verify_submission(
            data,
            file_name,
            get_history_store(),
            geocoder=current_app.extensions.get('imgverify.geocoder'),
            device_location=device_location_from_form(request.form),
            preview_size=current_app.config['PREVIEW_SIZE'],
            exiftool_path=current_app.config['EXIFTOOL_PATH'],
        )
    except UnreadableImageError as e:
        logger.warning(f"Unreadable upload {file_name}: {e}")
        return jsonify({'error': ERROR_UNREADABLE}), 422
    except Exception as e:
        logger.error(f"Verification error for {file_name}: {e}", exc_info=True)
        return jsonify({'error': ERROR_INTERNAL}), 500

    return jsonify(submission.to_dict()), 200
