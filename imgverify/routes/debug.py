"""Debug routes (only active with DEBUG_MODE)."""
from flask import Blueprint, abort, current_app, jsonify, request
import logging

from imgverify.lib.errors import UnreadableImageError
from imgverify.lib.metadata import decode_metadata, extract_debug_metadata
from imgverify.routes.common import ERROR_NO_FILE, ERROR_UNREADABLE

logger = logging.getLogger(__name__)

debug_bp = Blueprint('debug', __name__, url_prefix='/api')


@debug_bp.route('/debug-metadata', methods=['POST'])
def debug_metadata():
    """
    Show where GPS values were found in an uploaded image.

    Returns:
        JSON: {gpsData, gpsRecord, exifRecord, xmpRecord, gpsFields}
    """
    if not current_app.config.get('DEBUG_MODE'):
        abort(404)

    upload = request.files.get('file')
    if upload is None or upload.filename == '':
        return jsonify({'error': ERROR_NO_FILE}), 400

    try:
        decoded = decode_metadata(upload.read(), current_app.config['EXIFTOOL_PATH'])
    except UnreadableImageError as e:
        logger.warning(f"Debug metadata failed for {upload.filename}: {e}")
        return jsonify({'error': ERROR_UNREADABLE}), 422

    return jsonify(extract_debug_metadata(decoded))
