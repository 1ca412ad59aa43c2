"""Helpers shared by the route modules."""
from flask import current_app

from imgverify.lib.history import HistoryStore

ERROR_NO_FILE = 'No file provided'
ERROR_UNSUPPORTED = 'Please upload a JPEG or PNG image.'
ERROR_UNREADABLE = 'Unable to process this image. Please try another file.'
ERROR_INTERNAL = 'Verification is unavailable right now. Please try again later.'


def get_history_store() -> HistoryStore:
    """History store configured for the current application."""
    return HistoryStore(
        slot=current_app.config['HISTORY_SLOT'],
        capacity=current_app.config['HISTORY_CAPACITY'],
    )


def allowed_file(filename: str) -> bool:
    """
    Check if file extension is allowed.

    Args:
        filename: Name of the file to check

    Returns:
        True if extension is in ALLOWED_EXTENSIONS
    """
    return '.' in filename and \
           filename.rsplit('.', 1)[1].lower() in current_app.config['ALLOWED_EXTENSIONS']
