"""Submission history routes."""
from flask import Blueprint, jsonify

from imgverify.lib.history import history_stats
from imgverify.routes.common import get_history_store

history_bp = Blueprint('history', __name__, url_prefix='/api/history')


@history_bp.route('', methods=['GET'])
def list_history():
    """Stored submissions, newest first, with verdict counts."""
    entries = get_history_store().load()
    return jsonify({
        'entries': [entry.to_dict() for entry in entries],
        'stats': history_stats(entries),
    })


@history_bp.route('', methods=['DELETE'])
def clear_history():
    """Remove all stored submissions."""
    store = get_history_store()
    store.clear()
    return jsonify({'entries': [], 'stats': history_stats([])})


@history_bp.route('/stats', methods=['GET'])
def get_stats():
    """Verdict counts for the dashboard."""
    return jsonify(history_stats(get_history_store().load()))
