"""Shared fixtures: application, client, generated images, stub decoder."""
from io import BytesIO

import pytest
from PIL import Image

from imgverify.lib import metadata as metadata_module
from imgverify.lib.metadata import DecodedMetadata


@pytest.fixture
def app():
    """Create application with an in-memory database."""
    from imgverify import create_app, db

    app = create_app('testing')

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Test client for HTTP requests."""
    return app.test_client()


def make_image_bytes(fmt='JPEG', color='red', size=(64, 48)) -> bytes:
    """Encode a solid-color image in the given format."""
    buffer = BytesIO()
    mode = 'RGBA' if fmt == 'PNG' else 'RGB'
    Image.new(mode, size, color).save(buffer, fmt)
    return buffer.getvalue()


@pytest.fixture
def jpeg_bytes():
    return make_image_bytes('JPEG', 'red')


@pytest.fixture
def other_jpeg_bytes():
    return make_image_bytes('JPEG', 'blue')


@pytest.fixture
def png_bytes():
    return make_image_bytes('PNG', (0, 128, 0, 255))


COMPLETE_RECORD = {
    'DateTimeOriginal': '2023:05:14 10:22:00',
    'GPSLatitude': 6.5,
    'GPSLatitudeRef': 'N',
    'GPSLongitude': 3.3,
    'GPSLongitudeRef': 'E',
    'Make': 'Nikon',
    'Model': 'Z6',
}


@pytest.fixture
def stub_decoder(monkeypatch):
    """
    Replace ExifTool decoding with a canned record.

    Returns a dict; set 'record' / 'gps' / 'error' on it to control what
    the next decode returns.
    """
    state = {'record': dict(COMPLETE_RECORD), 'gps': None, 'error': None, 'calls': 0}

    def fake_decode(data, executable=None):
        state['calls'] += 1
        if state['error'] is not None:
            raise state['error']
        return DecodedMetadata(record=state['record'], gps=state['gps'])

    monkeypatch.setattr(metadata_module, 'decode_metadata', fake_decode)
    return state


@pytest.fixture
def make_image():
    """Factory for encoded test images."""
    return make_image_bytes
