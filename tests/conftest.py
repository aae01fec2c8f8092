"""
Card Lens - Test Configuration
Shared fixtures and configuration for all tests
"""
import io
import struct
import zlib
import os
import sys
import tempfile
from pathlib import Path

# Point the app at throwaway storage before any project module reads config
os.environ.setdefault('CARD_LENS_DATABASE_URI', 'sqlite://')
os.environ.setdefault('LOG_DIR', tempfile.mkdtemp(prefix='card-lens-logs-'))

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from PIL import Image, ImageDraw
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

TEST_DATABASE_URI = 'sqlite://'


def solid_image(color, size=(300, 420)):
    """Plain RGB image of a single color"""
    return Image.new('RGB', size, color)


def image_bytes(image, fmt='PNG'):
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def _png_chunk(kind, data):
    return struct.pack('>I', len(data)) + kind + data + struct.pack('>I', zlib.crc32(kind + data) & 0xFFFFFFFF)


def corrupt_png_bytes(size=64):
    """
    PNG with a valid header whose pixel data is split over two chunks, the
    second one with a garbled chunk type. Pillow opens it fine and only
    fails with SyntaxError("broken PNG file ...") while loading pixels.
    """
    rows = (b'\x00' + bytes((x * 7 + y * 13) % 256 for x in range(size * 3)) for y in range(size))
    compressed = zlib.compress(b''.join(rows))
    half = len(compressed) // 2
    header = struct.pack('>IIBBBBB', size, size, 8, 2, 0, 0, 0)
    return (b'\x89PNG\r\n\x1a\n'
            + _png_chunk(b'IHDR', header)
            + _png_chunk(b'IDAT', compressed[:half])
            + _png_chunk(b'\x8atE\xba', compressed[half:])
            + _png_chunk(b'IEND', b''))


def fingerprint_image(fingerprint):
    """
    9x8 grayscale image whose difference hash is exactly `fingerprint`.
    Each row is built right to left, stepping up where the bit is set.
    """
    image = Image.new('L', (9, 8))
    for y in range(8):
        value = 128
        image.putpixel((8, y), value)
        for x in range(7, -1, -1):
            value = value + 10 if fingerprint >> (y * 8 + x) & 1 else value - 10
            image.putpixel((x, y), value)
    return image


def card_with_corner_dots(left=True, right=True, size=(300, 420)):
    """Black card with white squares over the bottom corner zones"""
    image = solid_image((10, 10, 10), size)
    draw = ImageDraw.Draw(image)
    width, height = size
    if left:
        draw.rectangle([0, height - 25, 40, height], fill=(250, 250, 250))
    if right:
        draw.rectangle([width - 40, height - 25, width, height], fill=(250, 250, 250))
    return image


@pytest.fixture(scope='function')
def test_engine():
    """Create test database engine - new engine per test"""
    from database import Base
    engine = create_engine(TEST_DATABASE_URI)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope='function')
def session_factory(test_engine):
    """Session factory bound to the per-test engine"""
    return sessionmaker(bind=test_engine)


@pytest.fixture(scope='function')
def db_session(session_factory):
    """Create a new database session for each test"""
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(scope='function')
def card_store(session_factory):
    """Local card store backed by the in-memory test database"""
    from database import LocalCardStore
    return LocalCardStore(session_factory)


@pytest.fixture
def sample_card_data():
    """Owned card fields as accepted by LocalCardStore.add_card"""
    return {
        'scryfall_id': 'e3285e6b-3e79-4d7c-bf96-d920f973b122',
        'name': 'Lightning Bolt',
        'set_code': 'm11',
        'collector_number': '149',
        'image_uri': 'https://cards.scryfall.io/normal/front/e/3/bolt.jpg',
    }


@pytest.fixture
def scryfall_card_payload():
    """A card object as returned by the Scryfall API"""
    return {
        'object': 'card',
        'id': 'abc123',
        'oracle_id': 'oracle-1',
        'name': 'Counterspell',
        'lang': 'en',
        'set': 'ice',
        'set_name': 'Ice Age',
        'collector_number': '64',
        'released_at': '1995-06-03',
        'rarity': 'common',
        'artist': 'Mark Poole',
        'image_uris': {
            'small': 'https://cards.scryfall.io/small/front/a/b/abc123.jpg',
            'normal': 'https://cards.scryfall.io/normal/front/a/b/abc123.jpg',
            'large': 'https://cards.scryfall.io/large/front/a/b/abc123.jpg',
            'png': 'https://cards.scryfall.io/png/front/a/b/abc123.png',
            'art_crop': 'https://cards.scryfall.io/art_crop/front/a/b/abc123.jpg',
            'border_crop': 'https://cards.scryfall.io/border_crop/front/a/b/abc123.jpg',
        },
        'prices': {'usd': '1.50', 'usd_foil': None, 'eur': '1.20', 'eur_foil': None},
    }


@pytest.fixture
def card_photo_bytes():
    """PNG bytes of a synthetic blue-framed, black-bordered card"""
    return image_bytes(solid_image((30, 60, 200)))


@pytest.fixture(scope='function')
def app():
    """Create test Flask application"""
    from app import app as flask_app

    flask_app.config.update({
        'TESTING': True,
    })

    yield flask_app


@pytest.fixture(scope='function')
def client(app):
    """Create test client"""
    return app.test_client()
