"""
Card Lens - Perceptual Hash Engine
64-bit difference hash (dHash) fingerprints and their comparison
"""
import re

import numpy as np
from PIL import Image

HASH_WIDTH = 9
HASH_HEIGHT = 8
FINGERPRINT_BITS = 64
FINGERPRINT_HEX_DIGITS = 16

_HEX_PATTERN = re.compile(r'^[0-9a-fA-F]{1,16}$')


def calculate_phash(image: Image.Image) -> int:
    """
    Compute the difference hash of an image.

    The image is resized to 9x8 with Lanczos resampling and converted to
    grayscale. Bit (y * 8 + x) is set when pixel (x, y) is strictly brighter
    than its right-hand neighbour.
    """
    if image.mode not in ('RGB', 'L'):
        image = image.convert('RGB')
    small = image.resize((HASH_WIDTH, HASH_HEIGHT), Image.Resampling.LANCZOS).convert('L')
    pixels = np.asarray(small, dtype=np.int16)

    brighter = (pixels[:, :-1] > pixels[:, 1:]).flatten()
    fingerprint = 0
    for bit, is_set in enumerate(brighter):
        if is_set:
            fingerprint |= 1 << bit
    return fingerprint


def hamming_distance(a: int, b: int) -> int:
    """Number of differing bits between two fingerprints (0-64)"""
    return bin(a ^ b).count('1')


def fingerprint_to_hex(fingerprint: int) -> str:
    """Persisted form of a fingerprint: 16 lowercase hex digits"""
    if not 0 <= fingerprint < 1 << FINGERPRINT_BITS:
        raise ValueError(f"Fingerprint out of 64-bit range: {fingerprint}")
    return format(fingerprint, f'0{FINGERPRINT_HEX_DIGITS}x')


def fingerprint_from_hex(text: str) -> int:
    """Parse a stored fingerprint, raising ValueError for malformed values"""
    if not isinstance(text, str) or not _HEX_PATTERN.match(text.strip()):
        raise ValueError(f"Malformed fingerprint: {text!r}")
    return int(text.strip(), 16)
