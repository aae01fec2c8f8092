"""
Card Lens - Feature Extractor
Decodes a card photo once and runs every classifier plus the perceptual
hash against that same image.
"""
import base64
import binascii
from io import BytesIO
from typing import Union

from PIL import Image, UnidentifiedImageError

from card_features import CardFeatures
from color_classifier import detect_border_type, detect_corner_dots, detect_frame_color, detect_frame_style
from exceptions import DecodeError
from logger import get_logger
from perceptual_hash import calculate_phash

logger = get_logger('features')

ImageData = Union[bytes, bytearray, str]


def _maybe_base64(data: ImageData) -> bytes:
    """Return the base64-decoded payload when data is strict base64, else the raw bytes"""
    if isinstance(data, str):
        try:
            data = data.encode('ascii')
        except UnicodeEncodeError:
            raise DecodeError("Failed to load image: text payload is not base64")

    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        return bytes(data)


def decode_image(data: ImageData) -> Image.Image:
    """
    Decode raw image bytes (binary or base64 text) into an RGB Pillow image.

    Raises:
        DecodeError: when the bytes are not a supported image
    """
    image_bytes = _maybe_base64(data)

    try:
        image = Image.open(BytesIO(image_bytes))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
        # Pillow reports corrupt PNG chunks as SyntaxError
        logger.warning(f"Image decode failed | bytes={len(image_bytes)} | error={e}")
        raise DecodeError(f"Failed to load image: {e}") from e

    if image.mode != 'RGB':
        image = image.convert('RGB')
    return image


def features_from_image(image: Image.Image) -> CardFeatures:
    """Run all classifiers against an already decoded image"""
    features = CardFeatures(
        border_type=detect_border_type(image),
        frame_color=detect_frame_color(image),
        frame_style=detect_frame_style(image),
        has_corner_dots=detect_corner_dots(image),
        is_foil=False,  # foil detection is not implemented
        phash=calculate_phash(image),
    )
    logger.info(
        f"Features extracted | size={image.width}x{image.height} | border={features.border_type.value} | "
        f"frame={features.frame_color.value} | corner_dots={features.has_corner_dots} | phash={features.phash:016x}"
    )
    return features


def extract_card_features(data: ImageData) -> CardFeatures:
    """Decode image bytes and extract all card features from them"""
    return features_from_image(decode_image(data))
