"""
Card Lens - Color Classifier
Turns sampled pixel zones of a card photo into categorical labels
(border type, frame color, corner dots) using averaged HSV values.
"""
import colorsys
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from card_features import BorderType, FrameColor, FrameStyle
from logger import get_logger

logger = get_logger('classifier')

# Border strips sit inside the nominal margin to avoid background/bleed
BORDER_MARGIN = 0.15
BORDER_STRIP = 0.05

# Frame columns and the vertical band they are sampled over
FRAME_LEFT_X = 0.05
FRAME_RIGHT_X = 0.95
FRAME_TOP_Y = 0.15
FRAME_BOTTOM_Y = 0.85
FRAME_ROW_STEP = 10

# Corner dot zones
CORNER_SIZE = 20
CORNER_LEFT_X = 0.05
CORNER_RIGHT_X = 0.95
CORNER_WHITE_RATIO = 0.30

HSV = Tuple[float, float, float]


def _is_white(h: float, s: float, v: float) -> bool:
    return s < 0.20 and v > 0.60


# Evaluated top to bottom, first match wins. Achromatic checks come first so
# dark saturated pixels are never given a hue-based color.
FRAME_COLOR_RULES: List[Tuple[Callable[[float, float, float], bool], FrameColor]] = [
    (lambda h, s, v: v < 0.25, FrameColor.BLACK),
    (_is_white, FrameColor.WHITE),
    (lambda h, s, v: 200.0 <= h <= 260.0 and s > 0.25, FrameColor.BLUE),
    (lambda h, s, v: (0.0 <= h <= 20.0 or 345.0 <= h <= 360.0) and s > 0.25, FrameColor.RED),
    (lambda h, s, v: 90.0 <= h <= 150.0 and s > 0.25, FrameColor.GREEN),
    (lambda h, s, v: 35.0 <= h <= 65.0 and s > 0.35 and v > 0.40, FrameColor.GOLD),
    # Brown artifact frames count as colorless
    (lambda h, s, v: 15.0 <= h <= 45.0 and 0.15 < s < 0.50 and 0.25 < v < 0.65, FrameColor.BLACK),
    (lambda h, s, v: 20.0 <= h <= 50.0 and v > 0.50, FrameColor.LAND),
]


def rgb_to_hsv(r: int, g: int, b: int) -> HSV:
    """
    Convert an RGB triple in [0, 255] to HSV.

    Returns:
        (hue in [0, 360), saturation in [0, 1], value in [0, 1])
    """
    h, s, v = colorsys.rgb_to_hsv(r / 255.0, g / 255.0, b / 255.0)
    return (h * 360.0) % 360.0, s, v


def _rgb_array(image: Image.Image) -> np.ndarray:
    if image.mode != 'RGB':
        image = image.convert('RGB')
    return np.asarray(image)


def _zone_average(zones: Sequence[np.ndarray]) -> Optional[Tuple[int, int, int]]:
    """Integer mean RGB over every pixel of every zone, None when nothing was sampled"""
    flattened = [zone.reshape(-1, 3) for zone in zones]
    count = sum(len(zone) for zone in flattened)
    if count == 0:
        return None

    totals = np.zeros(3, dtype=np.int64)
    for zone in flattened:
        totals += zone.sum(axis=0, dtype=np.int64)
    r, g, b = (int(total) // count for total in totals)
    return r, g, b


def _white_ratio(zone: np.ndarray) -> float:
    pixels = zone.reshape(-1, 3).astype(np.float64) / 255.0
    if len(pixels) == 0:
        return 0.0

    value = pixels.max(axis=1)
    chroma = value - pixels.min(axis=1)
    saturation = np.divide(chroma, value, out=np.zeros_like(value), where=value > 0)
    white = (saturation < 0.2) & (value > 0.8)
    return float(white.mean())


def detect_border_type(image: Image.Image) -> BorderType:
    """
    Classify the card border from four strips just inside the image margin.

    Black borders dominate real collections, so anything that is not clearly
    bright and unsaturated is reported as Black.
    """
    pixels = _rgb_array(image)
    height, width = pixels.shape[:2]

    margin_x = int(width * BORDER_MARGIN)
    margin_y = int(height * BORDER_MARGIN)
    strip = int(width * BORDER_STRIP)

    zones = [
        pixels[margin_y:margin_y + strip, margin_x:width - margin_x],  # top
        pixels[max(height - margin_y - strip, 0):height - margin_y, margin_x:width - margin_x],  # bottom
        pixels[margin_y:height - margin_y, margin_x:margin_x + strip],  # left
        pixels[margin_y:height - margin_y, max(width - margin_x - strip, 0):width - margin_x],  # right
    ]

    average = _zone_average(zones)
    if average is None:
        logger.debug(f"Border: no pixels sampled | size={width}x{height}")
        return BorderType.UNKNOWN

    _, s, v = rgb_to_hsv(*average)
    border = BorderType.WHITE if _is_white(0.0, s, v) else BorderType.BLACK
    logger.debug(f"Border: avg_rgb={average} | s={s:.2f} | v={v:.2f} | result={border.value}")
    return border


def classify_frame_hsv(h: float, s: float, v: float) -> FrameColor:
    """Apply the ordered frame color rules to one averaged HSV value"""
    for predicate, color in FRAME_COLOR_RULES:
        if predicate(h, s, v):
            return color
    return FrameColor.UNKNOWN


def detect_frame_color(image: Image.Image) -> FrameColor:
    """Classify the frame color from two vertical columns near the card edges"""
    pixels = _rgb_array(image)
    height, width = pixels.shape[:2]

    start_y = int(height * FRAME_TOP_Y)
    end_y = int(height * FRAME_BOTTOM_Y)
    columns = (int(width * FRAME_LEFT_X), int(width * FRAME_RIGHT_X))

    zones = [pixels[start_y:end_y:FRAME_ROW_STEP, x] for x in columns if x < width]

    average = _zone_average(zones)
    if average is None:
        logger.debug(f"Frame: no pixels sampled | size={width}x{height}")
        return FrameColor.UNKNOWN

    h, s, v = rgb_to_hsv(*average)
    color = classify_frame_hsv(h, s, v)
    logger.debug(f"Frame: avg_rgb={average} | h={h:.1f} | s={s:.2f} | v={v:.2f} | result={color.value}")
    return color


def detect_corner_dots(image: Image.Image) -> bool:
    """
    Look for the white dots printed in both bottom corners of some cards.
    Both corners must be mostly white so glare in a single corner is ignored.
    """
    pixels = _rgb_array(image)
    height, width = pixels.shape[:2]

    bottom_y = max(height - CORNER_SIZE, 0)
    half = CORNER_SIZE // 2

    ratios = []
    for center_x in (int(width * CORNER_LEFT_X), int(width * CORNER_RIGHT_X)):
        zone = pixels[bottom_y:height, max(center_x - half, 0):center_x + half]
        ratios.append(_white_ratio(zone))

    logger.debug(f"Corner dots: white ratios left={ratios[0]:.2f} right={ratios[1]:.2f}")
    return all(ratio > CORNER_WHITE_RATIO for ratio in ratios)


def detect_frame_style(image: Image.Image) -> FrameStyle:
    """Frame style needs texture analysis that is not available yet"""
    return FrameStyle.UNKNOWN
