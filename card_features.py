"""
Card Lens - Card Features
Categorical labels and the feature bundle produced for one recognition attempt
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict

from perceptual_hash import fingerprint_to_hex


class BorderType(Enum):
    BLACK = 'Black'
    WHITE = 'White'
    SILVER = 'Silver'
    UNKNOWN = 'Unknown'


class FrameColor(Enum):
    BLACK = 'Black'
    BLUE = 'Blue'
    RED = 'Red'
    GREEN = 'Green'
    WHITE = 'White'
    GOLD = 'Gold'
    LAND = 'Land'
    UNKNOWN = 'Unknown'


class FrameStyle(Enum):
    OLD_FRAME = 'OldFrame'
    MODERN_FRAME = 'ModernFrame'
    M15_FRAME = 'M15Frame'
    UNKNOWN = 'Unknown'


@dataclass(frozen=True)
class CardFeatures:
    """Visual features extracted from a single decoded card image"""
    border_type: BorderType
    frame_color: FrameColor
    frame_style: FrameStyle
    has_corner_dots: bool
    is_foil: bool
    phash: int  # 64-bit dHash fingerprint

    def to_dict(self) -> Dict:
        return {
            'border_type': self.border_type.value,
            'frame_color': self.frame_color.value,
            'frame_style': self.frame_style.value,
            'has_corner_dots': self.has_corner_dots,
            'is_foil': self.is_foil,
            'phash': fingerprint_to_hex(self.phash),
        }
