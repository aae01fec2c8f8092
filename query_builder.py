"""
Card Lens - Query Builder
Builds Scryfall search queries and readable summaries from card features
"""
from typing import Optional

import config
from card_features import BorderType, CardFeatures, FrameColor, FrameStyle

COLOR_FILTERS = {
    FrameColor.BLUE: 'color:u',
    FrameColor.RED: 'color:r',
    FrameColor.GREEN: 'color:g',
    FrameColor.WHITE: 'color:w',
    FrameColor.BLACK: 'color:b',
    FrameColor.GOLD: 'color:multicolor',
    FrameColor.LAND: 'type:land',
    FrameColor.UNKNOWN: None,
}

BORDER_FILTERS = {
    BorderType.BLACK: 'border:black',
    BorderType.WHITE: 'border:white',
    BorderType.SILVER: 'border:silver',
    BorderType.UNKNOWN: None,
}

FRAME_STYLE_FILTERS = {
    FrameStyle.OLD_FRAME: 'frame:old',
    FrameStyle.MODERN_FRAME: 'frame:modern',
    FrameStyle.M15_FRAME: 'frame:2015',
    FrameStyle.UNKNOWN: None,
}

BORDER_DESCRIPTIONS = {
    BorderType.BLACK: 'Black border',
    BorderType.WHITE: 'White border',
    BorderType.SILVER: 'Silver border',
    BorderType.UNKNOWN: 'Unknown border',
}

FRAME_COLOR_DESCRIPTIONS = {
    FrameColor.BLUE: 'Blue frame',
    FrameColor.RED: 'Red frame',
    FrameColor.GREEN: 'Green frame',
    FrameColor.WHITE: 'White frame',
    FrameColor.BLACK: 'Black frame',
    FrameColor.GOLD: 'Multicolor frame',
    FrameColor.LAND: 'Land frame',
    FrameColor.UNKNOWN: 'Unknown frame color',
}

FRAME_STYLE_DESCRIPTIONS = {
    FrameStyle.OLD_FRAME: 'Old frame style',
    FrameStyle.MODERN_FRAME: 'Modern frame style',
    FrameStyle.M15_FRAME: 'M15 frame style',
    FrameStyle.UNKNOWN: None,
}


def build_search_query(features: CardFeatures, recognized_text: Optional[str] = None) -> str:
    """
    Build a Scryfall query from detected features.

    Never returns an empty string: with nothing to filter on, the wildcard
    query is returned instead.
    """
    parts = []

    if recognized_text and recognized_text.strip():
        parts.append(recognized_text.strip())

    for token in (COLOR_FILTERS[features.frame_color],
                  BORDER_FILTERS[features.border_type],
                  FRAME_STYLE_FILTERS[features.frame_style]):
        if token:
            parts.append(token)

    if not parts:
        return config.WILDCARD_QUERY
    return ' '.join(parts)


def describe_features(features: CardFeatures) -> str:
    """Human readable summary of the detected features, for display only"""
    parts = [
        BORDER_DESCRIPTIONS[features.border_type],
        FRAME_COLOR_DESCRIPTIONS[features.frame_color],
    ]

    style = FRAME_STYLE_DESCRIPTIONS[features.frame_style]
    if style:
        parts.append(style)
    if features.has_corner_dots:
        parts.append('Has corner dots')
    if features.is_foil:
        parts.append('Foil')

    return ', '.join(parts)
