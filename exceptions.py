"""
Card Lens - Exceptions
Errors raised by the recognition pipeline and its collaborators
"""


class CardLensError(Exception):
    """Base class for all Card Lens errors"""


class DecodeError(CardLensError):
    """Image bytes could not be decoded. Fatal to a recognition request."""


class CatalogQueryError(CardLensError):
    """Network or parse failure while talking to the card catalog"""


class ThumbnailFetchError(CardLensError):
    """A candidate thumbnail could not be downloaded (the candidate stays unscored)"""


class ThumbnailDecodeError(CardLensError):
    """A downloaded thumbnail could not be decoded (the candidate stays unscored)"""


class LocalStoreError(CardLensError):
    """The local card store could not be read or written"""
