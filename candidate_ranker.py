"""
Card Lens - Remote Candidate Ranker
Re-ranks catalog search results by how closely each card's thumbnail
matches the photo's fingerprint.
"""
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import config
from exceptions import DecodeError, ThumbnailDecodeError, ThumbnailFetchError
from feature_extractor import decode_image
from logger import get_logger, PerformanceLogger
from perceptual_hash import calculate_phash, hamming_distance

logger = get_logger('ranking')

# url -> image bytes, raising ThumbnailFetchError on failure
ThumbnailFetcher = Callable[[str], bytes]


@dataclass
class Candidate:
    """A catalog card plus its visual distance to the photo (None = unscored)"""
    card: Dict
    similarity: Optional[int] = None

    def to_dict(self) -> Dict:
        return {**self.card, 'similarity': self.similarity}


def thumbnail_url(card: Dict) -> Optional[str]:
    """Pick the image used for scoring, preferring the small thumbnail"""
    image_uris = card.get('image_uris') or {}
    if not image_uris and card.get('card_faces'):
        image_uris = card['card_faces'][0].get('image_uris') or {}
    return image_uris.get(config.THUMBNAIL_IMAGE_SIZE) or image_uris.get('normal') or card.get('image_url')


def score_candidate(candidate: Candidate, fingerprint: int, fetch_thumbnail: ThumbnailFetcher) -> Optional[int]:
    """Distance between the photo and one candidate's thumbnail, None when it cannot be scored"""
    name = candidate.card.get('name')
    url = thumbnail_url(candidate.card)
    if not url:
        logger.debug(f"No thumbnail, leaving unscored | card={name}")
        return None

    try:
        image_bytes = fetch_thumbnail(url)
        try:
            image = decode_image(image_bytes)
        except DecodeError as e:
            raise ThumbnailDecodeError(str(e)) from e
        return hamming_distance(fingerprint, calculate_phash(image))
    except (ThumbnailFetchError, ThumbnailDecodeError) as e:
        logger.warning(f"Thumbnail unusable, leaving unscored | card={name} | url={url} | error={e}")
        return None
    except Exception as e:
        # One bad candidate never fails the whole ranking
        logger.error(f"Unexpected error scoring thumbnail, leaving unscored | card={name} | url={url} | error={e}",
                     exc_info=True)
        return None


def score_candidates(candidates: List[Candidate], fingerprint: int, fetch_thumbnail: ThumbnailFetcher,
                     max_workers: int = 1) -> List[Candidate]:
    """
    Set the similarity of every candidate in place.

    With max_workers == 1 thumbnails are downloaded one after the other.
    Larger values use a bounded thread pool; scores are assigned by position,
    so completion order never affects the result.
    """
    max_workers = max(1, min(max_workers, config.MAX_SCORE_CONCURRENCY))

    def score(candidate: Candidate) -> Optional[int]:
        return score_candidate(candidate, fingerprint, fetch_thumbnail)

    if max_workers == 1 or len(candidates) <= 1:
        scores = [score(candidate) for candidate in candidates]
    else:
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='thumbnail') as executor:
            scores = list(executor.map(score, candidates))

    for candidate, similarity in zip(candidates, scores):
        candidate.similarity = similarity
    return candidates


def sort_by_similarity(candidates: List[Candidate]) -> List[Candidate]:
    """Ascending distance, unscored last; ties keep catalog order"""
    return sorted(candidates, key=lambda c: (c.similarity is None, c.similarity or 0))


def rank_candidates(cards: List[Dict], fingerprint: int, fetch_thumbnail: ThumbnailFetcher,
                    window: int = None, max_workers: int = 1) -> List[Candidate]:
    """
    Visually re-rank a page of catalog results.

    Only the first `window` cards are scored since thumbnail downloads are
    the expensive step; the rest are appended unscored.
    """
    if window is None:
        window = config.RANKING_WINDOW

    scored = [Candidate(card=card) for card in cards[:window]]
    remainder = [Candidate(card=card) for card in cards[window:]]

    with PerformanceLogger(f"score_candidates count={len(scored)} workers={max_workers}", logger):
        score_candidates(scored, fingerprint, fetch_thumbnail, max_workers=max_workers)

    ranked = sort_by_similarity(scored + remainder)
    scored_count = sum(1 for c in ranked if c.similarity is not None)
    logger.info(f"Ranked {len(ranked)} candidates | scored={scored_count} | "
                f"best={ranked[0].card.get('name') if ranked else None}")
    return ranked
