"""
Card Lens - Local Match Resolver
Finds a previously catalogued card whose stored fingerprint is close enough
to the photo's fingerprint to skip the remote catalog search entirely.
"""
from dataclasses import dataclass
from typing import Iterable, Optional

import config
from candidate_ranker import Candidate
from database import FingerprintEntry
from logger import get_logger, PerformanceLogger
from perceptual_hash import fingerprint_from_hex, hamming_distance

logger = get_logger('local_match')


@dataclass(frozen=True)
class LocalMatch:
    """High-confidence match against a card from the local store"""
    entry: FingerprintEntry
    distance: int

    def to_candidate(self) -> Candidate:
        """Minimal catalog record rebuilt from what the local store keeps"""
        image_uris = {'normal': self.entry.image_uri} if self.entry.image_uri else {}
        card = {
            'id': self.entry.identifier,
            'name': self.entry.name,
            'set_code': self.entry.set_code,
            'collector_number': self.entry.collector_number,
            'image_uris': image_uris,
            'image_url': self.entry.image_uri,
        }
        return Candidate(card=card, similarity=self.distance)


def find_local_match(fingerprint: int, entries: Iterable[FingerprintEntry],
                     max_distance: int = None, high_confidence_distance: int = None) -> Optional[LocalMatch]:
    """
    Compare a fingerprint against every stored fingerprint.

    Only a high-confidence match (distance <= high_confidence_distance) is
    returned. Closer-than-max_distance matches that miss that bar are
    discarded, not reported as weaker suggestions.
    """
    if max_distance is None:
        max_distance = config.LOCAL_MATCH_MAX_DISTANCE
    if high_confidence_distance is None:
        high_confidence_distance = config.LOCAL_MATCH_HIGH_CONFIDENCE_DISTANCE

    best_entry = None
    best_distance = max_distance
    compared = 0

    with PerformanceLogger("find_local_match", logger):
        for entry in entries:
            if not entry.fingerprint_hex:
                continue
            try:
                stored = fingerprint_from_hex(entry.fingerprint_hex)
            except ValueError:
                logger.warning(f"Skipping malformed fingerprint | card_id={entry.identifier} | value={entry.fingerprint_hex!r}")
                continue

            compared += 1
            distance = hamming_distance(fingerprint, stored)
            if distance < best_distance:
                best_distance = distance
                best_entry = entry

    if best_entry is None:
        logger.debug(f"No local match | compared={compared}")
        return None

    if best_distance > high_confidence_distance:
        logger.debug(f"Closest local card below confidence bar, discarded | card={best_entry.name} | distance={best_distance}")
        return None

    logger.info(f"Local match | card={best_entry.name} | id={best_entry.identifier} | distance={best_distance}")
    return LocalMatch(entry=best_entry, distance=best_distance)
