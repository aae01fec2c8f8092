"""Compute fingerprints for owned cards that were imported without one"""
import time
from typing import Optional

import config
from api_integrations import ScryfallAPI
from database import Card, init_db, LocalCardStore
from exceptions import DecodeError, ThumbnailFetchError
from feature_extractor import decode_image
from logger import get_logger
from perceptual_hash import calculate_phash

logger = get_logger('backfill')


def resolve_image_uri(card: Card, api: ScryfallAPI) -> Optional[str]:
    """Stored image of the card, looked up on Scryfall when the row has none"""
    if card.image_uri:
        return card.image_uri

    record = api.get_card(card.scryfall_id) if card.scryfall_id else None
    if record is None and card.set_code and card.collector_number:
        record = api.get_card_by_set_and_number(card.set_code, card.collector_number)
    if record is None:
        return None
    return record.get('image_url')


def backfill_fingerprints(store: LocalCardStore = None, api: ScryfallAPI = None, delay: float = 0.1) -> int:
    store = store or LocalCardStore()
    api = api or ScryfallAPI()

    cards = store.cards_missing_fingerprint()
    print(f'Found {len(cards)} cards without a fingerprint')

    updated = 0
    for card in cards:
        image_uri = resolve_image_uri(card, api)
        if not image_uri:
            logger.warning(f"Backfill skipped, no image found | card={card.name} | id={card.id}")
            print(f'  {card.name}: no image')
            continue

        try:
            image_bytes = api.fetch_thumbnail(image_uri, timeout=config.THUMBNAIL_TIMEOUT)
            fingerprint = calculate_phash(decode_image(image_bytes))
        except (ThumbnailFetchError, DecodeError) as e:
            logger.warning(f"Backfill skipped | card={card.name} | id={card.id} | error={e}")
            print(f'  {card.name}: error {e}')
            continue

        new_uri = image_uri if image_uri != card.image_uri else None
        if store.set_fingerprint(card.id, fingerprint, image_uri=new_uri):
            print(f'  {card.name}: {fingerprint:016x}')
            updated += 1
        time.sleep(delay)  # Rate limit

    print(f'\nDone! Stored {updated} fingerprints.')
    return updated


if __name__ == '__main__':
    init_db()
    backfill_fingerprints()
