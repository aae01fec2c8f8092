"""
Card Lens - API Integrations
Scryfall card catalog client used for remote candidate search and thumbnails
"""
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import requests

import config
from exceptions import CatalogQueryError, ThumbnailFetchError
from logger import get_logger

# Initialize logger for this module
logger = get_logger('api')


class RateLimiter:
    """Simple rate limiter for API calls"""
    def __init__(self, calls_per_second: int):
        self.calls_per_second = calls_per_second
        self.last_call = 0

    def wait(self):
        """Wait if necessary to respect rate limit"""
        now = time.time()
        time_since_last = now - self.last_call
        min_interval = 1.0 / self.calls_per_second

        if time_since_last < min_interval:
            time.sleep(min_interval - time_since_last)

        self.last_call = time.time()


@dataclass
class CardSearchPage:
    """One page of catalog search results"""
    data: List[Dict] = field(default_factory=list)
    has_more: bool = False
    total_count: Optional[int] = None


class ScryfallAPI:
    """Scryfall API client for Magic: The Gathering cards"""

    def __init__(self, base_url: str = None):
        self.base_url = base_url or config.SCRYFALL_API_BASE
        self.rate_limiter = RateLimiter(config.SCRYFALL_RATE_LIMIT)
        self.headers = {
            'User-Agent': config.SCRYFALL_USER_AGENT,
            'Accept': 'application/json',
        }
        logger.debug("ScryfallAPI initialized")

    def _get(self, path: str, params: Dict = None, timeout: int = 10) -> requests.Response:
        self.rate_limiter.wait()
        return requests.get(
            f"{self.base_url}{path}",
            params=params,
            headers=self.headers,
            timeout=timeout
        )

    def get_card(self, card_id: str) -> Optional[Dict]:
        """Get a single card by its Scryfall ID"""
        logger.debug(f"Scryfall: Getting card | id={card_id}")

        try:
            response = self._get(f"/cards/{card_id}")

            if response.status_code == 200:
                return self._parse_card_data(response.json())
            logger.debug(f"Scryfall: Card not found | id={card_id} | status={response.status_code}")
            return None
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Scryfall API error: {e}", exc_info=True)
            return None

    def get_card_by_set_and_number(self, set_code: str, collector_number: str) -> Optional[Dict]:
        """Get specific card by set and collector number"""
        logger.debug(f"Scryfall: Getting card | set={set_code} | number={collector_number}")

        try:
            response = self._get(f"/cards/{set_code.lower()}/{collector_number}")

            if response.status_code == 200:
                logger.info(f"Scryfall: Card retrieved | set={set_code} | number={collector_number}")
                return self._parse_card_data(response.json())
            return None
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Scryfall API error: {e}", exc_info=True)
            return None

    def search_cards(self, query: str, page: int = 1) -> CardSearchPage:
        """
        Search cards with Scryfall query syntax, one page at a time.

        A 404 from Scryfall means "no cards matched" and yields an empty page.

        Raises:
            ValueError: for an empty query
            CatalogQueryError: on network, HTTP or parse failures
        """
        if not query or not query.strip():
            raise ValueError("Search query must not be empty")

        return self._search({'q': query, 'unique': 'prints', 'page': page}, description=f"query={query}")

    def _search(self, params: Dict, description: str) -> CardSearchPage:
        logger.debug(f"Scryfall: Searching cards | {description} | page={params['page']}")

        try:
            response = self._get('/cards/search', params=params, timeout=config.SCRYFALL_TIMEOUT)
        except requests.RequestException as e:
            logger.error(f"Scryfall search failed | {description} | error={e}")
            raise CatalogQueryError(f"Scryfall search failed: {e}") from e

        if response.status_code == 404:
            logger.info(f"Scryfall: No cards found | {description}")
            return CardSearchPage(data=[], has_more=False, total_count=0)

        if response.status_code != 200:
            logger.error(f"Scryfall search failed | {description} | status={response.status_code}")
            raise CatalogQueryError(f"Scryfall search failed with status {response.status_code}")

        try:
            data = response.json()
            page = CardSearchPage(
                data=[self._parse_card_data(card) for card in data.get('data', [])],
                has_more=bool(data.get('has_more', False)),
                total_count=data.get('total_cards'),
            )
        except (ValueError, AttributeError, TypeError) as e:
            logger.error(f"Scryfall search returned an unreadable response | {description} | error={e}")
            raise CatalogQueryError(f"Failed to parse Scryfall response: {e}") from e

        logger.info(f"Scryfall: Found {len(page.data)} cards | {description} | has_more={page.has_more}")
        return page

    def fetch_thumbnail(self, url: str, timeout: float = None) -> bytes:
        """
        Download a card image.

        Raises:
            ThumbnailFetchError: on network errors, timeouts or non-200 responses
        """
        timeout = timeout or config.THUMBNAIL_TIMEOUT

        try:
            response = requests.get(url, headers={'User-Agent': config.SCRYFALL_USER_AGENT}, timeout=timeout)
        except requests.RequestException as e:
            raise ThumbnailFetchError(f"Thumbnail download failed: {e}") from e

        if response.status_code != 200:
            raise ThumbnailFetchError(f"Thumbnail download failed with status {response.status_code}")
        return response.content

    def _parse_card_data(self, data: Dict) -> Dict:
        """Parse Scryfall card data to our format"""
        image_uris = data.get('image_uris') or {}
        # Handle double-faced cards
        if not image_uris and data.get('card_faces'):
            image_uris = data['card_faces'][0].get('image_uris') or {}

        prices = data.get('prices') or {}

        return {
            'id': data.get('id'),
            'oracle_id': data.get('oracle_id'),
            'name': data.get('name'),
            'lang': data.get('lang', 'en'),
            'set_code': data.get('set'),
            'set_name': data.get('set_name'),
            'collector_number': data.get('collector_number'),
            'released_at': data.get('released_at'),
            'rarity': data.get('rarity'),
            'artist': data.get('artist'),
            'image_uris': image_uris,
            'image_url': image_uris.get('normal'),
            'price_usd': prices.get('usd'),
            'price_usd_foil': prices.get('usd_foil'),
            'price_eur': prices.get('eur'),
            'price_eur_foil': prices.get('eur_foil'),
        }
