"""
Card Lens - Card Recognition Engine
Identifies a card photo by matching its fingerprint against the local
collection first, then by searching Scryfall with the detected features and
re-ranking the results visually.
"""
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Dict, List

import config
from api_integrations import ScryfallAPI
from candidate_ranker import Candidate, rank_candidates
from card_features import CardFeatures
from database import LocalCardStore
from exceptions import LocalStoreError
from feature_extractor import ImageData, extract_card_features
from local_matcher import find_local_match
from logger import get_logger, PerformanceLogger
from query_builder import build_search_query, describe_features

# Initialize logger for this module
logger = get_logger('recognition')


class RecognitionStage(Enum):
    EXTRACTING = 'extracting'
    LOCAL_LOOKUP = 'local_lookup'
    REMOTE_SEARCH = 'remote_search'
    RANKING = 'ranking'
    DONE = 'done'


@dataclass
class RecognitionResult:
    features: CardFeatures
    feature_description: str
    search_query: str
    candidates: List[Candidate] = field(default_factory=list)
    detected_name: str = ''  # filled in once text recognition exists
    source: str = 'remote'  # 'local' or 'remote'

    def to_dict(self) -> Dict:
        return {
            'features': self.features.to_dict(),
            'detected_name': self.detected_name,
            'feature_description': self.feature_description,
            'search_query': self.search_query,
            'candidates': [candidate.to_dict() for candidate in self.candidates],
            'source': self.source,
        }


class CardRecognitionEngine:
    """Main card recognition engine using fingerprints and Scryfall search"""

    def __init__(self, catalog: ScryfallAPI = None, store: LocalCardStore = None,
                 ranking_window: int = None, score_concurrency: int = None):
        self.catalog = catalog or ScryfallAPI()
        self.store = store or LocalCardStore()
        self.ranking_window = ranking_window if ranking_window is not None else config.RANKING_WINDOW
        self.score_concurrency = score_concurrency if score_concurrency is not None else config.SCORE_CONCURRENCY
        logger.info(f"CardRecognitionEngine initialized | window={self.ranking_window} | "
                    f"concurrency={self.score_concurrency}")

    def recognize(self, image_data: ImageData) -> RecognitionResult:
        """
        Run one recognition request.

        Raises:
            DecodeError: the image could not be decoded (nothing else is attempted)
            CatalogQueryError: the local lookup missed and the Scryfall search failed
        """
        with PerformanceLogger("recognize", logger):
            self._enter(RecognitionStage.EXTRACTING)
            features = extract_card_features(image_data)
            description = describe_features(features)

            self._enter(RecognitionStage.LOCAL_LOOKUP)
            local_match = self._find_local_match(features.phash)
            if local_match:
                self._enter(RecognitionStage.DONE)
                return RecognitionResult(
                    features=features,
                    feature_description=description,
                    search_query='',
                    candidates=[local_match.to_candidate()],
                    source='local',
                )

            self._enter(RecognitionStage.REMOTE_SEARCH)
            # Text recognition is not implemented, so no recognized text is passed
            query = build_search_query(features)
            page = self.catalog.search_cards(query, page=1)

            self._enter(RecognitionStage.RANKING)
            fetch = partial(self.catalog.fetch_thumbnail, timeout=config.THUMBNAIL_TIMEOUT)
            candidates = rank_candidates(
                page.data,
                features.phash,
                fetch,
                window=self.ranking_window,
                max_workers=self.score_concurrency,
            )

            self._enter(RecognitionStage.DONE)
            return RecognitionResult(
                features=features,
                feature_description=description,
                search_query=query,
                candidates=candidates,
                source='remote',
            )

    def _find_local_match(self, fingerprint: int):
        try:
            entries = self.store.list_fingerprints()
        except LocalStoreError as e:
            logger.warning(f"Local store unavailable, continuing with remote search | error={e}")
            return None
        return find_local_match(fingerprint, entries)

    def _enter(self, stage: RecognitionStage):
        logger.debug(f"Recognition stage | {stage.value}")
