"""
Card Lens - Card Recognition Tests
Tests for the end-to-end recognition flow with a mocked catalog
"""
from unittest.mock import MagicMock

import pytest

from conftest import fingerprint_image, image_bytes

PHOTO_FINGERPRINT = 0x00FF00FF00FF00FF


def bits(count):
    return (1 << count) - 1


@pytest.fixture
def photo_bytes():
    return image_bytes(fingerprint_image(PHOTO_FINGERPRINT))


@pytest.fixture
def catalog():
    """Scryfall client double serving two thumbnails"""
    from api_integrations import CardSearchPage, ScryfallAPI
    from exceptions import ThumbnailFetchError

    thumbnails = {
        'https://img/far.jpg': image_bytes(fingerprint_image(PHOTO_FINGERPRINT ^ bits(9))),
        'https://img/near.jpg': image_bytes(fingerprint_image(PHOTO_FINGERPRINT ^ bits(1))),
    }

    def fetch_thumbnail(url, timeout=None):
        if url not in thumbnails:
            raise ThumbnailFetchError(f"404 for {url}")
        return thumbnails[url]

    api = MagicMock(spec=ScryfallAPI)
    api.search_cards.return_value = CardSearchPage(
        data=[
            {'id': 'far', 'name': 'Far', 'image_uris': {'small': 'https://img/far.jpg'}},
            {'id': 'broken', 'name': 'Broken', 'image_uris': {'small': 'https://img/broken.jpg'}},
            {'id': 'near', 'name': 'Near', 'image_uris': {'small': 'https://img/near.jpg'}},
        ],
        has_more=False,
        total_count=3,
    )
    api.fetch_thumbnail.side_effect = fetch_thumbnail
    return api


class TestRecognize:
    """Tests for CardRecognitionEngine.recognize"""

    def test_decode_error_stops_everything(self, catalog, card_store):
        from card_recognition import CardRecognitionEngine
        from exceptions import DecodeError

        engine = CardRecognitionEngine(catalog=catalog, store=card_store)

        with pytest.raises(DecodeError):
            engine.recognize(b'this is not a picture')

        catalog.search_cards.assert_not_called()
        catalog.fetch_thumbnail.assert_not_called()

    def test_local_high_confidence_match_skips_remote(self, catalog, card_store, sample_card_data, photo_bytes):
        from card_recognition import CardRecognitionEngine

        owned = card_store.add_card(fingerprint=PHOTO_FINGERPRINT ^ bits(2), **sample_card_data)
        engine = CardRecognitionEngine(catalog=catalog, store=card_store)

        result = engine.recognize(photo_bytes)

        assert result.source == 'local'
        assert result.search_query == ''
        assert len(result.candidates) == 1
        assert result.candidates[0].card['id'] == owned.id
        assert result.candidates[0].card['name'] == 'Lightning Bolt'
        assert result.candidates[0].similarity == 2
        catalog.search_cards.assert_not_called()

    def test_remote_search_and_ranking(self, catalog, card_store, sample_card_data, photo_bytes):
        from card_recognition import CardRecognitionEngine
        from query_builder import build_search_query

        # Close, but outside the high-confidence window
        card_store.add_card(fingerprint=PHOTO_FINGERPRINT ^ bits(8), **sample_card_data)
        engine = CardRecognitionEngine(catalog=catalog, store=card_store)

        result = engine.recognize(photo_bytes)

        assert result.source == 'remote'
        assert result.search_query == build_search_query(result.features)
        catalog.search_cards.assert_called_once_with(result.search_query, page=1)
        assert [(c.card['name'], c.similarity) for c in result.candidates] == \
               [('Near', 1), ('Far', 9), ('Broken', None)]
        assert result.detected_name == ''
        assert result.features.phash == PHOTO_FINGERPRINT

    def test_thumbnail_requests_carry_timeout(self, catalog, card_store, photo_bytes):
        import config
        from card_recognition import CardRecognitionEngine

        CardRecognitionEngine(catalog=catalog, store=card_store).recognize(photo_bytes)

        for call in catalog.fetch_thumbnail.call_args_list:
            assert call.kwargs['timeout'] == config.THUMBNAIL_TIMEOUT

    def test_catalog_failure_propagates(self, catalog, card_store, photo_bytes):
        from card_recognition import CardRecognitionEngine
        from exceptions import CatalogQueryError

        catalog.search_cards.side_effect = CatalogQueryError('Scryfall search failed: connection refused')
        engine = CardRecognitionEngine(catalog=catalog, store=card_store)

        with pytest.raises(CatalogQueryError, match='connection refused'):
            engine.recognize(photo_bytes)

    def test_unreadable_store_falls_back_to_remote(self, catalog, photo_bytes):
        from card_recognition import CardRecognitionEngine
        from database import LocalCardStore
        from exceptions import LocalStoreError

        store = MagicMock(spec=LocalCardStore)
        store.list_fingerprints.side_effect = LocalStoreError('database is locked')
        engine = CardRecognitionEngine(catalog=catalog, store=store)

        result = engine.recognize(photo_bytes)

        assert result.source == 'remote'
        assert result.candidates[0].card['name'] == 'Near'

    def test_parallel_scoring_gives_same_result(self, catalog, card_store, photo_bytes):
        from card_recognition import CardRecognitionEngine

        sequential = CardRecognitionEngine(catalog=catalog, store=card_store, score_concurrency=1).recognize(photo_bytes)
        parallel = CardRecognitionEngine(catalog=catalog, store=card_store, score_concurrency=4).recognize(photo_bytes)

        assert [c.to_dict() for c in parallel.candidates] == [c.to_dict() for c in sequential.candidates]

    def test_result_to_dict(self, catalog, card_store, photo_bytes):
        from card_recognition import CardRecognitionEngine

        data = CardRecognitionEngine(catalog=catalog, store=card_store).recognize(photo_bytes).to_dict()

        assert set(data) == {'features', 'detected_name', 'feature_description', 'search_query', 'candidates', 'source'}
        assert data['features']['phash'] == format(PHOTO_FINGERPRINT, '016x')
        assert data['candidates'][0]['similarity'] == 1
        assert data['candidates'][-1]['similarity'] is None
