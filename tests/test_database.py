"""
Card Lens - Database Tests
Tests for the Card model and the local card store
"""
import pytest


class TestCardModel:
    """Tests for the Card model"""

    def test_create_card(self, db_session, sample_card_data):
        from database import Card

        card = Card(**sample_card_data)
        db_session.add(card)
        db_session.commit()

        assert card.id is not None
        assert len(card.id) == 36
        assert card.fingerprint is None
        assert card.quantity == 1

    def test_card_to_dict(self, db_session, sample_card_data):
        from database import Card

        card = Card(fingerprint='00000000000000ff', **sample_card_data)
        db_session.add(card)
        db_session.commit()

        card_dict = card.to_dict()

        assert card_dict['name'] == 'Lightning Bolt'
        assert card_dict['set_code'] == 'm11'
        assert card_dict['fingerprint'] == '00000000000000ff'
        assert card_dict['created_at'] is not None


class TestLocalCardStore:
    """Tests for fingerprint storage and retrieval"""

    def test_add_card_stores_hex_fingerprint(self, card_store, sample_card_data):
        card = card_store.add_card(fingerprint=0xABC, **sample_card_data)

        assert card.fingerprint == '0000000000000abc'

    def test_full_64_bit_round_trip(self, card_store, sample_card_data):
        from perceptual_hash import fingerprint_from_hex

        card_store.add_card(fingerprint=0xFFFFFFFFFFFFFFFF, **sample_card_data)
        [entry] = card_store.list_fingerprints()

        assert entry.fingerprint_hex == 'ffffffffffffffff'
        assert fingerprint_from_hex(entry.fingerprint_hex) == 0xFFFFFFFFFFFFFFFF

    def test_list_fingerprints_skips_cards_without_one(self, card_store, sample_card_data):
        with_fp = card_store.add_card(fingerprint=1, **sample_card_data)
        card_store.add_card(**sample_card_data)

        entries = card_store.list_fingerprints()

        assert [e.identifier for e in entries] == [with_fp.id]
        assert entries[0].name == 'Lightning Bolt'
        assert entries[0].collector_number == '149'
        assert entries[0].image_uri == sample_card_data['image_uri']

    def test_set_fingerprint(self, card_store, sample_card_data):
        card = card_store.add_card(**sample_card_data)

        assert card_store.set_fingerprint(card.id, 42) is True
        assert card_store.list_fingerprints()[0].fingerprint_hex == '000000000000002a'

    def test_set_fingerprint_unknown_card(self, card_store):
        assert card_store.set_fingerprint('no-such-card', 42) is False

    def test_cards_missing_fingerprint(self, card_store, sample_card_data):
        card_store.add_card(fingerprint=7, **sample_card_data)
        missing = card_store.add_card(**sample_card_data)
        no_image = card_store.add_card(**{**sample_card_data, 'image_uri': None})

        cards = card_store.cards_missing_fingerprint()

        by_id = {c.id: c for c in cards}
        assert set(by_id) == {missing.id, no_image.id}
        assert by_id[missing.id].image_uri == sample_card_data['image_uri']
        assert by_id[no_image.id].image_uri is None

    def test_set_fingerprint_records_image_uri(self, card_store, sample_card_data):
        card = card_store.add_card(**{**sample_card_data, 'image_uri': None})

        assert card_store.set_fingerprint(card.id, 42, image_uri='https://img/resolved.jpg') is True

        [entry] = card_store.list_fingerprints()
        assert entry.image_uri == 'https://img/resolved.jpg'

    def test_read_failure_raises_store_error(self, test_engine, session_factory):
        from database import Base, LocalCardStore
        from exceptions import LocalStoreError

        Base.metadata.drop_all(test_engine)

        with pytest.raises(LocalStoreError):
            LocalCardStore(session_factory).list_fingerprints()
