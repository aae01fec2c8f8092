"""
Card Lens - Database Models
Local card store: the user's owned cards and their image fingerprints
"""
import uuid
from datetime import datetime
from typing import Callable, List, NamedTuple, Optional

from sqlalchemy import create_engine, Column, Integer, String, DateTime, Boolean
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, Session

import config
from exceptions import LocalStoreError
from logger import get_logger
from perceptual_hash import fingerprint_to_hex

# Initialize logger for this module
logger = get_logger('database')

Base = declarative_base()


class Card(Base):
    """A card in the user's collection"""
    __tablename__ = 'cards'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    scryfall_id = Column(String(100), nullable=False, index=True)
    name = Column(String(200), nullable=False, index=True)
    set_code = Column(String(50), nullable=False, index=True)
    collector_number = Column(String(20), nullable=False)
    image_uri = Column(String(500))
    # dHash as 16 hex digits; text avoids signed 64-bit integer storage
    fingerprint = Column(String(16))
    condition = Column(String(20), default='NM')  # NM, LP, MP, HP, DMG
    quantity = Column(Integer, default=1)
    is_foil = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'scryfall_id': self.scryfall_id,
            'name': self.name,
            'set_code': self.set_code,
            'collector_number': self.collector_number,
            'image_uri': self.image_uri,
            'fingerprint': self.fingerprint,
            'condition': self.condition,
            'quantity': self.quantity,
            'is_foil': self.is_foil,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class FingerprintEntry(NamedTuple):
    """One stored fingerprint, as read for local matching"""
    identifier: str
    name: str
    set_code: str
    collector_number: str
    image_uri: Optional[str]
    fingerprint_hex: str


# Database initialization
engine = create_engine(config.SQLALCHEMY_DATABASE_URI)
SessionLocal = sessionmaker(bind=engine)


def init_db():
    """Initialize database tables"""
    logger.info("Initializing database...")
    try:
        Base.metadata.create_all(engine)
        logger.info(f"Database initialized successfully at {config.SQLALCHEMY_DATABASE_URI}")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}", exc_info=True)
        raise


def get_db():
    """Get database session"""
    logger.debug("Creating new database session")
    return SessionLocal()


class LocalCardStore:
    """Read and fingerprint-maintenance access to the owned card table"""

    def __init__(self, session_factory: Callable[[], Session] = None):
        self.session_factory = session_factory or SessionLocal

    def list_fingerprints(self) -> List[FingerprintEntry]:
        """All owned cards that carry a stored fingerprint, in a single read"""
        session = self.session_factory()
        try:
            rows = (
                session.query(Card.id, Card.name, Card.set_code, Card.collector_number,
                              Card.image_uri, Card.fingerprint)
                .filter(Card.fingerprint.isnot(None))
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to read fingerprints: {e}", exc_info=True)
            raise LocalStoreError(f"Failed to read fingerprints: {e}") from e
        finally:
            session.close()

        logger.debug(f"Loaded {len(rows)} stored fingerprints")
        return [FingerprintEntry(*row) for row in rows]

    def add_card(self, scryfall_id: str, name: str, set_code: str, collector_number: str,
                 image_uri: str = None, fingerprint: int = None, **details) -> Card:
        """Add an owned card, optionally with the fingerprint captured for it"""
        card = Card(
            scryfall_id=scryfall_id,
            name=name,
            set_code=set_code,
            collector_number=collector_number,
            image_uri=image_uri,
            fingerprint=fingerprint_to_hex(fingerprint) if fingerprint is not None else None,
            **details
        )
        session = self.session_factory()
        try:
            session.add(card)
            session.commit()
            session.refresh(card)
            session.expunge(card)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to add card {name}: {e}", exc_info=True)
            raise LocalStoreError(f"Failed to add card: {e}") from e
        finally:
            session.close()

        logger.info(f"Card added | name={name} | id={card.id} | fingerprint={card.fingerprint}")
        return card

    def set_fingerprint(self, card_id: str, fingerprint: int, image_uri: str = None) -> bool:
        """
        Store a (re)captured fingerprint, and the image it was taken from when given.
        Returns False when the card does not exist.
        """
        session = self.session_factory()
        try:
            card = session.get(Card, card_id)
            if card is None:
                return False
            card.fingerprint = fingerprint_to_hex(fingerprint)
            if image_uri:
                card.image_uri = image_uri
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to store fingerprint for card {card_id}: {e}", exc_info=True)
            raise LocalStoreError(f"Failed to store fingerprint: {e}") from e
        finally:
            session.close()

        logger.info(f"Fingerprint stored | card_id={card_id} | fingerprint={fingerprint:016x}")
        return True

    def cards_missing_fingerprint(self) -> List[Card]:
        """Owned cards with no fingerprint yet"""
        session = self.session_factory()
        try:
            cards = (
                session.query(Card)
                .filter(Card.fingerprint.is_(None))
                .all()
            )
            session.expunge_all()
            return cards
        except SQLAlchemyError as e:
            logger.error(f"Failed to list cards without fingerprint: {e}", exc_info=True)
            raise LocalStoreError(f"Failed to list cards: {e}") from e
        finally:
            session.close()


if __name__ == '__main__':
    init_db()
