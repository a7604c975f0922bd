"""
Card Deck Service - per-room situation card decks.

Draws cards from the room's enabled categories without repeating a card until
every enabled card has been used once (a cycle), then starts a new cycle.
"""

import logging
import random
from typing import List, Optional

from mimclash.core.errors import ErrorCode, StateConflictError
from mimclash.core.models import GameSettings, PromptCard, Room

logger = logging.getLogger(__name__)

CARDS_NEEDED = 1


class CardDeckService:
    """Selects and draws situation cards for rooms."""

    def __init__(self, card_catalog, rng: Optional[random.Random] = None):
        self.card_catalog = card_catalog
        self._rng = rng or random.Random()

    def select_cards(self, settings: GameSettings, used_cards: List[PromptCard],
                     cards_needed: int = CARDS_NEEDED) -> List[PromptCard]:
        """
        Build a shuffled deck from the enabled categories, excluding used cards.

        If fewer than `cards_needed` unused cards remain, the whole enabled
        catalog is returned instead.
        """
        pool = self.card_catalog.get_cards(settings.enabled_categories)
        used_texts = {card.text for card in used_cards}
        candidates = [card for card in pool if card.text not in used_texts]

        if len(candidates) < cards_needed:
            candidates = list(pool)

        self._rng.shuffle(candidates)
        return candidates

    def draw_card(self, room: Room) -> PromptCard:
        """
        Draw the next card for a room, moving it from available to used.

        Raises:
            StateConflictError: If no enabled category has any card
        """
        enabled = set(room.settings.enabled_categories)
        room.available_cards = [card for card in room.available_cards if card.category_key in enabled]

        if not room.available_cards:
            deck = self.select_cards(room.settings, room.used_cards)
            if not deck:
                raise StateConflictError(
                    ErrorCode.NO_CARDS_AVAILABLE,
                    'No situation cards are available for the enabled categories'
                )
            used_texts = {card.text for card in room.used_cards}
            if any(card.text in used_texts for card in deck):
                logger.info(f"Deck exhausted in room {room.code}, starting a new cycle")
                room.used_cards = []
            room.available_cards = deck

        card = room.available_cards.pop(self._rng.randrange(len(room.available_cards)))
        room.used_cards.append(card)
        logger.debug(f"Drew card {card.id} for room {room.code} "
                     f"({len(room.available_cards)} left in deck)")
        return card
