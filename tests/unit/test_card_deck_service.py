"""
Card Deck Service Tests

Tests per-room card drawing: no repeats within a cycle, category filtering
and the start of a new cycle once the deck is exhausted.
"""

import random

import pytest
from unittest.mock import Mock

from mimclash.core.errors import ErrorCode, StateConflictError
from mimclash.core.models import GameSettings, PromptCard, Room
from mimclash.services.card_deck_service import CardDeckService


def make_cards(category_key, count):
    return [PromptCard(f'{category_key}_{i}', f'{category_key} card {i}', category_key.title(), category_key)
            for i in range(count)]


class FakeCatalog:
    """Catalog with a fixed card list per category."""

    def __init__(self, cards_by_category):
        self.cards_by_category = cards_by_category

    def get_cards(self, enabled_categories=None):
        enabled = enabled_categories if enabled_categories is not None else list(self.cards_by_category)
        cards = []
        for key, cards_in_category in self.cards_by_category.items():
            if key in enabled:
                cards.extend(cards_in_category)
        return cards


class TestCardDeckService:
    """Test drawing cards for rooms"""

    def setup_method(self):
        self.catalog = FakeCatalog({
            'work': make_cards('work', 4),
            'traffic': make_cards('traffic', 3),
        })
        self.service = CardDeckService(self.catalog, rng=random.Random(42))
        self.room = Room(code='ABC123', settings=GameSettings(enabled_categories=['work', 'traffic']))

    def test_draw_moves_card_to_used(self):
        """A drawn card leaves the deck and is recorded as used"""
        card = self.service.draw_card(self.room)

        assert card in self.room.used_cards
        assert card not in self.room.available_cards
        assert len(self.room.available_cards) == 6

    def test_no_repeat_within_cycle(self):
        """Every enabled card is drawn exactly once per cycle"""
        drawn = [self.service.draw_card(self.room) for _ in range(7)]

        assert len({card.id for card in drawn}) == 7

    def test_new_cycle_after_exhaustion(self):
        """After all cards are used a new cycle starts with used cards cleared"""
        for _ in range(7):
            self.service.draw_card(self.room)

        card = self.service.draw_card(self.room)

        assert self.room.used_cards == [card]
        assert len(self.room.available_cards) == 6

    def test_only_enabled_categories_are_drawn(self):
        """Disabled categories never contribute cards"""
        self.room.settings.enabled_categories = ['traffic']

        drawn = [self.service.draw_card(self.room) for _ in range(9)]

        assert all(card.category_key == 'traffic' for card in drawn)

    def test_disabling_category_filters_existing_deck(self):
        """Cards of a category disabled after the deck was built are dropped"""
        self.service.draw_card(self.room)
        self.room.settings.enabled_categories = ['work']

        drawn = [self.service.draw_card(self.room) for _ in range(3)]

        assert all(card.category_key == 'work' for card in drawn)

    def test_no_cards_available_raises(self):
        """An empty pool raises NO_CARDS_AVAILABLE"""
        self.room.settings.enabled_categories = ['relationship']

        with pytest.raises(StateConflictError) as exc_info:
            self.service.draw_card(self.room)
        assert exc_info.value.code == ErrorCode.NO_CARDS_AVAILABLE

    def test_select_cards_excludes_used(self):
        """select_cards leaves out cards already used"""
        used = make_cards('work', 2)

        deck = self.service.select_cards(self.room.settings, used)

        assert len(deck) == 5
        assert not {c.id for c in deck} & {c.id for c in used}

    def test_select_cards_falls_back_to_full_pool(self):
        """When too few unused cards remain the whole pool is returned"""
        used = self.catalog.get_cards()

        deck = self.service.select_cards(self.room.settings, used)

        assert len(deck) == 7

    def test_deck_uses_injected_catalog(self):
        """The service asks the catalog for the room's enabled categories"""
        catalog = Mock()
        catalog.get_cards.return_value = make_cards('work', 1)
        service = CardDeckService(catalog)

        service.draw_card(self.room)

        catalog.get_cards.assert_called_once_with(['work', 'traffic'])
