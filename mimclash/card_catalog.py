"""
Card Catalog for MimClash

Handles loading and validation of the YAML file containing situation card
categories and their card texts.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import yaml

from mimclash.core.models import PromptCard

logger = logging.getLogger(__name__)

DEFAULT_CARDS_FILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data', 'cards.yaml')


@dataclass
class CardCategory:
    """A named group of situation cards."""
    key: str
    name: str
    description: str
    cards: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'description': self.description,
            'cards': list(self.cards),
        }


class CardCatalogError(Exception):
    """Raised when card catalog validation fails."""
    pass


class CardCatalog:
    """Manages loading and validation of situation cards from YAML files."""

    def __init__(self, yaml_file_path: Optional[str] = None):
        """
        Args:
            yaml_file_path: Path to the card YAML file. Defaults to the catalog
                shipped with the package.
        """
        self.yaml_file_path = yaml_file_path or DEFAULT_CARDS_FILE
        self.categories: Dict[str, CardCategory] = {}
        self._loaded = False

    def load_cards_from_yaml(self) -> None:
        """
        Load card categories from the YAML file.

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            CardCatalogError: If YAML structure is invalid
            yaml.YAMLError: If YAML parsing fails
        """
        try:
            with open(self.yaml_file_path, 'r', encoding='utf-8') as file:
                data = yaml.safe_load(file)

            self.validate_yaml_structure(data)
            self.categories = self._parse_categories(data)
            self._loaded = True
            logger.info(f"Loaded {self.get_card_count()} cards in {len(self.categories)} categories "
                        f"from {self.yaml_file_path}")

        except FileNotFoundError:
            logger.error(f"Card file not found: {self.yaml_file_path}")
            raise
        except yaml.YAMLError as e:
            logger.error(f"YAML parsing error: {e}")
            raise
        except CardCatalogError as e:
            logger.error(f"Card catalog validation error: {e}")
            raise

    def validate_yaml_structure(self, data: Any) -> None:
        """
        Validate the structure of loaded YAML data.

        Raises:
            CardCatalogError: If structure is invalid
        """
        if not isinstance(data, dict):
            raise CardCatalogError("YAML root must be a dictionary")

        categories = data.get('categories')
        if not isinstance(categories, dict):
            raise CardCatalogError("YAML must contain a 'categories' mapping")

        if not categories:
            raise CardCatalogError("'categories' cannot be empty")

        for key, category in categories.items():
            if not isinstance(key, str) or not key.strip():
                raise CardCatalogError(f"Category key {key!r} must be a non-empty string")

            if not isinstance(category, dict):
                raise CardCatalogError(f"Category '{key}' must be a dictionary")

            name = category.get('name')
            if not isinstance(name, str) or not name.strip():
                raise CardCatalogError(f"Category '{key}' must have a non-empty 'name'")

            if not isinstance(category.get('description', ''), str):
                raise CardCatalogError(f"Category '{key}' 'description' must be a string")

            cards = category.get('cards')
            if not isinstance(cards, list) or not cards:
                raise CardCatalogError(f"Category '{key}' must have a non-empty 'cards' list")

            for i, text in enumerate(cards):
                if not isinstance(text, str) or not text.strip():
                    raise CardCatalogError(f"Category '{key}' card {i} must be a non-empty string")

            if len(set(cards)) != len(cards):
                raise CardCatalogError(f"Category '{key}' contains duplicate cards")

    def _parse_categories(self, data: Dict[str, Any]) -> Dict[str, CardCategory]:
        return {
            key: CardCategory(
                key=key,
                name=category['name'].strip(),
                description=category.get('description', '').strip(),
                cards=[text.strip() for text in category['cards']],
            )
            for key, category in data['categories'].items()
        }

    def get_cards(self, enabled_categories: Optional[Iterable[str]] = None) -> List[PromptCard]:
        """
        Cards of the enabled categories, in catalog order.

        Args:
            enabled_categories: Category keys to include. None means all.
        """
        if not self._loaded:
            raise CardCatalogError("No cards loaded. Call load_cards_from_yaml() first.")

        enabled = set(self.categories) if enabled_categories is None else set(enabled_categories)
        cards = []
        for key, category in self.categories.items():
            if key not in enabled:
                continue
            for index, text in enumerate(category.cards):
                cards.append(PromptCard(
                    id=f"{key}_{index}",
                    text=text,
                    category=category.name,
                    category_key=key,
                ))
        return cards

    def category_keys(self) -> List[str]:
        return list(self.categories)

    def get_categories(self) -> Dict[str, Dict[str, Any]]:
        """Serializable view of the whole catalog."""
        return {key: category.to_dict() for key, category in self.categories.items()}

    def get_card_count(self) -> int:
        return sum(len(category.cards) for category in self.categories.values())

    def is_loaded(self) -> bool:
        return self._loaded
