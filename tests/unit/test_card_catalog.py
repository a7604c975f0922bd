"""
Card Catalog Tests

Tests loading and validation of the situation card YAML file.
"""

import pytest
import yaml

from mimclash.card_catalog import CardCatalog, CardCatalogError, DEFAULT_CARDS_FILE
from mimclash.core.models import ALL_CATEGORIES


def write_yaml(tmp_path, data):
    path = tmp_path / 'cards.yaml'
    path.write_text(yaml.safe_dump(data), encoding='utf-8')
    return str(path)


class TestCardCatalogLoading:
    """Test loading the packaged and custom catalogs"""

    def test_default_catalog_loads(self):
        """The packaged catalog has every category with cards"""
        catalog = CardCatalog()
        catalog.load_cards_from_yaml()

        assert catalog.is_loaded()
        assert catalog.yaml_file_path == DEFAULT_CARDS_FILE
        assert set(catalog.category_keys()) == set(ALL_CATEGORIES)
        assert catalog.get_card_count() == len(catalog.get_cards())
        assert catalog.get_card_count() > 0

    def test_card_ids_are_derived_from_category_and_index(self, tmp_path):
        """Card ids are <category_key>_<index>"""
        path = write_yaml(tmp_path, {'categories': {
            'work': {'name': 'Work', 'cards': ['Monday', 'Payday']},
        }})
        catalog = CardCatalog(path)
        catalog.load_cards_from_yaml()

        cards = catalog.get_cards()
        assert [c.id for c in cards] == ['work_0', 'work_1']
        assert cards[1].text == 'Payday'
        assert cards[1].category == 'Work'
        assert cards[1].category_key == 'work'

    def test_get_cards_filters_by_category(self, tmp_path):
        """Only cards of enabled categories are returned"""
        path = write_yaml(tmp_path, {'categories': {
            'work': {'name': 'Work', 'cards': ['Monday']},
            'traffic': {'name': 'Traffic', 'cards': ['Red light', 'Parking']},
        }})
        catalog = CardCatalog(path)
        catalog.load_cards_from_yaml()

        assert {c.category_key for c in catalog.get_cards(['traffic'])} == {'traffic'}
        assert catalog.get_cards([]) == []
        assert catalog.get_cards(['unknown']) == []

    def test_get_categories_is_serializable(self):
        """get_categories returns plain dictionaries"""
        catalog = CardCatalog()
        catalog.load_cards_from_yaml()

        categories = catalog.get_categories()
        assert categories['work']['name']
        assert isinstance(categories['work']['cards'], list)

    def test_get_cards_before_loading_raises(self):
        """Using the catalog before loading is an error"""
        with pytest.raises(CardCatalogError):
            CardCatalog().get_cards()

    def test_missing_file_raises(self, tmp_path):
        """A missing file raises FileNotFoundError"""
        catalog = CardCatalog(str(tmp_path / 'missing.yaml'))
        with pytest.raises(FileNotFoundError):
            catalog.load_cards_from_yaml()

    def test_malformed_yaml_raises(self, tmp_path):
        """Unparseable YAML raises yaml.YAMLError"""
        path = tmp_path / 'cards.yaml'
        path.write_text('categories: [unclosed', encoding='utf-8')
        with pytest.raises(yaml.YAMLError):
            CardCatalog(str(path)).load_cards_from_yaml()


class TestCardCatalogValidation:
    """Test YAML structure validation"""

    def setup_method(self):
        self.catalog = CardCatalog()

    @pytest.mark.parametrize('data', [
        [],
        {},
        {'categories': []},
        {'categories': {}},
        {'categories': {'work': 'not a dict'}},
        {'categories': {'work': {'cards': ['a']}}},
        {'categories': {'work': {'name': 'Work', 'cards': []}}},
        {'categories': {'work': {'name': 'Work', 'cards': ['a', '']}}},
        {'categories': {'work': {'name': 'Work', 'cards': ['a', 'a']}}},
        {'categories': {'work': {'name': 'Work', 'description': 3, 'cards': ['a']}}},
    ])
    def test_invalid_structures_are_rejected(self, data):
        """Each malformed structure raises CardCatalogError"""
        with pytest.raises(CardCatalogError):
            self.catalog.validate_yaml_structure(data)

    def test_valid_structure_passes(self):
        """A minimal valid catalog passes validation"""
        self.catalog.validate_yaml_structure({
            'categories': {'work': {'name': 'Work', 'description': 'Office', 'cards': ['a', 'b']}}
        })
