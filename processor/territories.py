"""Territory registry: empire currencies and province/city topology."""
import json
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TerritoryRegistry:
    """
    Read-only lookup of empire currency and province -> city topology.

    Built from a document shaped like::

        {"Empire Brun": {"currency": "ÐE",
                         "regions": {"Province": ["City A", "City B"]}}}
    """
    currencies: Mapping[str, Optional[str]] = field(default_factory=dict)
    regions: Mapping[str, Mapping[str, List[str]]] = field(default_factory=dict)
    city_to_province: Mapping[str, str] = field(default_factory=dict)
    province_to_empire: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, world: Dict[str, dict]) -> 'TerritoryRegistry':
        currencies = {}
        regions = {}
        city_to_province = {}
        province_to_empire = {}

        for empire, data in (world or {}).items():
            currencies[empire] = data.get('currency')
            empire_regions = data.get('regions') or {}
            regions[empire] = MappingProxyType(
                {p: list(cities) for p, cities in empire_regions.items()}
            )
            for province, cities in empire_regions.items():
                province_to_empire[province] = empire
                for city in cities:
                    city_to_province[city] = province

        return cls(
            currencies=MappingProxyType(currencies),
            regions=MappingProxyType(regions),
            city_to_province=MappingProxyType(city_to_province),
            province_to_empire=MappingProxyType(province_to_empire)
        )

    @classmethod
    def load(cls, path: str) -> 'TerritoryRegistry':
        """Load the registry from a JSON file; unreadable files give an empty one."""
        try:
            with open(path, 'r', encoding='utf-8') as f:
                world = json.load(f)
        except FileNotFoundError:
            logger.warning(f"Territory file not found, using empty registry: {path}")
            return cls()
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read territory file {path}: {e}")
            return cls()

        registry = cls.from_dict(world)
        logger.info(
            f"Loaded territories for {len(registry.currencies)} empires "
            f"and {len(registry.city_to_province)} cities"
        )
        return registry

    def __bool__(self) -> bool:
        return bool(self.currencies)

    def knows(self, empire: str) -> bool:
        return empire in self.currencies

    def currency_of(self, empire: str) -> Optional[str]:
        return self.currencies.get(empire)

    def province_of(self, city: str) -> Optional[str]:
        return self.city_to_province.get(city)
