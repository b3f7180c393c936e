from alchemist.dataloader.config_loader import ConfigLoader
from alchemist.dataloader.entity_loader import EntityLoader, expand_phases
from alchemist.dataloader.rules_loader import load_rules, parse_rules
from alchemist.dataloader.types import LoadResult

__all__ = ["ConfigLoader", "EntityLoader", "LoadResult", "expand_phases", "load_rules", "parse_rules"]
