"""Entity Loader - the JSON boundary of the scoring engine.

Reads catalogue snapshots from disk and validates them into Entity models.
Anything that does not fit the data model is rejected here, so the scoring,
aggregation and comparison code only ever sees well-formed records.
"""

import json
import logging
from pathlib import Path
from typing import Any, Union

from pydantic import ValidationError

from .schema import Entity, MalformedInputError

logger = logging.getLogger(__name__)


class EntityNormalizer:
    """Validates raw catalogue records into Entity models."""

    # Catalogue exports use camelCase; the data model uses snake_case.
    FIELD_ALIASES = {
        "overallScore": "overall_score",
        "dimensionScores": "dimension_scores",
        "priceMin": "price_min",
        "priceMax": "price_max",
        "focusAreas": "focus_areas",
        "programsCount": "programs_count",
        "verifiedExcellence": "verified_excellence",
    }

    def normalize(self, raw: Any) -> list[Entity]:
        """Normalize a parsed JSON document into entities.

        Accepts either a list of entity objects or {"entities": [...]}.
        """
        if isinstance(raw, dict):
            if "entities" not in raw:
                raise MalformedInputError("Expected a list of entities or an 'entities' key")
            raw = raw["entities"]
        if not isinstance(raw, list):
            raise MalformedInputError(f"Expected a list of entities, got {type(raw).__name__}")

        entities = []
        seen_ids = set()
        for i, record in enumerate(raw):
            entity = self.normalize_entity(record, i)
            if entity.id in seen_ids:
                raise MalformedInputError(f"Duplicate entity id: {entity.id}")
            seen_ids.add(entity.id)
            entities.append(entity)
        return entities

    def normalize_entity(self, record: Any, index: int = 0) -> Entity:
        """Validate a single entity record."""
        if not isinstance(record, dict):
            raise MalformedInputError(
                f"Entity {index} must be an object, got {type(record).__name__}"
            )

        data = {self.FIELD_ALIASES.get(k, k): v for k, v in record.items()}

        # Dimension scores may be given as a {key: score} mapping
        scores = data.get("dimension_scores")
        if isinstance(scores, dict):
            data["dimension_scores"] = [
                {"dimension": key, "score": value} for key, value in scores.items()
            ]

        try:
            return Entity.model_validate(data)
        except ValidationError as e:
            name = record.get("id") or record.get("name") or index
            raise MalformedInputError(f"Entity {name} is invalid: {e}") from e


def load_entities(file_path: Union[str, Path]) -> list[Entity]:
    """Load and validate an entities file from disk.

    Args:
        file_path: Path to the JSON entities file.

    Returns:
        Validated entities in file order.

    Raises:
        MalformedInputError: If the file is missing, not JSON, or any entity
            fails validation.
    """
    path = Path(file_path)
    if not path.exists():
        raise MalformedInputError(f"Entities file not found: {file_path}")

    logger.debug("Reading entities from %s", path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise MalformedInputError(f"Invalid JSON in {file_path}: {e}") from e

    entities = EntityNormalizer().normalize(data)
    logger.info("Loaded %d entities from %s", len(entities), path)
    return entities


def find_entity(entities: list[Entity], key: str) -> Entity:
    """Find an entity by id or slug.

    Raises:
        KeyError: If no entity matches.
    """
    for entity in entities:
        if entity.id == key or (entity.slug and entity.slug == key):
            return entity
    raise KeyError(f"Entity not found: {key}")


def validate_entities_file(file_path: Union[str, Path]) -> tuple[bool, list[str]]:
    """Validate an entities file.

    Returns:
        Tuple of (is_valid, list of issues).
    """
    try:
        entities = load_entities(file_path)
    except MalformedInputError as e:
        return False, [str(e)]

    issues = []
    if not entities:
        issues.append("File contains no entities")
    return len(issues) == 0, issues
