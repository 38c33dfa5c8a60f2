from __future__ import annotations

import json
import logging
from functools import lru_cache
from importlib import resources
from typing import Any, Dict

from jsonschema import Draft202012Validator

from ..errors import CorruptStateError

logger = logging.getLogger(__name__)

PARTY_SCHEMA = "party_game_state.schema.json"


@lru_cache(maxsize=None)
def _validator(name: str) -> Draft202012Validator:
    with resources.files("trenches.persistence").joinpath("schemas", name).open("r", encoding="utf-8") as f:
        schema = json.load(f)
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema)


def validate_party_document(data: Dict[str, Any]) -> None:
    """Check a persisted party game document before it is decoded.

    Raises:
        CorruptStateError listing every violation found.
    """
    errors = sorted(_validator(PARTY_SCHEMA).iter_errors(data), key=lambda e: list(e.absolute_path))
    if not errors:
        return
    lines = []
    for err in errors:
        where = ".".join(str(p) for p in err.absolute_path) or "$"
        logger.error("Party state schema violation at %s: %s", where, err.message)
        lines.append(f" - At {where}: {err.message}")
    raise CorruptStateError("Party state failed schema validation:\n" + "\n".join(lines))


__all__ = ["validate_party_document"]
