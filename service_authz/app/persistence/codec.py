"""
Column encoding for assignment rows.

Business rules and assignment data are stored as JSON text. Data that no
longer decodes reads back as ``None``. A business rule that no longer decodes
is handed to the evaluator as the raw text, which denies.
"""

import json
from typing import Any, Optional

from shared.logging import get_logger

logger = get_logger("authz.persistence.codec")


def encode_data(data: Any) -> str:
    return json.dumps(data)


def decode_data(blob: Optional[str]) -> Any:
    if blob is None:
        return None
    try:
        return json.loads(blob)
    except (TypeError, ValueError):
        logger.warning("Discarding undecodable assignment data")
        return None


def encode_rule(rule: Any) -> Optional[str]:
    if rule is None:
        return None
    return json.dumps(rule)


def decode_rule(blob: Optional[str]) -> Any:
    if blob is None or blob == "":
        return None
    try:
        return json.loads(blob)
    except (TypeError, ValueError):
        logger.warning("Undecodable business rule on assignment")
        return blob
