from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet


class StageLabel(str, Enum):
    START = "START"
    SUBCATEGORY = "SUBCAT"
    LISTING = "LIST"
    DETAIL = "DETAIL"


# Which labels each stage may enqueue. START only ever comes from the seed.
TRANSITIONS: Dict[StageLabel, FrozenSet[StageLabel]] = {
    StageLabel.START: frozenset({StageLabel.SUBCATEGORY}),
    StageLabel.SUBCATEGORY: frozenset({StageLabel.SUBCATEGORY, StageLabel.LISTING, StageLabel.DETAIL}),
    StageLabel.LISTING: frozenset({StageLabel.DETAIL}),
    StageLabel.DETAIL: frozenset({StageLabel.DETAIL}),
}


def can_transition(source: StageLabel, target: StageLabel) -> bool:
    return target in TRANSITIONS[source]
