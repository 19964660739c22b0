"""Repeatable sub-form definitions and key derivation.

Entity answers are stored under synthesized question ids of the form
``<prefix>_<index>_<field>`` (``q3_child_0_name``). Additional stories
use ``<question_id>_additional_<index>``; index 0 is the story question
itself, so the first additional story is 1.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass

from legacy_letters.core.models import EntityKind


@dataclass(frozen=True)
class EntitySpec:
    """Shape of one repeatable block."""

    kind: EntityKind
    prefix: str
    fields: tuple[str, ...]
    sentinel: str

    def key(self, index: int, field: str | None = None) -> str:
        return entity_key(self.prefix, index, field or self.sentinel)


CHILD = EntitySpec(EntityKind.child, "q3_child", ("name", "wishes", "message"), "name")
SPOUSE = EntitySpec(EntityKind.spouse, "q3_spouse", ("select", "name", "story", "message"), "select")
ASSET = EntitySpec(EntityKind.asset, "q5_asset", ("type", "recipient", "guidance", "story"), "type")

ENTITY_SPECS: dict[EntityKind, EntitySpec] = {spec.kind: spec for spec in (CHILD, SPOUSE, ASSET)}

_ENTITY_KEY_RE = re.compile(r"^(?P<prefix>q\d+_[a-z]+)_(?P<index>\d+)_(?P<field>[a-z]+)$")
_STORY_KEY_RE = re.compile(r"^(?P<question_id>.+)_additional_(?P<index>\d+)$")


def entity_key(prefix: str, index: int, field: str | None = None) -> str:
    """Build the answer key for block *index* (and *field*, if any)."""
    if field is None:
        return f"{prefix}_{index}"
    return f"{prefix}_{index}_{field}"


def story_prefix(question_id: str) -> str:
    return f"{question_id}_additional"


def derive_count(keys: Iterable[str], prefix: str) -> int:
    """Number of blocks implied by stored keys: ``1 + max(index)``, default 1.

    Gaps in the numbering are tolerated; a single high index is enough.
    """
    pattern = re.compile(rf"^{re.escape(prefix)}_(\d+)(?:_|$)")
    indices = [int(match.group(1)) for key in keys if (match := pattern.match(key))]
    return max(indices) + 1 if indices else 1


def parse_entity_key(question_id: str) -> tuple[EntitySpec, int, str] | None:
    """Split ``q3_child_2_wishes`` into (CHILD, 2, "wishes"), or None."""
    match = _ENTITY_KEY_RE.match(question_id)
    if match is None:
        return None
    for spec in ENTITY_SPECS.values():
        if spec.prefix == match["prefix"] and match["field"] in spec.fields:
            return spec, int(match["index"]), match["field"]
    return None


def parse_story_key(question_id: str) -> tuple[str, int] | None:
    """Split ``q2_4_additional_3`` into ("q2_4", 3), or None."""
    match = _STORY_KEY_RE.match(question_id)
    if match is None:
        return None
    return match["question_id"], int(match["index"])
