"""
services/catalog.py — The fixed catalog of twenty rosary mysteries.

The catalog is compiled in and immutable for the life of the process. It is
passed to the selector and orchestrator as an ordinary argument (defaulting to
DEFAULT_CATALOG) so tests can hand in a shrunk catalog.

Layer rules:
  - No Flask imports. No database access. Pure data + lookup helpers.
"""

from __future__ import annotations

import enum
import random
from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence


class MysteryGroup(str, enum.Enum):
    JOYFUL    = "Joyful"
    LUMINOUS  = "Light"
    SORROWFUL = "Sorrowful"
    GLORIOUS  = "Glorious"


@dataclass(frozen=True)
class Mystery:
    id: str
    group: MysteryGroup
    name: str
    contemplation: str
    image_ref: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "group": self.group.value,
            "name": self.name,
            "contemplation": self.contemplation,
            "image_ref": self.image_ref,
        }


class MysteryCatalog:
    """Ordered, immutable collection of mysteries with id lookup."""

    def __init__(self, mysteries: Iterable[Mystery]) -> None:
        self._mysteries: tuple[Mystery, ...] = tuple(mysteries)
        self._by_id: dict[str, Mystery] = {m.id: m for m in self._mysteries}
        if len(self._by_id) != len(self._mysteries):
            raise ValueError("Mystery ids must be unique within a catalog.")

    def __iter__(self) -> Iterator[Mystery]:
        return iter(self._mysteries)

    def __len__(self) -> int:
        return len(self._mysteries)

    def __contains__(self, mystery_id: object) -> bool:
        return mystery_id in self._by_id

    @property
    def mysteries(self) -> tuple[Mystery, ...]:
        return self._mysteries

    def lookup(self, mystery_id: str | None) -> Mystery | None:
        """Returns the mystery with this id, or None when it is not in the catalog."""
        if mystery_id is None:
            return None
        return self._by_id.get(mystery_id)

    def by_group(self, group: MysteryGroup) -> list[Mystery]:
        """The mysteries of one group, catalog order kept."""
        return [m for m in self._mysteries if m.group == group]

    def excluding(self, mystery_ids: Iterable[str]) -> list[Mystery]:
        """Catalog entries whose id is not in `mystery_ids`, catalog order kept."""
        excluded = set(mystery_ids)
        return [m for m in self._mysteries if m.id not in excluded]


def pick_random_from(
        candidates: Sequence[Mystery],
        rng: random.Random | None = None,
) -> Mystery | None:
    """Uniform random pick from `candidates`; None for an empty sequence."""
    if not candidates:
        return None
    chooser = rng if rng is not None else random
    return chooser.choice(list(candidates))


_G = MysteryGroup

DEFAULT_CATALOG = MysteryCatalog([
    # ── Joyful ─────────────────────────────────────────────────────────────
    Mystery(
        "joyful-annunciation", _G.JOYFUL,
        "The Annunciation",
        "The angel Gabriel announces to Mary that she will bear the Son of God. "
        "Fruit of the mystery: humility.",
        "mysteries/joyful-1.jpg",
    ),
    Mystery(
        "joyful-visitation", _G.JOYFUL,
        "The Visitation",
        "Mary visits her cousin Elizabeth, who greets her as the mother of the Lord. "
        "Fruit of the mystery: love of neighbour.",
        "mysteries/joyful-2.jpg",
    ),
    Mystery(
        "joyful-nativity", _G.JOYFUL,
        "The Nativity",
        "Jesus is born in a stable in Bethlehem. "
        "Fruit of the mystery: poverty of spirit.",
        "mysteries/joyful-3.jpg",
    ),
    Mystery(
        "joyful-presentation", _G.JOYFUL,
        "The Presentation in the Temple",
        "Mary and Joseph present the child Jesus in the Temple. "
        "Fruit of the mystery: obedience.",
        "mysteries/joyful-4.jpg",
    ),
    Mystery(
        "joyful-finding", _G.JOYFUL,
        "The Finding in the Temple",
        "After three days Jesus is found among the teachers in the Temple. "
        "Fruit of the mystery: seeking God in all things.",
        "mysteries/joyful-5.jpg",
    ),
    # ── Light ──────────────────────────────────────────────────────────────
    Mystery(
        "light-baptism", _G.LUMINOUS,
        "The Baptism in the Jordan",
        "Jesus is baptised by John and the Father names him the beloved Son. "
        "Fruit of the mystery: openness to the Holy Spirit.",
        "mysteries/light-1.jpg",
    ),
    Mystery(
        "light-cana", _G.LUMINOUS,
        "The Wedding at Cana",
        "At Mary's request Jesus changes water into wine. "
        "Fruit of the mystery: trust through Mary.",
        "mysteries/light-2.jpg",
    ),
    Mystery(
        "light-proclamation", _G.LUMINOUS,
        "The Proclamation of the Kingdom",
        "Jesus proclaims the Kingdom of God and calls all to conversion. "
        "Fruit of the mystery: repentance.",
        "mysteries/light-3.jpg",
    ),
    Mystery(
        "light-transfiguration", _G.LUMINOUS,
        "The Transfiguration",
        "On Mount Tabor the glory of Jesus shines before Peter, James and John. "
        "Fruit of the mystery: desire for holiness.",
        "mysteries/light-4.jpg",
    ),
    Mystery(
        "light-eucharist", _G.LUMINOUS,
        "The Institution of the Eucharist",
        "At the Last Supper Jesus gives his Body and Blood. "
        "Fruit of the mystery: adoration.",
        "mysteries/light-5.jpg",
    ),
    # ── Sorrowful ──────────────────────────────────────────────────────────
    Mystery(
        "sorrowful-agony", _G.SORROWFUL,
        "The Agony in the Garden",
        "Jesus prays in Gethsemane and accepts the Father's will. "
        "Fruit of the mystery: sorrow for sin.",
        "mysteries/sorrowful-1.jpg",
    ),
    Mystery(
        "sorrowful-scourging", _G.SORROWFUL,
        "The Scourging at the Pillar",
        "Jesus is bound and scourged. "
        "Fruit of the mystery: purity.",
        "mysteries/sorrowful-2.jpg",
    ),
    Mystery(
        "sorrowful-crowning", _G.SORROWFUL,
        "The Crowning with Thorns",
        "The soldiers mock Jesus and crown him with thorns. "
        "Fruit of the mystery: courage.",
        "mysteries/sorrowful-3.jpg",
    ),
    Mystery(
        "sorrowful-carrying", _G.SORROWFUL,
        "The Carrying of the Cross",
        "Jesus carries his cross to Calvary. "
        "Fruit of the mystery: patience.",
        "mysteries/sorrowful-4.jpg",
    ),
    Mystery(
        "sorrowful-crucifixion", _G.SORROWFUL,
        "The Crucifixion",
        "Jesus dies on the cross for our salvation. "
        "Fruit of the mystery: perseverance.",
        "mysteries/sorrowful-5.jpg",
    ),
    # ── Glorious ───────────────────────────────────────────────────────────
    Mystery(
        "glorious-resurrection", _G.GLORIOUS,
        "The Resurrection",
        "Jesus rises from the dead on the third day. "
        "Fruit of the mystery: faith.",
        "mysteries/glorious-1.jpg",
    ),
    Mystery(
        "glorious-ascension", _G.GLORIOUS,
        "The Ascension",
        "Jesus ascends into heaven forty days after the Resurrection. "
        "Fruit of the mystery: hope.",
        "mysteries/glorious-2.jpg",
    ),
    Mystery(
        "glorious-pentecost", _G.GLORIOUS,
        "The Descent of the Holy Spirit",
        "The Holy Spirit descends upon Mary and the apostles. "
        "Fruit of the mystery: wisdom.",
        "mysteries/glorious-3.jpg",
    ),
    Mystery(
        "glorious-assumption", _G.GLORIOUS,
        "The Assumption of Mary",
        "Mary is taken body and soul into heaven. "
        "Fruit of the mystery: grace of a happy death.",
        "mysteries/glorious-4.jpg",
    ),
    Mystery(
        "glorious-coronation", _G.GLORIOUS,
        "The Coronation of Mary",
        "Mary is crowned Queen of Heaven and Earth. "
        "Fruit of the mystery: trust in Mary's intercession.",
        "mysteries/glorious-5.jpg",
    ),
])
