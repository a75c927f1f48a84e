"""Trade experience entered through the wizard's "add experience" dialog.

At most one entry per trade. Entries live only as long as the wizard
session that owns the registry.
"""

import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator

from jikjikjik import messages
from jikjikjik.middleware.exceptions import ValidationError

logger = logging.getLogger(__name__)


class SkillKey(str, Enum):
    CONCRETE = "concrete"
    REBAR = "rebar"
    CARPENTER = "carpenter"
    ELECTRIC = "electric"
    PLUMBER = "plumber"
    TILE = "tile"
    PAINTER = "painter"
    GENERAL = "general"

    @property
    def label(self) -> str:
        return SKILL_LABELS[self]


SKILL_LABELS: dict[SkillKey, str] = {
    SkillKey.CONCRETE: "콘크리트공",
    SkillKey.REBAR: "철근공",
    SkillKey.CARPENTER: "목수",
    SkillKey.ELECTRIC: "전기공",
    SkillKey.PLUMBER: "배관공",
    SkillKey.TILE: "타일공",
    SkillKey.PAINTER: "도장공",
    SkillKey.GENERAL: "일반인부",
}


class ExperienceYears(int, Enum):
    """Ordinal experience buckets. The value is the year count sent upstream."""
    UNDER_1 = 1
    FROM_1_TO_2 = 2
    FROM_2_TO_3 = 3
    FROM_3_TO_4 = 4
    FROM_4_TO_5 = 5
    FROM_5_TO_7 = 6
    FROM_7_TO_10 = 8
    FROM_10_TO_15 = 11
    FROM_15_TO_20 = 16
    OVER_20 = 21

    @property
    def label(self) -> str:
        return YEARS_LABELS[self]


YEARS_LABELS: dict[ExperienceYears, str] = {
    ExperienceYears.UNDER_1: "1년 미만",
    ExperienceYears.FROM_1_TO_2: "1년 이상 ~ 2년 미만",
    ExperienceYears.FROM_2_TO_3: "2년 이상 ~ 3년 미만",
    ExperienceYears.FROM_3_TO_4: "3년 이상 ~ 4년 미만",
    ExperienceYears.FROM_4_TO_5: "4년 이상 ~ 5년 미만",
    ExperienceYears.FROM_5_TO_7: "5년 이상 ~ 7년 미만",
    ExperienceYears.FROM_7_TO_10: "7년 이상 ~ 10년 미만",
    ExperienceYears.FROM_10_TO_15: "10년 이상 ~ 15년 미만",
    ExperienceYears.FROM_15_TO_20: "15년 이상 ~ 20년 미만",
    ExperienceYears.OVER_20: "20년 이상",
}


def parse_skill(value: str | SkillKey | None) -> SkillKey:
    if not value:
        raise ValidationError(messages.SELECT_EXPERIENCE_SKILL, field="skill")
    try:
        return SkillKey(value)
    except ValueError:
        raise ValidationError(messages.UNKNOWN_TRADE, field="skill") from None


def parse_years(value: int | str | ExperienceYears | None) -> ExperienceYears:
    if value is None or value == "":
        raise ValidationError(messages.SELECT_EXPERIENCE_YEARS, field="years")
    try:
        return ExperienceYears(int(value))
    except ValueError:
        raise ValidationError(messages.SELECT_EXPERIENCE_YEARS, field="years") from None


@dataclass(frozen=True)
class ExperienceEntry:
    id: int
    skill: SkillKey
    years: ExperienceYears

    @property
    def experience_months(self) -> int:
        return self.years.value * 12


class ExperienceRegistry:
    """Insertion-ordered list of (trade, years) entries, unique per trade."""

    DELETE_PROMPT = messages.EXPERIENCE_DELETE_PROMPT

    def __init__(self) -> None:
        self._entries: list[ExperienceEntry] = []
        self._ids = itertools.count(1)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ExperienceEntry]:
        return iter(list(self._entries))

    def __contains__(self, skill: object) -> bool:
        return any(entry.skill == skill for entry in self._entries)

    def add(
        self,
        skill: str | SkillKey | None,
        years: int | str | ExperienceYears | None,
    ) -> ExperienceEntry:
        """Append a new entry. A second entry for the same trade is rejected."""
        skill_key = parse_skill(skill)
        bucket = parse_years(years)

        if skill_key in self:
            logger.info("Duplicate experience rejected: skill=%s", skill_key.value)
            raise ValidationError(messages.EXPERIENCE_DUPLICATE, field="skill")

        entry = ExperienceEntry(id=next(self._ids), skill=skill_key, years=bucket)
        self._entries.append(entry)
        return entry

    def remove(self, entry_id: int, confirm: Callable[[str], bool]) -> bool:
        """Remove ``entry_id`` if the user confirms. Returns True if removed."""
        entry = self.get(entry_id)
        if entry is None:
            return False
        if not confirm(self.DELETE_PROMPT):
            return False
        self._entries = [e for e in self._entries if e.id != entry_id]
        return True

    def get(self, entry_id: int) -> ExperienceEntry | None:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def clear(self) -> None:
        self._entries = []

    def render(self) -> list[dict]:
        """Display rows for the experience list, in insertion order."""
        return [
            {
                "id": entry.id,
                "skill": entry.skill.value,
                "skill_name": entry.skill.label,
                "years": entry.years.value,
                "years_text": entry.years.label,
            }
            for entry in self._entries
        ]

    # Defined last: the name shadows the builtin for annotations in the class body.
    def list(self) -> list[ExperienceEntry]:
        return list(self._entries)
