"""
Dice rolling tools for storyloom.

Handles d20 skill checks against a stat and a difficulty threshold.
The random source is always injected; nothing here touches the
module-level generator in `random`.
"""

from dataclasses import dataclass
from typing import Protocol

from ..state.schema import GameState, SkillCheck


class RandomSource(Protocol):
    """Anything with random.Random's randint signature."""

    def randint(self, a: int, b: int) -> int:
        ...


@dataclass(frozen=True)
class SkillCheckResult:
    """Result of a skill check."""
    skill: str
    difficulty: int
    skill_value: int
    roll: int
    total: int
    success: bool
    margin: int  # Positive = over difficulty, negative = under

    @property
    def narrative(self) -> str:
        """Narrative description of the result."""
        if self.success:
            if self.margin >= 8:
                return "crushing success"
            elif self.margin >= 4:
                return "solid success"
            else:
                return "narrow success"
        else:
            if self.margin <= -8:
                return "complete failure"
            elif self.margin <= -4:
                return "clear failure"
            else:
                return "near miss"

    def to_dict(self) -> dict:
        return {
            "skill": self.skill,
            "difficulty": self.difficulty,
            "skill_value": self.skill_value,
            "roll": self.roll,
            "total": self.total,
            "success": self.success,
            "margin": self.margin,
            "narrative": self.narrative,
        }


def _stat_key(skill: str, state: GameState) -> str:
    """Exact stat key if present, else the first one matching without case."""
    if skill in state.stats:
        return skill
    folded = skill.casefold()
    for name in state.stats:
        if name.casefold() == folded:
            return name
    return skill


def roll_d20(rng: RandomSource) -> int:
    """Roll a single d20."""
    return rng.randint(1, 20)


def resolve_skill_check(check: SkillCheck, state: GameState, rng: RandomSource) -> SkillCheckResult:
    """
    Resolve a skill check: stat + d20 against difficulty.

    A single roll per call; there are no re-rolls.

    Args:
        check: Skill name and difficulty
        state: State to read the stat from (missing stat counts as 0)
        rng: Injected random source

    Returns:
        SkillCheckResult with all roll information
    """
    skill_value = int(state.stat(_stat_key(check.skill, state)))
    roll = roll_d20(rng)
    total = skill_value + roll

    return SkillCheckResult(
        skill=check.skill,
        difficulty=check.difficulty,
        skill_value=skill_value,
        roll=roll,
        total=total,
        success=total >= check.difficulty,
        margin=total - check.difficulty,
    )
