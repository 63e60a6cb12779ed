"""Dice and skill checks."""

from .dice import RandomSource, SkillCheckResult, resolve_skill_check, roll_d20

__all__ = ["RandomSource", "SkillCheckResult", "resolve_skill_check", "roll_d20"]
