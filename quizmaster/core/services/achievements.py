"""Achievement rules evaluated when an attempt completes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from quizmaster.constants.quiz_constants import (
    FIRST_QUIZ_ACHIEVEMENT_DESCRIPTION,
    FIRST_QUIZ_ACHIEVEMENT_NAME,
)
from quizmaster.core.models import AttemptResult, ProfileCounters


@dataclass(frozen=True, slots=True)
class AchievementRule:
    """Names an achievement and decides whether an attempt earns it.

    ``condition`` receives the profile counters as they were before the
    attempt was counted.
    """

    name: str
    description: str
    condition: Callable[[ProfileCounters, AttemptResult], bool]

    def is_met(self, counters_before: ProfileCounters, result: AttemptResult) -> bool:
        return self.condition(counters_before, result)


def _is_first_completed_quiz(counters_before: ProfileCounters, result: AttemptResult) -> bool:
    return counters_before.total_quizzes == 0


FIRST_STEPS = AchievementRule(
    name=FIRST_QUIZ_ACHIEVEMENT_NAME,
    description=FIRST_QUIZ_ACHIEVEMENT_DESCRIPTION,
    condition=_is_first_completed_quiz,
)

DEFAULT_RULES: tuple[AchievementRule, ...] = (FIRST_STEPS,)


def evaluate_rules(
    rules: tuple[AchievementRule, ...],
    counters_before: ProfileCounters,
    result: AttemptResult,
) -> list[AchievementRule]:
    return [rule for rule in rules if rule.is_met(counters_before, result)]
