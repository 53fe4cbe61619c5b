"""Once-only side effects of a finished attempt.

The pipeline runs three ordered steps: save the attempt, update the profile
counters, grant achievements. A store failure stops the pipeline at that
step and is re-raised unchanged; the ``CompletionReport`` records which steps
already went through so the caller can tell "attempt saved, profile not
updated" apart from "nothing saved". Nothing is rolled back or retried
automatically; ``resume()`` lets the caller run the remaining steps later.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging

from quizmaster.constants.quiz_constants import ACHIEVEMENT_NOTIFICATION_TITLE
from quizmaster.core.errors import DuplicateGrant, PipelineAlreadyRun, StoreError
from quizmaster.core.models import Achievement, AttemptResult, ProfileCounters, ProfileDelta
from quizmaster.core.services.achievements import DEFAULT_RULES, AchievementRule, evaluate_rules
from quizmaster.core.stores import AchievementStore, AttemptStore, NotificationSink, ProfileStore

logger = logging.getLogger(__name__)


class CompletionStep(Enum):
    SAVE_ATTEMPT = "save_attempt"
    UPDATE_PROFILE = "update_profile"
    GRANT_ACHIEVEMENTS = "grant_achievements"


@dataclass(slots=True)
class CompletionReport:
    """What the pipeline has done so far for one attempt."""

    completed_steps: list[CompletionStep] = field(default_factory=list)
    failed_step: CompletionStep | None = None
    error: StoreError | None = None
    counters_before: ProfileCounters | None = None
    granted: list[Achievement] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return len(self.completed_steps) == len(CompletionStep)

    @property
    def attempt_saved(self) -> bool:
        return CompletionStep.SAVE_ATTEMPT in self.completed_steps

    def to_payload(self) -> dict[str, object]:
        return {
            "completed_steps": [step.value for step in self.completed_steps],
            "failed_step": self.failed_step.value if self.failed_step else None,
            "error": str(self.error) if self.error else None,
            "granted_achievements": [achievement.name for achievement in self.granted],
        }


class CompletionPipeline:
    """Runs the completion steps for exactly one attempt."""

    def __init__(
        self,
        attempts: AttemptStore,
        profiles: ProfileStore,
        achievements: AchievementStore,
        notifications: NotificationSink,
        rules: tuple[AchievementRule, ...] = DEFAULT_RULES,
    ) -> None:
        self._attempts = attempts
        self._profiles = profiles
        self._achievements = achievements
        self._notifications = notifications
        self._rules = rules
        self._result: AttemptResult | None = None
        self._report = CompletionReport()

    @property
    def report(self) -> CompletionReport:
        return self._report

    @property
    def has_run(self) -> bool:
        return self._result is not None

    def run(self, result: AttemptResult) -> CompletionReport:
        if self._result is not None:
            raise PipelineAlreadyRun("Completion pipeline already ran for this attempt.")
        self._result = result
        logger.info(
            "Completing attempt: user=%s quiz=%s score=%s correct=%s/%s",
            result.user_id,
            result.quiz_id,
            result.score,
            result.correct_answers,
            result.total_questions,
        )
        return self._run_pending()

    def resume(self) -> CompletionReport:
        """Run the steps that have not completed yet. Caller-initiated only."""
        if self._result is None:
            raise RuntimeError("Completion pipeline has not been started.")
        if self._report.is_complete:
            return self._report
        logger.info("Resuming completion at step %s", self._report.failed_step)
        return self._run_pending()

    def _run_pending(self) -> CompletionReport:
        handlers = {
            CompletionStep.SAVE_ATTEMPT: self._save_attempt,
            CompletionStep.UPDATE_PROFILE: self._update_profile,
            CompletionStep.GRANT_ACHIEVEMENTS: self._grant_achievements,
        }
        for step in CompletionStep:
            if step in self._report.completed_steps:
                continue
            try:
                handlers[step]()
            except StoreError as exc:
                self._report.failed_step = step
                self._report.error = exc
                logger.warning("Completion step %s failed: %s", step.value, exc)
                raise
            self._report.completed_steps.append(step)
            self._report.failed_step = None
            self._report.error = None
            logger.debug("Completion step %s done", step.value)
        return self._report

    def _save_attempt(self) -> None:
        assert self._result is not None
        self._attempts.save_attempt(self._result)

    def _update_profile(self) -> None:
        assert self._result is not None
        user_id = self._result.user_id
        counters = self._profiles.read_counters(user_id)
        self._report.counters_before = counters
        self._profiles.apply_delta(user_id, ProfileDelta.from_attempt(self._result))

    def _grant_achievements(self) -> None:
        assert self._result is not None and self._report.counters_before is not None
        user_id = self._result.user_id
        for rule in evaluate_rules(self._rules, self._report.counters_before, self._result):
            achievement = self._achievements.find_achievement_by_name(rule.name)
            if achievement is None:
                logger.warning("Achievement '%s' is not defined in the store", rule.name)
                continue
            if self._achievements.has_grant(user_id, achievement.id):
                continue
            try:
                self._achievements.grant(user_id, achievement.id)
            except DuplicateGrant:
                logger.info("User %s already holds '%s'", user_id, achievement.name)
                continue
            self._report.granted.append(achievement)
            logger.info("Granted '%s' to user %s", achievement.name, user_id)
            message = f"{achievement.name} - {achievement.description or rule.description}"
            try:
                self._notifications.notify(user_id, ACHIEVEMENT_NOTIFICATION_TITLE, message)
            except Exception:
                # Notifications are fire-and-forget; the grant already stands.
                logger.exception("Notification sink failed for user %s", user_id)
