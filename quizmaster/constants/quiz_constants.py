"""Quiz-related constants shared across the session engine and server layers."""

DEFAULT_TIME_PER_QUESTION_SECONDS: int = 30
DEFAULT_QUESTION_POINTS: int = 10
MIN_OPTION_COUNT: int = 2
MAX_OPTION_COUNT: int = 6

# Sentinel written to the answer log when a question expires unanswered.
NO_ANSWER: int = -1

# The time bonus is points * remaining / budget / TIME_BONUS_DIVISOR, i.e. at most half.
TIME_BONUS_DIVISOR: int = 2

TICK_INTERVAL_SECONDS: float = 1.0

FIRST_QUIZ_ACHIEVEMENT_NAME: str = "First Steps"
FIRST_QUIZ_ACHIEVEMENT_DESCRIPTION: str = "Complete your first quiz"
ACHIEVEMENT_NOTIFICATION_TITLE: str = "Achievement Unlocked!"
