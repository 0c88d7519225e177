"""Read-only gamification views derived from a user's stats."""

from pydantic import BaseModel, Field

from taskquest.domain.stats import UserStats


class Achievement(BaseModel):
    """A named milestone unlocked at a level or streak threshold."""

    threshold: int
    name: str
    emoji: str


class LevelProgress(BaseModel):
    """How far the user is through their current level."""

    level: int
    experience: int
    experience_into_level: int
    experience_for_next_level: int
    percent: float = Field(..., ge=0, le=100)


class StreakAchievements(BaseModel):
    """Streak milestones reached so far and the next one to chase."""

    unlocked: list[Achievement]
    next: Achievement | None


LEVEL_TITLES: tuple[Achievement, ...] = (
    Achievement(threshold=1, name="Task Rookie", emoji="🌱"),
    Achievement(threshold=5, name="Task Explorer", emoji="🔍"),
    Achievement(threshold=10, name="Task Warrior", emoji="⚔️"),
    Achievement(threshold=15, name="Task Master", emoji="🎯"),
    Achievement(threshold=20, name="Task Legend", emoji="🏆"),
    Achievement(threshold=25, name="Task God", emoji="👑"),
    Achievement(threshold=30, name="Task Overlord", emoji="👹"),
)

STREAK_ACHIEVEMENTS: tuple[Achievement, ...] = (
    Achievement(threshold=3, name="Getting Started", emoji="🔥"),
    Achievement(threshold=7, name="Week Warrior", emoji="⚡"),
    Achievement(threshold=14, name="Fortnight Fighter", emoji="💪"),
    Achievement(threshold=30, name="Monthly Master", emoji="🌟"),
    Achievement(threshold=100, name="Century Champion", emoji="👑"),
    Achievement(threshold=365, name="Yearly Legend", emoji="💎"),
)


def level_progress(stats: UserStats, *, experience_per_level: int = 100) -> LevelProgress:
    """Experience earned inside the current level and what remains to the next one."""
    floor = (stats.level - 1) * experience_per_level
    into_level = min(max(stats.experience - floor, 0), experience_per_level)
    return LevelProgress(
        level=stats.level,
        experience=stats.experience,
        experience_into_level=into_level,
        experience_for_next_level=experience_per_level - into_level,
        percent=round(into_level / experience_per_level * 100, 2),
    )


def current_title(level: int) -> Achievement:
    """Highest level title the user has reached."""
    reached = [title for title in LEVEL_TITLES if title.threshold <= level]
    return reached[-1] if reached else LEVEL_TITLES[0]


def next_title(level: int) -> Achievement | None:
    """Next level title above ``level``, or None at the top."""
    return next((title for title in LEVEL_TITLES if title.threshold > level), None)


def streak_achievements(current_streak: int) -> StreakAchievements:
    """Split streak milestones into unlocked ones and the next target."""
    return StreakAchievements(
        unlocked=[a for a in STREAK_ACHIEVEMENTS if current_streak >= a.threshold],
        next=next((a for a in STREAK_ACHIEVEMENTS if a.threshold > current_streak), None),
    )
