"""Random pools for task decoration and the "surprise me" task."""

import random

from taskquest.core.config import constants, settings
from taskquest.domain.create_models import TaskCreate
from taskquest.domain.task import TaskCategory, TaskPriority


TASK_EMOJIS: tuple[str, ...] = (
    "🚀", "💪", "🎯", "🔥", "⚡", "🎨", "📚", "🏃‍♂️", "🎵", "🌟",
    "💡", "🎪", "🎭", "🎬", "🎤", "🎧", "🎮", "🎲",
)  # fmt: skip

TASK_COLORS: tuple[str, ...] = (
    "#FF6B6B", "#4ECDC4", "#45B7D1", "#96CEB4", "#FFEAA7", "#DDA0DD", "#98D8C8",
    "#F7DC6F", "#BB8FCE", "#85C1E9", "#F8C471", "#82E0AA", "#F1948A", "#D7BDE2",
    "#FAD7A0", "#ABEBC6", "#F9E79F", "#D5A6BD", "#A9CCE3",
)  # fmt: skip

RANDOM_TASK_TITLES: tuple[str, ...] = (
    "Dance like nobody's watching 🕺",
    "Learn to juggle 3 objects 🎪",
    "Write a haiku about your day 📝",
    "Take 10 deep breaths 🌬️",
    "Do 20 jumping jacks 🏃‍♂️",
    "Sing your favorite song 🎤",
    "Draw something abstract 🎨",
    "Learn a magic trick 🪄",
    "Practice your superhero pose 🦸‍♂️",
    "Make a paper airplane ✈️",
    "Do a handstand (or try) 🤸‍♂️",
    "Learn to whistle 🎵",
    "Practice your best smile 😊",
    "Do a cartwheel (safely) 🤸‍♀️",
    "Learn a new dance move 💃",
)

RANDOM_TASK_DESCRIPTION = "This is a randomly generated task for you! 🎉"
RANDOM_TASK_TAGS: tuple[str, ...] = ("random", "fun")


class RandomTaskGenerator:
    """Uniform selection over the fixed pools, driven by a seedable ``random.Random``."""

    def __init__(self, seed: int | None = None, *, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random(seed)  # noqa: S311 - decoration only

    def emoji(self) -> str:
        return self._rng.choice(TASK_EMOJIS)

    def color(self) -> str:
        return self._rng.choice(TASK_COLORS)

    def category(self) -> TaskCategory:
        return self._rng.choice(list(TaskCategory))

    def priority(self) -> TaskPriority:
        return self._rng.choice(list(TaskPriority))

    def title(self) -> str:
        return self._rng.choice(RANDOM_TASK_TITLES)

    def estimated_time(self) -> int:
        """Minutes in [5, 65)."""
        low = constants.RANDOM_TASK_MIN_MINUTES
        return self._rng.randrange(low, low + constants.RANDOM_TASK_MINUTES_SPAN)

    def fill_defaults(self, task: TaskCreate) -> TaskCreate:
        """Give a user-submitted task an emoji, color, category and priority where it has none."""
        return task.model_copy(
            update={
                "emoji": task.emoji or self.emoji(),
                "category": task.category or self.category(),
                "priority": task.priority or self.priority(),
                "color": task.color or self.color(),
            }
        )

    def random_task(self) -> TaskCreate:
        """Build a complete task from the pools."""
        return TaskCreate(
            title=self.title(),
            description=RANDOM_TASK_DESCRIPTION,
            emoji=self.emoji(),
            category=self.category(),
            priority=self.priority(),
            color=self.color(),
            tags=list(RANDOM_TASK_TAGS),
            estimated_time=self.estimated_time(),
        )


_generator: RandomTaskGenerator | None = None


def get_generator() -> RandomTaskGenerator:
    """Return the process-wide generator, seeded from settings on first use."""
    global _generator  # noqa: PLW0603
    if _generator is None:
        _generator = RandomTaskGenerator(settings.random_seed)
    return _generator


def reset_generator(seed: int | None = None) -> RandomTaskGenerator:
    """Replace the process-wide generator (used by tests and demos)."""
    global _generator  # noqa: PLW0603
    _generator = RandomTaskGenerator(seed)
    return _generator
