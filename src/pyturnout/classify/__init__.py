"""Pure classifiers: estimate → presentation, observation → signal."""

from pyturnout.classify.display import derive, has_changed
from pyturnout.classify.signals import classify_observation

__all__ = ["classify_observation", "derive", "has_changed"]
