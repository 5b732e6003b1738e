"""Mutation Pipeline: task create/update/delete coupled to cache invalidation and notifications."""

from taskboard_mutations.notifications import LoggingNotifier, Notifier
from taskboard_mutations.pipeline import MutationPipeline

__all__ = ["LoggingNotifier", "MutationPipeline", "Notifier"]
