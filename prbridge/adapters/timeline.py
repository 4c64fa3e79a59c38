"""Merge discussions and activity events into one chronological timeline."""

from typing import Iterable, List

from prbridge.models.gitlab import GitLabProjectEvent, GitLabResourceEvent
from prbridge.models.pull_request import TimelineEvent, TimelineItem
from prbridge.adapters.normalizer import (
    normalize_label_event,
    normalize_milestone_event,
    normalize_project_event,
)

# Shown through discussions/notes instead
EXCLUDED_PROJECT_ACTIONS = frozenset({"commented on", "pushed to"})


def project_events(events: Iterable[GitLabProjectEvent]) -> List[TimelineEvent]:
    return [normalize_project_event(e) for e in events if e.action_name not in EXCLUDED_PROJECT_ACTIONS]


def label_events(events: Iterable[GitLabResourceEvent]) -> List[TimelineEvent]:
    return [normalize_label_event(e) for e in events]


def milestone_events(events: Iterable[GitLabResourceEvent]) -> List[TimelineEvent]:
    return [normalize_milestone_event(e) for e in events]


def assemble_timeline(*streams: Iterable[TimelineItem]) -> List[TimelineItem]:
    """Concatenate the streams and sort ascending by ``created_at``.

    Timestamps are compared as strings; the normalizer emits them in one UTC
    form so string order is time order. The sort is stable, so items with
    equal timestamps keep their stream order.
    """
    merged: List[TimelineItem] = []
    for stream in streams:
        merged.extend(stream)
    return sorted(merged, key=lambda item: item.created_at)
