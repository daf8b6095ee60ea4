"""
Conflict resolution between matching intent instances.

Instances compete per (resolution group, hand, hand index), so two hands never
block each other. Within a partition instances are ranked by priority, then
specificity; the ranking sort is stable, so equal ranks keep discovery order.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from .logger import get_logger
from .config import EngineConfig, GroupLimit
from .detection import Landmark, Vector3
from .intent import Intent
from .keywords import Strategy

logger = get_logger("ConflictResolution")

DEFAULT_GROUP = "default"


@dataclass(frozen=True)
class IntentInstance:
    """One (intent, hand instance) combination matching this frame."""
    intent: Intent
    hand: str
    hand_index: int
    head_index: int
    position: Vector3
    landmarks: tuple[Landmark, ...] = ()

    @property
    def key(self) -> tuple[str, str, int]:
        return self.intent.id, self.hand, self.hand_index

    @property
    def partition(self) -> tuple[str, str, int]:
        return self.intent.resolution.group or DEFAULT_GROUP, self.hand, self.hand_index


def rank_instances(instances: Sequence[IntentInstance]) -> list[IntentInstance]:
    """Order by priority, then specificity, both descending; ties keep input order."""
    return sorted(instances, key=lambda i: (-i.intent.priority, -i.intent.specificity))


def _apply_limit(ranked: list[IntentInstance], limit: GroupLimit) -> list[IntentInstance]:
    try:
        strategy = Strategy(limit.strategy)
    except ValueError:
        logger.warning(f"Unknown strategy '{limit.strategy}', using winner-takes-all")
        strategy = Strategy.WINNER_TAKES_ALL

    if strategy == Strategy.WINNER_TAKES_ALL:
        return ranked[:1]
    # top-k and custom both keep the best `max`
    return ranked[:max(0, limit.max)]


def resolve_partition(
    instances: Sequence[IntentInstance],
    limit: Optional[GroupLimit] = None
) -> list[IntentInstance]:
    """
    Select winners within one partition.

    Args:
        instances: Competing instances for one group and hand.
        limit: The group's configured limit, if any.

    Returns:
        Selected instances, best first.
    """
    if len(instances) <= 1:
        return list(instances)

    ranked = rank_instances(instances)
    if limit is None:
        return ranked[:1]
    return _apply_limit(ranked, limit)


def _resolve_custom(instances: Sequence[IntentInstance], config: EngineConfig) -> list[IntentInstance]:
    intents: list[Intent] = []
    for instance in instances:
        if all(instance.intent.id != i.id for i in intents):
            intents.append(instance.intent)

    chosen = {intent.id for intent in config.custom_resolver(intents)}
    return [instance for instance in instances if instance.intent.id in chosen]


def resolve_conflicts(instances: Sequence[IntentInstance], config: EngineConfig) -> list[IntentInstance]:
    """
    Decide which matching instances may hold actions this frame.

    A custom resolver, when configured, receives the distinct matching
    intents and bypasses grouping. Otherwise each partition is resolved with
    its group's limit, and the global max_concurrent_intents cap truncates the
    merged selection.

    Args:
        instances: All matching instances, in discovery order.
        config: Engine configuration.

    Returns:
        Selected instances.
    """
    if not instances:
        return []

    if config.custom_resolver is not None:
        try:
            return _resolve_custom(instances, config)
        except Exception as e:
            logger.error(f"Error in custom resolver, falling back to group resolution: {e}")

    partitions: dict[tuple[str, str, int], list[IntentInstance]] = {}
    for instance in instances:
        partitions.setdefault(instance.partition, []).append(instance)

    selected: list[IntentInstance] = []
    for (group, hand, hand_index), members in partitions.items():
        limit = config.group_limits.get(group) if group != DEFAULT_GROUP else None
        winners = resolve_partition(members, limit)
        if len(winners) < len(members):
            logger.debug(
                f"Partition {group}/{hand}/{hand_index}: kept "
                f"{[w.intent.id for w in winners]} of {[m.intent.id for m in members]}"
            )
        selected.extend(winners)

    cap = config.max_concurrent_intents
    if cap is not None and len(selected) > cap:
        selected = selected[:cap]
    return selected
