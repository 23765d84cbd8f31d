"""Derived progress metrics.

Nothing here touches the database. Every function takes a loaded roadmap
tree plus the ID sets of a progress record, so percentages are recomputed on
each read instead of being stored. IDs that no longer exist in the roadmap
are ignored.
"""

from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from app.models.roadmap import Challenge, Level, Milestone, Roadmap


def percentage(part: int, total: int) -> float:
    """Percentage rounded to two decimals, 0.0 for an empty total."""
    if total <= 0:
        return 0.0
    return round(part / total * 100, 2)


def ordered_levels(roadmap: Roadmap) -> List[Level]:
    """Levels by rank, creation order breaking ties."""
    return sorted(roadmap.levels, key=lambda level: (level.order or 0, level.position or 0))


def milestone_challenge_ids(milestone: Milestone) -> List[str]:
    return [str(challenge.id) for challenge in milestone.challenges]


def level_challenge_ids(level: Level) -> List[str]:
    return [cid for milestone in level.milestones for cid in milestone_challenge_ids(milestone)]


def roadmap_challenge_ids(roadmap: Roadmap) -> List[str]:
    return [cid for level in ordered_levels(roadmap) for cid in level_challenge_ids(level)]


def roadmap_level_ids(roadmap: Roadmap) -> List[str]:
    return [str(level.id) for level in ordered_levels(roadmap)]


def is_milestone_complete(milestone: Milestone, completed: Set[str]) -> bool:
    """A milestone needs at least one challenge, all of them completed."""
    ids = milestone_challenge_ids(milestone)
    return bool(ids) and all(cid in completed for cid in ids)


def is_level_complete(level: Level, completed: Set[str]) -> bool:
    """A level needs at least one challenge, all of them completed."""
    ids = level_challenge_ids(level)
    return bool(ids) and all(cid in completed for cid in ids)


def unlocked_level_ids(roadmap: Roadmap, completed_levels: Iterable[str]) -> Set[str]:
    """Levels the learner may work on.

    The first level is always open. Every other level depends on its immediate
    predecessor only: it opens when the predecessor is in the completed set, or
    when the predecessor has no challenges and is itself open.
    """
    completed = set(completed_levels)
    unlocked: Set[str] = set()
    previous: Optional[Level] = None

    for level in ordered_levels(roadmap):
        if previous is None:
            is_open = True
        else:
            previous_id = str(previous.id)
            is_open = previous_id in completed or (
                previous_id in unlocked and not level_challenge_ids(previous)
            )
        if is_open:
            unlocked.add(str(level.id))
        previous = level

    return unlocked


def locate_challenge(
    roadmap: Roadmap,
    challenge_id: str
) -> Optional[Tuple[Level, Milestone, Challenge]]:
    """Find a challenge and its parents in the tree."""
    for level in ordered_levels(roadmap):
        for milestone in level.milestones:
            for challenge in milestone.challenges:
                if str(challenge.id) == challenge_id:
                    return level, milestone, challenge
    return None


def find_level(roadmap: Roadmap, level_id: str) -> Optional[Level]:
    for level in roadmap.levels:
        if str(level.id) == level_id:
            return level
    return None


def next_position(roadmap: Roadmap, completed: Set[str]) -> Tuple[Optional[str], Optional[str]]:
    """Pointer pair for the first milestone that still has open work.

    When nothing is left the pointers rest on the last level and its last
    milestone.
    """
    levels = ordered_levels(roadmap)
    if not levels:
        return None, None

    for level in levels:
        for milestone in level.milestones:
            if any(cid not in completed for cid in milestone_challenge_ids(milestone)):
                return str(level.id), str(milestone.id)

    last_level = levels[-1]
    last_milestone = last_level.milestones[-1] if last_level.milestones else None
    return str(last_level.id), (str(last_milestone.id) if last_milestone else None)


def count_completed_milestones(roadmap: Roadmap, completed: Set[str]) -> int:
    return sum(
        1
        for level in roadmap.levels
        for milestone in level.milestones
        if is_milestone_complete(milestone, completed)
    )


def compute_progress_metrics(
    roadmap: Roadmap,
    completed_challenges: Iterable[str],
    completed_levels: Iterable[str]
) -> Dict[str, Any]:
    """Build the full metrics payload for a progress record."""
    completed = set(completed_challenges)
    known_levels = set(roadmap_level_ids(roadmap))
    done_levels = set(completed_levels) & known_levels
    unlocked = unlocked_level_ids(roadmap, done_levels)

    all_challenges = roadmap_challenge_ids(roadmap)
    completed_count = sum(1 for cid in all_challenges if cid in completed)

    levels = []
    for level in ordered_levels(roadmap):
        level_ids = level_challenge_ids(level)
        level_done = sum(1 for cid in level_ids if cid in completed)

        milestones = []
        for milestone in level.milestones:
            ms_ids = milestone_challenge_ids(milestone)
            ms_done = sum(1 for cid in ms_ids if cid in completed)
            milestones.append({
                "id": str(milestone.id),
                "title": milestone.title,
                "total_challenges": len(ms_ids),
                "completed_challenges": ms_done,
                "completion_percentage": percentage(ms_done, len(ms_ids)),
                "is_completed": is_milestone_complete(milestone, completed),
            })

        levels.append({
            "id": str(level.id),
            "title": level.title,
            "order": level.order,
            "total_challenges": len(level_ids),
            "completed_challenges": level_done,
            "completion_percentage": percentage(level_done, len(level_ids)),
            "is_completed": str(level.id) in done_levels,
            "is_unlocked": str(level.id) in unlocked,
            "milestones": milestones,
        })

    return {
        "total_challenges": len(all_challenges),
        "completed_challenge_count": completed_count,
        "completion_percentage": percentage(completed_count, len(all_challenges)),
        "total_levels": len(known_levels),
        "completed_level_count": len(done_levels),
        "level_completion_percentage": percentage(len(done_levels), len(known_levels)),
        "completed_milestone_count": count_completed_milestones(roadmap, completed),
        "levels": levels,
    }
