"""Order projects for display: recently opened first, then alphabetical."""

from dataclasses import dataclass
from typing import Iterable, List, Sequence

from ..models.project_record import ProjectRecord


@dataclass(frozen=True)
class RankedProject:
    record: ProjectRecord
    is_recent: bool


def rank_projects(
    records: Iterable[ProjectRecord], recent_names: Sequence[str]
) -> List[RankedProject]:
    """Merge the cache snapshot with the recency list.

    One entry per project name (the first row wins, as with lookup). Recent
    names missing from the cache are ignored.
    """
    by_name = {}
    for record in records:
        by_name.setdefault(record.name, record)

    ranked: List[RankedProject] = []
    seen = set()
    for name in recent_names:
        record = by_name.get(name)
        if record is None or name in seen:
            continue
        ranked.append(RankedProject(record, is_recent=True))
        seen.add(name)

    for name in sorted(by_name):
        if name not in seen:
            ranked.append(RankedProject(by_name[name], is_recent=False))

    return ranked
