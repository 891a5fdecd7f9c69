from typing import List, Sequence, Set

from ..models.project_record import ProjectRecord


def merge(remote: Sequence[ProjectRecord], local: Sequence[ProjectRecord]) -> List[ProjectRecord]:
    """
    Combine remote and locally cached records into one deduplicated list.

    Remote records come first and win on any id collision. A local record is
    appended only when neither of its ids appears on a remote record, so
    records that never reached the remote store are kept as they are.

    Args:
        remote: Records fetched from the remote store
        local: Records read from the local cache

    Returns:
        New list: remote order first, then unmatched local order
    """
    if not remote:
        return list(local)

    merged = list(remote)
    remote_ids: Set[str] = set()
    for record in remote:
        remote_ids.update(record.ids())

    for record in local:
        if not record.ids() & remote_ids:
            merged.append(record)
    return merged
