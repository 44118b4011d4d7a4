from dataclasses import dataclass
from typing import Iterable, Optional, Protocol


@dataclass(frozen=True)
class Viewer:
    id: str
    couple_id: Optional[str] = None


class Owned(Protocol):
    owner_id: str
    couple_id: Optional[str]


def can_access(viewer: Optional[Viewer], txn: Owned) -> bool:
    # UI-side mirror of the gateway's SQL scope; the gateway enforces it.
    if viewer is None:
        return False
    if viewer.couple_id and txn.couple_id == viewer.couple_id:
        return True
    return txn.owner_id == viewer.id and (
        txn.couple_id is None or txn.couple_id == viewer.couple_id
    )


def visible_transactions(viewer: Optional[Viewer], transactions: Iterable[Owned]) -> list:
    return [txn for txn in transactions if can_access(viewer, txn)]
