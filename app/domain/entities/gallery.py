"""Immutable in-memory view of the registered people."""
from typing import Dict, Iterable, Iterator, List, Optional

from app.core.exceptions import InvalidIdentityError
from app.domain.entities.identity import Identity


class GallerySnapshot:
    """Read-only set of identities keyed by id.

    Iteration order is ascending identity id. The match engine relies on this
    order to break distance ties deterministically, independent of the order
    the store returned the records in.

    Writers never modify a snapshot; `with_identity()` and `without()` return a
    new one that the gallery service publishes in a single reference swap.
    """

    __slots__ = ("_identities", "_order")

    def __init__(self, identities: Iterable[Identity] = ()) -> None:
        by_id: Dict[str, Identity] = {}
        for identity in identities:
            if identity.id in by_id:
                raise InvalidIdentityError(
                    f"Duplicate identity id in gallery: {identity.id}",
                    details={"identity_id": identity.id}
                )
            by_id[identity.id] = identity
        self._identities = by_id
        self._order = tuple(sorted(by_id))

    def __len__(self) -> int:
        return len(self._identities)

    def __iter__(self) -> Iterator[Identity]:
        return (self._identities[identity_id] for identity_id in self._order)

    def __contains__(self, identity_id: object) -> bool:
        return identity_id in self._identities

    def __repr__(self) -> str:
        return f"GallerySnapshot(size={len(self)})"

    def get(self, identity_id: str) -> Optional[Identity]:
        return self._identities.get(identity_id)

    def ids(self) -> List[str]:
        return list(self._order)

    def matchable(self) -> List[Identity]:
        """Identities that have at least one embedding."""
        return [identity for identity in self if identity.is_matchable]

    def with_identity(self, identity: Identity) -> "GallerySnapshot":
        """New snapshot with the identity added, or replaced if the id exists."""
        identities = dict(self._identities)
        identities[identity.id] = identity
        return GallerySnapshot(identities.values())

    def without(self, identity_id: str) -> "GallerySnapshot":
        """New snapshot without the given identity."""
        return GallerySnapshot(
            identity for identity in self if identity.id != identity_id
        )
