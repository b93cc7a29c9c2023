"""
Ordered annotation storage.

Insertion order is paint order and erase order: an annotation only
covers (or, for erase strokes, clears) what comes before it.
"""

from typing import Iterator, List, Optional, Tuple

from pixmark.editor.annotations import AnnotationBase


class AnnotationStore:
    """Ordered collection of annotations addressed by id."""

    def __init__(self) -> None:
        self._items: List[AnnotationBase] = []

    def __iter__(self) -> Iterator[AnnotationBase]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, annotation_id: object) -> bool:
        return self.index_of(annotation_id) >= 0

    @property
    def items(self) -> Tuple[AnnotationBase, ...]:
        return tuple(self._items)

    def index_of(self, annotation_id: object) -> int:
        """Return the store position of an id, or -1."""
        for i, annotation in enumerate(self._items):
            if annotation.id == annotation_id:
                return i
        return -1

    def get(self, annotation_id: Optional[str]) -> Optional[AnnotationBase]:
        index = self.index_of(annotation_id)
        return self._items[index] if index >= 0 else None

    def add(self, annotation: AnnotationBase) -> None:
        """Append an annotation on top of everything else."""
        if annotation.id in self:
            raise ValueError(f"Annotation {annotation.id} is already stored")
        self._items.append(annotation)

    def replace(self, annotation: AnnotationBase) -> bool:
        """
        Swap in a new version of a stored annotation at its original position.

        Returns False if no annotation with that id is stored.
        """
        index = self.index_of(annotation.id)
        if index < 0:
            return False
        self._items[index] = annotation
        return True

    def remove(self, annotation_id: Optional[str]) -> Optional[AnnotationBase]:
        """Remove and return an annotation, or None if it isn't stored."""
        index = self.index_of(annotation_id)
        if index < 0:
            return None
        return self._items.pop(index)

    def clear(self) -> None:
        self._items.clear()
