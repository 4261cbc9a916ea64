"""Catalog of reference entities (rooms, teachers, subjects) from one payload.

The payload lists every entity once in a flat ``elements`` array; periods refer
to them by id. The catalog is built once per parse and is read-only afterwards.
"""

from types import MappingProxyType
from typing import Any, Mapping

from pydantic import ValidationError

from src.untis.errors import UnresolvedReferenceError
from src.untis.fields import as_uint, join_path, require_uint, validation_error
from src.untis.logging import get_logger
from src.untis.models import ElementType, Room, Subject, Teacher

log = get_logger(__name__)

# Element kinds the catalog understands; any other tag is skipped
_CATALOG_MODELS: dict[int, type[Room] | type[Teacher] | type[Subject]] = {
    ElementType.TEACHER: Teacher,
    ElementType.SUBJECT: Subject,
    ElementType.ROOM: Room,
}


class Catalog:
    """Reference entities of one timetable payload, keyed by kind and id."""

    def __init__(
        self,
        rooms: Mapping[int, Room] | None = None,
        teachers: Mapping[int, Teacher] | None = None,
        subjects: Mapping[int, Subject] | None = None,
    ) -> None:
        self.rooms: Mapping[int, Room] = MappingProxyType(dict(rooms or {}))
        self.teachers: Mapping[int, Teacher] = MappingProxyType(dict(teachers or {}))
        self.subjects: Mapping[int, Subject] = MappingProxyType(dict(subjects or {}))

    @classmethod
    def from_elements(cls, elements: list[Any], path: str = "elements") -> "Catalog":
        """Build a catalog from the payload's flat element list.

        Args:
            elements: Raw ``elements`` array from the timetable payload.
            path: JSON path of the array, used in error messages.

        Returns:
            Catalog with every teacher, subject and room found.

        Raises:
            MissingFieldError: An element lacks ``type``, ``id`` or a schema field.
            TypeMismatchError: An element field has the wrong JSON type.
        """
        buckets: dict[int, dict[int, Any]] = {tag: {} for tag in _CATALOG_MODELS}

        for index, element in enumerate(elements):
            element_path = join_path(path, index)
            element_type = require_uint(element, "type", element_path)
            element_id = require_uint(element, "id", element_path)

            model = _CATALOG_MODELS.get(element_type)
            if model is None:
                log.warning(
                    "unknown_element_type",
                    element_type=element_type,
                    element_id=element_id,
                    path=element_path,
                )
                continue

            try:
                buckets[element_type][element_id] = model.model_validate(element)
            except ValidationError as e:
                raise validation_error(e, element_path) from e

        catalog = cls(
            rooms=buckets[ElementType.ROOM],
            teachers=buckets[ElementType.TEACHER],
            subjects=buckets[ElementType.SUBJECT],
        )
        log.debug(
            "catalog_built",
            rooms=len(catalog.rooms),
            teachers=len(catalog.teachers),
            subjects=len(catalog.subjects),
        )
        return catalog

    def room(self, room_id: int, path: str = "") -> Room:
        return self._resolve(self.rooms, "Room", room_id, path)

    def teacher(self, teacher_id: int, path: str = "") -> Teacher:
        return self._resolve(self.teachers, "Teacher", teacher_id, path)

    def subject(self, subject_id: int, path: str = "") -> Subject:
        return self._resolve(self.subjects, "Subject", subject_id, path)

    @staticmethod
    def _resolve(mapping: Mapping[int, Any], kind: str, entity_id: int, path: str) -> Any:
        entity = mapping.get(as_uint(entity_id, path))
        if entity is None:
            raise UnresolvedReferenceError(
                f"{kind} with id {entity_id} has not been found", path=path
            )
        return entity

    def __repr__(self) -> str:
        return (
            f"Catalog(rooms={len(self.rooms)}, teachers={len(self.teachers)}, "
            f"subjects={len(self.subjects)})"
        )
