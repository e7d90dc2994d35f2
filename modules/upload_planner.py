"""Expands a queue snapshot into per-copy upload units."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Sequence
from urllib.parse import urlparse
from urllib.request import url2pathname

from core.exceptions import EmptyQueueError, InvalidLocationError
from logging_config import get_logger
from models.print_job import JobDescriptor
from models.upload import UploadPlan, UploadUnit


# Module logger
logger = get_logger(__name__)

_LOCAL_HOSTS = ("", "localhost")


def resolve_file_location(identifier: str) -> Path:
    """
    Turn a queue identifier into a local file path.

    Accepts ``file://`` URLs (percent-encoding is decoded) and absolute
    filesystem paths.

    Raises:
        InvalidLocationError: For anything else
    """
    if not identifier or not identifier.strip():
        raise InvalidLocationError(identifier)

    parsed = urlparse(identifier)

    if parsed.scheme == "file":
        if parsed.netloc not in _LOCAL_HOSTS or not parsed.path:
            raise InvalidLocationError(identifier)
        return Path(url2pathname(parsed.path))

    # A bare absolute path has no scheme (single-letter "schemes" are Windows drives)
    if len(parsed.scheme) <= 1:
        path = Path(identifier)
        if path.is_absolute():
            return path

    raise InvalidLocationError(identifier)


class UploadJobPlanner:
    """
    Builds the upload plan for a queue snapshot.

    Each descriptor expands into ``quantity`` units (at least one), all
    carrying the descriptor's identifier as group id. Units keep descriptor
    order, so planning the same snapshot twice yields an equal plan.
    """

    def make_plan(self, descriptors: Sequence[JobDescriptor]) -> UploadPlan:
        """
        Args:
            descriptors: Normalized queue snapshot

        Returns:
            UploadPlan with units, total count and zeroed per-group counters

        Raises:
            EmptyQueueError: If descriptors is empty
            InvalidLocationError: If an identifier is not a local file reference
        """
        if not descriptors:
            raise EmptyQueueError()

        units: List[UploadUnit] = []
        completed_per_group: Dict[str, int] = {}

        for descriptor in descriptors:
            file_location = resolve_file_location(descriptor.identifier)
            copies = max(descriptor.quantity, 1)
            units.extend(
                UploadUnit(
                    group_id=descriptor.identifier,
                    file_location=file_location,
                    is_a3=descriptor.is_a3,
                )
                for _ in range(copies)
            )
            completed_per_group[descriptor.identifier] = 0

        logger.debug(f"Planned {len(units)} unit(s) for {len(completed_per_group)} document(s)")

        return UploadPlan(
            units=tuple(units),
            total_count=len(units),
            completed_per_group=completed_per_group,
        )
