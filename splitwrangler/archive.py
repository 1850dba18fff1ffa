"""Packaging of split outputs into a single ZIP archive."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Sequence
from zipfile import ZIP_DEFLATED, BadZipFile, ZipFile

from .exceptions import ArchivePackagingError
from .types import OutputArtifact
from .utils import get_logger

LOGGER = get_logger("splitwrangler.archive")


def unique_names(names: Iterable[str]) -> List[str]:
    """Return ``names`` with collisions renamed ``name_2.pdf``, ``name_3.pdf``, ...

    Renaming is deterministic: the first occurrence keeps its name and later
    ones take the next free suffix.
    """

    taken: set[str] = set()
    result: List[str] = []
    for name in names:
        candidate = name
        if candidate in taken:
            path = Path(name)
            counter = 2
            while candidate in taken:
                candidate = f"{path.stem}_{counter}{path.suffix}"
                counter += 1
        taken.add(candidate)
        result.append(candidate)
    return result


def package(artifacts: Sequence[OutputArtifact], destination: Path) -> Path:
    """Create a zip archive containing ``artifacts`` at ``destination``.

    Entries follow artifact order and are written one file at a time.
    """

    destination = Path(destination)
    ordered = sorted(artifacts, key=lambda artifact: artifact.sequence_index)
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        with ZipFile(destination, "w", compression=ZIP_DEFLATED) as archive:
            for artifact, arcname in zip(ordered, unique_names(a.file_name for a in ordered)):
                archive.write(artifact.content_handle, arcname=arcname)
    except (OSError, BadZipFile) as exc:
        raise ArchivePackagingError(f"Failed to write archive {destination.name}: {exc}") from exc

    LOGGER.debug("Packaged %d artifacts into %s", len(ordered), destination.name)
    return destination


__all__ = ["package", "unique_names"]
