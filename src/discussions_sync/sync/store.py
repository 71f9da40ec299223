"""Filesystem store for markdown articles under the articles root.

Paths handed in and out of the store are POSIX paths relative to the
root (``"2024/hello.md"``).  Discovery is recursive over ``*.md`` files;
paths matching any exclude glob are skipped, as is the folder note
(``<root>/<root name>.md``) when ``skip_folder_note`` is enabled.
"""

from __future__ import annotations

import fnmatch
import logging
from pathlib import Path, PurePosixPath

from discussions_sync.errors import MalformedDocument
from discussions_sync.file_handler import read_file_with_encoding, write_file
from discussions_sync.sync.models import LocalDocument

logger = logging.getLogger(__name__)


class LocalStore:
    """Read and write articles below *root*.

    Args:
        root: Articles directory.
        skip_folder_note: Ignore ``<root>/<root name>.md``.
        exclude: Glob patterns, matched against root-relative paths.
    """

    def __init__(
        self,
        root: Path,
        skip_folder_note: bool = False,
        exclude: list[str] | tuple[str, ...] = (),
    ) -> None:
        self.root = Path(root)
        self.skip_folder_note = skip_folder_note
        self.exclude = list(exclude)

    def exists(self) -> bool:
        return self.root.is_dir()

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def _is_excluded(self, rel: str) -> bool:
        if self.skip_folder_note and rel == f"{self.root.name}.md":
            return True
        return any(fnmatch.fnmatch(rel, pattern) for pattern in self.exclude)

    def list_paths(self, include_excluded: bool = False) -> list[str]:
        """Return sorted root-relative paths of all candidate articles.

        With *include_excluded*, every ``*.md`` file under the root is listed.
        """
        if not self.exists():
            return []
        result: list[str] = []
        for path in self.root.rglob("*.md"):
            if not path.is_file():
                continue
            rel = path.relative_to(self.root).as_posix()
            if not include_excluded and self._is_excluded(rel):
                logger.debug("Excluded %s", rel)
                continue
            result.append(rel)
        return sorted(result)

    def list_documents(self) -> list[tuple[str, str]]:
        """Return ``(path, raw_text)`` for every candidate article."""
        return [(rel, self.read(rel)) for rel in self.list_paths()]

    def load_documents(self) -> tuple[list[LocalDocument], list[str]]:
        """Parse every article.

        Malformed documents are skipped and reported in the warnings list.

        Returns:
            ``(documents, warnings)``
        """
        documents: list[LocalDocument] = []
        warnings: list[str] = []
        for rel, text in self.list_documents():
            try:
                documents.append(LocalDocument.from_text(rel, text))
            except MalformedDocument as exc:
                logger.warning("Skipping %s", exc)
                warnings.append(f"skipped {exc}")
        return documents, warnings

    # ------------------------------------------------------------------
    # Read / write
    # ------------------------------------------------------------------

    def resolve(self, rel: str) -> Path:
        """Absolute path for *rel*, refusing paths that escape the root."""
        pure = PurePosixPath(rel)
        if pure.is_absolute() or ".." in pure.parts:
            raise ValueError(f"Path escapes the articles root: {rel}")
        return self.root.joinpath(*pure.parts)

    def read(self, rel: str) -> str:
        content, _ = read_file_with_encoding(self.resolve(rel))
        return content

    def write(self, rel: str, text: str) -> None:
        """Overwrite an existing article."""
        write_file(self.resolve(rel), text)
        logger.debug("Wrote %s", rel)

    def create(self, rel: str, text: str) -> None:
        """Create a new article.

        Raises:
            FileExistsError: If a file already exists at *rel*.
        """
        target = self.resolve(rel)
        if target.exists():
            raise FileExistsError(f"File already exists: {rel}")
        write_file(target, text)
        logger.info("Created %s", rel)
