"""
Attachment storage for row feedback.

Files embedded in rich text live in an "area" keyed by (context, area, owner).
Stored text refers to them through the @@PLUGINFILE@@/ placeholder. While a
question is being edited the files are copied into a draft area and the text
refers to them through a draft URL instead; saving moves them back.

Layout under the root directory:

    drafts/<draft_id>/<filename>
    files/<context_id>/<area>/<owner_id>/<filename>
"""

from __future__ import annotations

import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol
from uuid import uuid4

from loguru import logger

from .errors import AttachmentError

PLUGINFILE_PLACEHOLDER = "@@PLUGINFILE@@/"
FEEDBACK_AREA = "feedback"

# Draft ids are the uuid4().hex values handed out by the store
_DRAFT_ID = re.compile(r"[0-9a-f]{32}")


def draft_url(draft_id: str) -> str:
    """Prefix used for files while they sit in a draft area."""
    return f"draftfile://{draft_id}/"


@dataclass(frozen=True)
class StoredFile:
    """A file attached to some rich text."""
    name: str
    content: bytes


class AttachmentStore(Protocol):
    """Blob store for files embedded in rich text."""

    def prepare_draft_area(self, context_id: int, owner_id: int, text: str, area: str = FEEDBACK_AREA) -> tuple[str, str]:
        """Copy an owner's files into a new draft. Returns (draft_id, rewritten text)."""
        ...

    def persist_draft_as_files(self, draft_id: str | None, context_id: int, owner_id: int, text: str, area: str = FEEDBACK_AREA) -> str:
        """Replace an owner's files with the draft's. Returns the text to store."""
        ...

    def move_files(self, owner_id: int, from_context: int, to_context: int, area: str = FEEDBACK_AREA) -> None:
        ...

    def delete_files(self, context_id: int, owner_id: int, area: str = FEEDBACK_AREA) -> None:
        ...

    def list_files(self, context_id: int, owner_id: int, area: str = FEEDBACK_AREA) -> list[StoredFile]:
        ...

    def create_draft(self, files: list[StoredFile]) -> str | None:
        """Start a draft holding the given files. Returns None when there are none."""
        ...

    def discard_draft(self, draft_id: str | None) -> None:
        """Remove a draft that will never be saved."""
        ...


class FilesystemAttachmentStore:
    """AttachmentStore backed by a directory tree."""

    def __init__(self, root: Path | str):
        self.root = Path(root)

    # ------------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------------

    def _draft_dir(self, draft_id: str) -> Path:
        if not isinstance(draft_id, str) or not _DRAFT_ID.fullmatch(draft_id):
            raise AttachmentError(f"Invalid draft id {draft_id!r}")
        return self.root / "drafts" / draft_id

    def _area_dir(self, context_id: int, area: str, owner_id: int) -> Path:
        return self.root / "files" / str(context_id) / area / str(owner_id)

    @staticmethod
    def _copy_tree(source: Path, target: Path) -> None:
        target.mkdir(parents=True, exist_ok=True)
        for path in source.iterdir():
            if path.is_file():
                shutil.copy2(path, target / path.name)

    # ------------------------------------------------------------------------
    # AttachmentStore
    # ------------------------------------------------------------------------

    def prepare_draft_area(self, context_id: int, owner_id: int, text: str, area: str = FEEDBACK_AREA) -> tuple[str, str]:
        draft_id = uuid4().hex
        draft_dir = self._draft_dir(draft_id)
        draft_dir.mkdir(parents=True, exist_ok=True)
        source = self._area_dir(context_id, area, owner_id)
        if source.exists():
            self._copy_tree(source, draft_dir)
        return draft_id, (text or "").replace(PLUGINFILE_PLACEHOLDER, draft_url(draft_id))

    def persist_draft_as_files(self, draft_id: str | None, context_id: int, owner_id: int, text: str, area: str = FEEDBACK_AREA) -> str:
        text = text or ""
        if not draft_id:
            return text
        draft_dir = self._draft_dir(draft_id)
        target = self._area_dir(context_id, area, owner_id)
        if target.exists():
            shutil.rmtree(target)
        if draft_dir.exists():
            self._copy_tree(draft_dir, target)
            shutil.rmtree(draft_dir)
            logger.debug(f"Saved draft {draft_id} as {area} files of {owner_id} in context {context_id}")
        return text.replace(draft_url(draft_id), PLUGINFILE_PLACEHOLDER)

    def move_files(self, owner_id: int, from_context: int, to_context: int, area: str = FEEDBACK_AREA) -> None:
        source = self._area_dir(from_context, area, owner_id)
        if not source.exists():
            return
        target = self._area_dir(to_context, area, owner_id)
        if target.exists():
            shutil.rmtree(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(source), str(target))

    def delete_files(self, context_id: int, owner_id: int, area: str = FEEDBACK_AREA) -> None:
        target = self._area_dir(context_id, area, owner_id)
        if target.exists():
            shutil.rmtree(target)

    def list_files(self, context_id: int, owner_id: int, area: str = FEEDBACK_AREA) -> list[StoredFile]:
        source = self._area_dir(context_id, area, owner_id)
        if not source.exists():
            return []
        return [
            StoredFile(name=path.name, content=path.read_bytes())
            for path in sorted(source.iterdir())
            if path.is_file()
        ]

    def create_draft(self, files: list[StoredFile]) -> str | None:
        if not files:
            return None
        draft_id = uuid4().hex
        draft_dir = self._draft_dir(draft_id)
        draft_dir.mkdir(parents=True, exist_ok=True)
        for stored in files:
            (draft_dir / Path(stored.name).name).write_bytes(stored.content)
        return draft_id

    def discard_draft(self, draft_id: str | None) -> None:
        if not draft_id:
            return
        draft_dir = self._draft_dir(draft_id)
        if draft_dir.exists():
            shutil.rmtree(draft_dir)
            logger.debug(f"Discarded draft {draft_id}")
