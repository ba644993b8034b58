from __future__ import annotations

from pathlib import Path
from typing import List, Protocol

from models.contact import RawContact, SourceName


class ContactSource(Protocol):
    """Turns a source export into RawContacts, in the order the source lists them."""

    source_name: SourceName

    def load(self, path: str) -> List[RawContact]:
        ...


def read_text(path: str) -> str:
    # utf-8-sig tolerates the BOM that spreadsheet exports often carry
    return Path(path).read_text(encoding="utf-8-sig")
