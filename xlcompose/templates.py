"""File-backed storage for workbook templates."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, List, Sequence, Union

from openpyxl import Workbook, load_workbook

from .config import TemplateConfig
from .errors import TemplateNotFoundError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class TemplateInfo:
    """Metadata describing a stored template file."""

    filename: str
    size: int
    modified: datetime

    def to_dict(self) -> dict:
        return {
            "filename": self.filename,
            "size": self.size,
            "modified": self.modified.isoformat(),
        }


class TemplateStore:
    """Read, list, save and delete templates inside a single directory.

    Template names are plain file names; anything that would escape the
    directory is rejected.
    """

    def __init__(
        self,
        directory: Union[str, Path],
        max_upload_bytes: int = 10 * 1024 * 1024,
        allowed_extensions: Sequence[str] = (".xlsx", ".xls"),
    ) -> None:
        self.directory = Path(directory).expanduser()
        self.max_upload_bytes = max_upload_bytes
        self.allowed_extensions = tuple(ext.lower() for ext in allowed_extensions)

    @classmethod
    def from_config(cls, config: TemplateConfig) -> "TemplateStore":
        return cls(
            config.directory,
            max_upload_bytes=config.max_upload_bytes,
            allowed_extensions=config.allowed_extensions,
        )

    # ------------ Path helpers ------------
    def path_for(self, name: str) -> Path:
        if not name or not name.strip():
            raise ValidationError("Template filename is required")
        candidate = Path(name)
        if candidate.name != name or name in {".", ".."} or "\\" in name:
            raise ValidationError(f"Template name '{name}' must be a plain file name")
        return self.directory / candidate.name

    def _check_extension(self, name: str) -> None:
        if Path(name).suffix.lower() not in self.allowed_extensions:
            allowed = ", ".join(self.allowed_extensions)
            raise ValidationError(f"Only {allowed} template files are allowed")

    # ------------ Reading ------------
    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def read_bytes(self, name: str) -> bytes:
        path = self.path_for(name)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise TemplateNotFoundError(f"Template not found: {name}") from None

    def load(self, name: str) -> Workbook:
        """Load template ``name`` fully into memory as an openpyxl workbook."""

        payload = self.read_bytes(name)
        try:
            workbook = load_workbook(io.BytesIO(payload))
        except Exception as exc:
            raise TemplateNotFoundError(f"Template loading failed for {name}: {exc}") from exc
        logger.info("Template loaded: %s", name)
        return workbook

    def list(self) -> List[TemplateInfo]:
        if not self.directory.exists():
            return []
        templates: List[TemplateInfo] = []
        for path in sorted(self.directory.iterdir()):
            if not path.is_file() or path.suffix.lower() not in self.allowed_extensions:
                continue
            stats = path.stat()
            templates.append(
                TemplateInfo(
                    filename=path.name,
                    size=stats.st_size,
                    modified=datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc),
                )
            )
        logger.info("Listed %d templates", len(templates))
        return templates

    # ------------ Writing ------------
    def save(self, name: str, payload: Union[bytes, BinaryIO], overwrite: bool = True) -> TemplateInfo:
        path = self.path_for(name)
        self._check_extension(name)
        data = payload if isinstance(payload, bytes) else payload.read()
        if len(data) > self.max_upload_bytes:
            raise ValidationError(
                f"Template is {len(data)} bytes; the limit is {self.max_upload_bytes} bytes"
            )
        if not overwrite and self.exists(name):
            raise ValidationError(f"Template {name} already exists")
        self.directory.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info("Template uploaded: %s", name)
        stats = path.stat()
        return TemplateInfo(
            filename=path.name,
            size=stats.st_size,
            modified=datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc),
        )

    def delete(self, name: str) -> None:
        path = self.path_for(name)
        try:
            path.unlink()
        except FileNotFoundError:
            raise TemplateNotFoundError(f"Template not found: {name}") from None
        logger.info("Template deleted: %s", name)


__all__ = ["TemplateInfo", "TemplateStore"]
