# rollout_ready/services/file_storage.py
import os
import uuid
from pathlib import Path
from typing import Iterable, Optional
import logging

from sqlalchemy.orm import Session

from rollout_ready.config.security import SecurityConfig
from rollout_ready.exceptions import ValidationError
from rollout_ready.models.task import TaskAttachment

logger = logging.getLogger(__name__)


class FileStorageService:
    """Local-disk storage for task attachment bytes.

    Files live under ``<upload_dir>/tasks/<task_id>/<uuid><ext>``. The generated
    name is the handle kept in ``TaskAttachment.filename``; the user-supplied
    name is only metadata.
    """

    def __init__(
        self,
        upload_dir: str = None,
        max_file_size: int = None,
        allowed_mime_types: Iterable[str] = None,
    ):
        self.upload_dir = Path(upload_dir or SecurityConfig.STORAGE['upload_dir'])
        self.max_file_size = max_file_size or SecurityConfig.FILE_UPLOAD['max_file_size']
        self.allowed_mime_types = {
            m.lower() for m in (allowed_mime_types or SecurityConfig.get_allowed_mime_types())
        }

    @property
    def tasks_dir(self) -> Path:
        return self.upload_dir / "tasks"

    def validate_file(self, original_filename: str, mime_type: str, file_size: int) -> None:
        """
        Check size and type before anything touches the disk

        Raises:
            ValidationError: on a missing name, oversize file or unsupported type
        """
        if not original_filename:
            raise ValidationError("File must have a filename")

        if file_size > self.max_file_size:
            raise ValidationError(
                f"File size exceeds {self.max_file_size / (1024 * 1024):.0f}MB limit"
            )

        if not mime_type or mime_type.lower() not in self.allowed_mime_types:
            raise ValidationError(f"File type '{mime_type or 'unknown'}' is not supported")

    def generate_unique_filename(self, original_filename: str) -> str:
        """
        Generate a unique filename to prevent conflicts

        Args:
            original_filename: Original filename

        Returns:
            Unique filename with UUID prefix
        """
        file_ext = Path(original_filename).suffix.lower()
        return f"{uuid.uuid4().hex}{file_ext}"

    def save_bytes(self, task_id: int, original_filename: str, content: bytes) -> str:
        """
        Store ``content`` for a task and return the generated filename

        Args:
            task_id: ID of the task this file belongs to
            original_filename: Name supplied by the uploader
            content: File bytes, already validated

        Returns:
            The stored filename (handle)
        """
        unique_filename = self.generate_unique_filename(original_filename)

        task_dir = self.tasks_dir / str(task_id)
        task_dir.mkdir(parents=True, exist_ok=True)

        file_path = task_dir / unique_filename
        with open(file_path, "wb") as buffer:
            buffer.write(content)

        logger.info(f"File saved: {file_path} ({len(content)} bytes)")
        return unique_filename

    def get_file_path(self, task_id: int, filename: str) -> Optional[str]:
        """
        Get the full path to a stored file

        Returns:
            Full path to the file if it exists, None otherwise
        """
        file_path = self.tasks_dir / str(task_id) / filename
        return str(file_path) if file_path.is_file() else None

    def delete_file(self, task_id: int, filename: str) -> bool:
        """
        Delete a stored file

        Returns:
            True if a file was removed, False if it was already gone
        """
        file_path = self.tasks_dir / str(task_id) / filename
        if not file_path.exists():
            logger.warning(f"File not found for deletion: {file_path}")
            return False

        file_path.unlink()
        logger.info(f"File deleted: {file_path}")

        # Drop the per-task directory once it's empty
        try:
            file_path.parent.rmdir()
        except OSError:
            pass
        return True

    def cleanup_orphaned_files(self, db: Session) -> int:
        """
        Remove stored files that no attachment row references

        Metadata is authoritative: a file written before a failed metadata
        commit is reclaimed here.

        Returns:
            Number of files cleaned up
        """
        if not self.tasks_dir.exists():
            return 0

        known = {
            (str(task_id), filename)
            for task_id, filename in db.query(TaskAttachment.task_id, TaskAttachment.filename).all()
        }

        deleted_count = 0
        for task_dir in self.tasks_dir.iterdir():
            if not task_dir.is_dir():
                continue
            for file_path in task_dir.iterdir():
                if file_path.is_file() and (task_dir.name, file_path.name) not in known:
                    file_path.unlink()
                    deleted_count += 1
            if not any(task_dir.iterdir()):
                os.rmdir(task_dir)

        if deleted_count:
            logger.info(f"Cleaned up {deleted_count} orphaned files")
        return deleted_count

    def get_storage_stats(self) -> dict:
        """File count and size under the upload root, reported by /health"""
        sizes = [p.stat().st_size for p in self.tasks_dir.glob("*/*") if p.is_file()]
        return {
            "attachment_files": len(sizes),
            "attachment_bytes": sum(sizes),
        }


# Global instance
file_storage = FileStorageService()


def get_file_storage() -> FileStorageService:
    """Dependency hook so tests can swap in a temporary storage root"""
    return file_storage
