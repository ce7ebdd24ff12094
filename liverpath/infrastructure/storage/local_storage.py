import os
import uuid

from ...core.config import settings
from ...application.ports.storage_repo import StorageRepository


class LocalStorageRepository(StorageRepository):
    """Saves slide images under UPLOAD_DIR and returns the relative path."""

    def __init__(self, upload_dir: str = None) -> None:
        self.upload_dir = upload_dir or settings.UPLOAD_DIR

    def save_bytes(self, subdir: str, filename: str, data: bytes) -> str:
        unique = f"{uuid.uuid4().hex}_{os.path.basename(filename)}"
        dest_dir = os.path.join(self.upload_dir, subdir) if subdir else self.upload_dir
        os.makedirs(dest_dir, exist_ok=True)
        path = os.path.join(dest_dir, unique)
        with open(path, "wb") as f:
            f.write(data)
        return path
