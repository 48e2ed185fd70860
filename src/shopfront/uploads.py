"""Product image storage.

Images land in ``AppConfig.upload_dir`` under generated names
(``product_<hex>.<ext>``) so concurrent uploads never collide. The
database stores the bare filename only.
"""

import logging
import secrets
from pathlib import Path, PurePath

import anyio

from shopfront.config import AppConfig
from shopfront.errors import ValidationFailed
from shopfront.http.forms import UploadFile
from shopfront.validation import Validator

logger = logging.getLogger("shopfront.uploads")


class UploadStore:
    """Validate, save, and delete uploaded product images.

    Usage::

        store = UploadStore(config)
        filename = await store.save_image(form.files["image"])
        await store.delete(old_filename)
    """

    __slots__ = ("_config", "directory")

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self.directory = Path(config.upload_dir)

    def validator(self) -> Validator:
        return Validator(
            max_file_size=self._config.max_file_size,
            allowed_extensions=self._config.allowed_extensions,
            allowed_mime_types=self._config.allowed_mime_types,
        )

    def generate_name(self, original: str, prefix: str = "product") -> str:
        extension = PurePath(original).suffix.lstrip(".").lower()
        return f"{prefix}_{secrets.token_hex(8)}.{extension}"

    async def save_image(self, upload: UploadFile, prefix: str = "product") -> str:
        """Validate and write *upload*; return the stored filename.

        Raises:
            ValidationFailed: If the file is too large, has a disallowed
                extension, or its content is not an accepted image type.
        """
        check = self.validator()
        if not check.validate_file_upload(upload):
            raise ValidationFailed({"image": check.get_errors()})

        name = self.generate_name(upload.filename, prefix)
        target = self.directory / name
        content = await upload.read()

        def _write() -> None:
            self.directory.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)

        await anyio.to_thread.run_sync(_write)
        logger.info("Stored upload %s (%d bytes)", name, upload.size)
        return name

    def path_for(self, filename: str) -> Path | None:
        """Resolve a stored filename, refusing anything outside the directory."""
        if not filename or PurePath(filename).name != filename:
            return None
        return self.directory / filename

    async def delete(self, filename: str | None) -> bool:
        """Remove a stored file. Missing files are not an error."""
        if not filename:
            return False
        path = self.path_for(filename)
        if path is None:
            logger.warning("Refusing to delete suspicious upload name %r", filename)
            return False

        def _unlink() -> bool:
            try:
                path.unlink()
            except FileNotFoundError:
                return False
            return True

        removed = await anyio.to_thread.run_sync(_unlink)
        if removed:
            logger.info("Deleted upload %s", filename)
        return removed
