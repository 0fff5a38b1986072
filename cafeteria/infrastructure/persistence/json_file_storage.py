"""File-backed key-value storage."""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Union

from cafeteria.domain.exceptions import BackendUnavailable
from cafeteria.domain.interfaces.key_value_storage import IKeyValueStorage


class JsonFileStorage(IKeyValueStorage):
    """
    Key-value storage kept in a single JSON file of ``{key: string}``.

    Every write rewrites the file through a temporary file and ``os.replace``
    so readers never observe a half-written file. There is no locking between
    processes.
    """

    def __init__(self, path: Union[str, Path]):
        """
        Initialize the storage.

        Args:
            path: Location of the JSON file (created on first write)
        """
        self.path = Path(path)
        self._logger = logging.getLogger(__name__)

    def _read_all(self) -> Dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise BackendUnavailable(f"Cannot read {self.path}: {e}") from e

        try:
            data = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError:
            self._logger.warning(f"Storage file {self.path} is not valid JSON, treating as empty")
            return {}
        if not isinstance(data, dict):
            self._logger.warning(f"Storage file {self.path} does not hold an object, treating as empty")
            return {}
        return {str(key): value for key, value in data.items() if isinstance(value, str)}

    def _write_all(self, data: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            self._logger.error(f"Failed to write storage file {self.path}: {e}")
            raise BackendUnavailable(f"Cannot write {self.path}: {e}") from e

    def get_item(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def remove_item(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)
