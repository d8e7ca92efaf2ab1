from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path


class LocalStorage:
  """A small persistent key/value store of strings backed by one JSON file.

  Mirrors the browser's `localStorage`: values are opaque strings, every
  `set_item` rewrites the whole file, and an unreadable file is treated as
  empty rather than failing startup.
  """

  def __init__(self, path: Path | str):
    self.path = Path(path).expanduser()

  def _read_all(self) -> dict[str, str]:
    try:
      raw = self.path.read_text(encoding="utf-8")
    except FileNotFoundError:
      return {}
    except OSError as e:
      logging.error(f"Could not read local storage at {self.path}: {e}")
      return {}

    try:
      data = json.loads(raw)
    except json.JSONDecodeError as e:
      logging.error(f"Local storage at {self.path} is not valid JSON, ignoring it: {e}")
      return {}

    if not isinstance(data, dict):
      logging.error(f"Local storage at {self.path} is not a JSON object, ignoring it.")
      return {}
    return {k: v for k, v in data.items() if isinstance(v, str)}

  def _write_all(self, data: dict[str, str]) -> None:
    self.path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
    try:
      with os.fdopen(fd, "w", encoding="utf-8") as fh:
        json.dump(data, fh, indent=2)
      os.replace(tmp_name, self.path)
    except BaseException:
      Path(tmp_name).unlink(missing_ok=True)
      raise

  def get_item(self, key: str) -> str | None:
    return self._read_all().get(key)

  def set_item(self, key: str, value: str) -> None:
    data = self._read_all()
    data[key] = value
    self._write_all(data)

  def remove_item(self, key: str) -> None:
    data = self._read_all()
    if data.pop(key, None) is not None:
      self._write_all(data)
