import json

from market_dashboard.storage import LocalStorage


def test_missing_file_reads_as_empty(tmp_path):
  storage = LocalStorage(tmp_path / "nested" / "storage.json")
  assert storage.get_item("anything") is None


def test_set_get_remove(tmp_path):
  storage = LocalStorage(tmp_path / "nested" / "storage.json")
  storage.set_item("a", "1")
  storage.set_item("b", "2")

  assert storage.get_item("a") == "1"
  assert json.loads(storage.path.read_text()) == {"a": "1", "b": "2"}

  storage.remove_item("a")
  assert storage.get_item("a") is None
  assert storage.get_item("b") == "2"


def test_non_object_file_is_ignored_and_overwritten(tmp_path):
  path = tmp_path / "storage.json"
  path.write_text("[1, 2, 3]")
  storage = LocalStorage(path)

  assert storage.get_item("a") is None
  storage.set_item("a", "x")
  assert json.loads(path.read_text()) == {"a": "x"}


def test_no_temp_files_left_behind(tmp_path):
  storage = LocalStorage(tmp_path / "storage.json")
  storage.set_item("a", "1")
  assert [p.name for p in tmp_path.iterdir()] == ["storage.json"]
