"""
Unit tests for the shared file queue and message board.
"""

import pytest

from conftest import make_file
from smolr.conversion.messages import MessageBoard
from smolr.conversion.models import FileItem
from smolr.conversion.queue import FileQueue


class TestFileQueue:
    def test_directory_is_enumerated_recursively(self, images_dir):
        make_file(images_dir / "b.png")
        make_file(images_dir / "nested" / "a.JPG")
        make_file(images_dir / "readme.txt")
        make_file(images_dir / ".hidden.png")
        make_file(images_dir / ".cache" / "c.png")

        queue = FileQueue()
        added = queue.add_path(images_dir)

        assert [i.name for i in added] == ["b.png", "a.JPG"]
        assert len(queue) == 2

    def test_single_file_keeps_non_images(self, images_dir):
        queue = FileQueue()
        [item] = queue.add_path(make_file(images_dir / "notes.txt"))
        assert not item.is_image
        assert item.id in queue

    def test_missing_path_is_ignored(self, tmp_path):
        queue = FileQueue()
        assert queue.add_path(tmp_path / "nope.png") == []

    def test_remove_and_order(self, images_dir):
        queue = FileQueue()
        items = queue.add_paths([make_file(images_dir / f"{n}.png") for n in "xyz"])
        removed = queue.remove(items[1].id)
        assert removed is items[1]
        assert queue.ids() == [items[0].id, items[2].id]
        assert items[1] not in queue
        assert queue.remove(items[1].id) is None

    def test_same_item_appended_once(self, images_dir):
        queue = FileQueue()
        item = FileItem(make_file(images_dir / "a.png"))
        queue.append(item)
        queue.append(item)
        assert len(queue) == 1

    def test_same_path_twice_is_two_items(self, images_dir):
        queue = FileQueue()
        path = make_file(images_dir / "a.png")
        queue.add_paths([path, path])
        assert len(queue) == 2

    def test_clear(self, images_dir):
        queue = FileQueue()
        queue.add_path(make_file(images_dir / "a.png"))
        queue.clear()
        assert queue.items() == []


class TestMessageBoard:
    def test_warnings_deduplicated(self):
        board = MessageBoard()
        board.add_warning("Some files will be overwritten")
        board.add_warning("Some files will be overwritten")
        board.add_warning("Low disk space (0.4GB free)")
        assert board.warnings == ["Some files will be overwritten", "Low disk space (0.4GB free)"]

    def test_errors_keep_duplicates(self):
        board = MessageBoard()
        board.add_error("Failed to convert a.png")
        board.add_error("Failed to convert a.png")
        assert len(board.errors) == 2

    def test_dismiss(self):
        board = MessageBoard()
        board.add_warning("one")
        board.add_warning("two")
        assert board.dismiss_warning(0) == "one"
        assert board.warnings == ["two"]
        with pytest.raises(IndexError):
            board.dismiss_warning(5)
        with pytest.raises(IndexError):
            board.dismiss_error(-1)

    def test_remove_warnings_by_predicate(self):
        board = MessageBoard()
        board.add_warning("Some files will be overwritten")
        board.add_warning("Low disk space (0.1GB free)")
        board.remove_warnings(lambda w: "overwritten" in w)
        assert board.warnings == ["Low disk space (0.1GB free)"]
