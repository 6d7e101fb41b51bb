import os

from worker.app.services.discovery import discover_tree, is_eligible_name, list_eligible


def test_is_eligible_name_extensions_case_insensitive():
    for name in ("a.png", "b.JPG", "c.jpeg", "d.WebP", "e.avif"):
        assert is_eligible_name(name)
    for name in ("a.gif", "notes.txt", "png", ".tinycrush.log"):
        assert not is_eligible_name(name)


def test_is_eligible_name_excludes_artifacts():
    assert not is_eligible_name("a.png.bak")
    assert not is_eligible_name("a.png.BAK")
    assert not is_eligible_name(".a.png.x1y2.tmp")
    assert not is_eligible_name("a.png.orig", backup_suffix=".orig")
    assert is_eligible_name("a.png.bak.png")


def test_list_eligible_is_non_recursive(tmp_path, image_factory):
    image_factory(tmp_path / "a.png", "a")
    image_factory(tmp_path / "B.JPEG", "b")
    image_factory(tmp_path / "a.png.bak", "old")
    image_factory(tmp_path / "sub" / "c.webp", "c")
    (tmp_path / "readme.md").write_text("hi")
    (tmp_path / "dir.png").mkdir()

    assert list_eligible(tmp_path) == {"a.png", "B.JPEG"}


def test_list_eligible_skips_names_with_tabs(tmp_path, image_factory):
    image_factory(tmp_path / "ok.png", "ok")
    image_factory(tmp_path / "bad\tname.png", "bad")
    assert list_eligible(tmp_path) == {"ok.png"}


def test_discover_tree_groups_by_directory_in_order(tmp_path, image_factory):
    image_factory(tmp_path / "z.png", "z")
    image_factory(tmp_path / "a.png", "a")
    image_factory(tmp_path / "b" / "x.jpg", "x")
    image_factory(tmp_path / "a-dir" / "y.avif", "y")
    (tmp_path / "empty").mkdir()
    (tmp_path / "textonly").mkdir()
    (tmp_path / "textonly" / "notes.txt").write_text("n")

    groups = discover_tree(tmp_path)
    dirs = [d for d, _ in groups]
    assert dirs == [tmp_path, tmp_path / "a-dir", tmp_path / "b"]
    assert groups[0][1] == ["a.png", "z.png"]
    assert dirs == sorted(dirs, key=str)


def test_discover_tree_does_not_follow_symlinked_dirs(tmp_path, image_factory):
    image_factory(tmp_path / "real" / "a.png", "a")
    try:
        os.symlink(tmp_path / "real", tmp_path / "link", target_is_directory=True)
    except (OSError, NotImplementedError):
        return
    groups = discover_tree(tmp_path)
    assert [d.name for d, _ in groups] == ["real"]


def test_discover_tree_keeps_directories_with_only_a_log(tmp_path, image_factory):
    image_factory(tmp_path / "a.png", "a")
    (tmp_path / "D").mkdir()
    (tmp_path / "D" / ".tinycrush.log").write_text("f" * 64 + "\tb.png\n")

    groups = discover_tree(tmp_path, log_name=".tinycrush.log")
    assert groups == [(tmp_path, ["a.png"]), (tmp_path / "D", [])]

    # without a log name such directories are not visited
    assert [d for d, _ in discover_tree(tmp_path)] == [tmp_path]
