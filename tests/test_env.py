from pathlib import Path

from lovestory.core.env import get_home, resolve_home_path


def test_home_env_var_anchors_relative_storage_dir(monkeypatch, tmp_path):
    monkeypatch.setenv("LOVESTORY_HOME", str(tmp_path))
    assert get_home() == tmp_path.resolve()
    assert resolve_home_path(".data/lovestory") == tmp_path.resolve() / ".data" / "lovestory"


def test_home_is_nearest_ancestor_with_a_marker(monkeypatch, tmp_path):
    monkeypatch.delenv("LOVESTORY_HOME", raising=False)
    (tmp_path / "pyproject.toml").write_text("[project]\nname = 'x'\n", encoding="utf-8")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    monkeypatch.chdir(nested)
    assert get_home() == tmp_path.resolve()


def test_absolute_paths_are_left_alone(tmp_path):
    target = tmp_path / "store"
    assert resolve_home_path(target) == target
    assert resolve_home_path(str(target)) == Path(target)
