from pathlib import Path

from ffq.utils.paths import build_argv, find_media_files, output_path_for, safe_name, unique_file


def test_build_argv():
    argv = build_argv(Path("/in/a b.mov"), Path("/out/a b.mp4"),
                      {"overwrite": True, "extra_args": "-c:v libx264 -crf 23 -metadata title='My Clip'"})
    assert argv == ["-hide_banner", "-y", "-i", "/in/a b.mov",
                    "-c:v", "libx264", "-crf", "23", "-metadata", "title=My Clip", "/out/a b.mp4"]


def test_build_argv_without_overwrite():
    argv = build_argv(Path("in.wav"), Path("out.flac"), {"overwrite": False, "extra_args": ""})
    assert argv == ["-hide_banner", "-i", "in.wav", "out.flac"]


def test_output_path_for_is_unique(tmp_path):
    src = tmp_path / "src" / "clip.mov"
    src.parent.mkdir()
    src.touch()
    out_root = tmp_path / "out"
    out_root.mkdir()
    (out_root / "clip.mp4").touch()
    settings = {"output_root": str(out_root), "output_extension": "mp4"}

    first = output_path_for(src, settings)
    second = output_path_for(src, settings, {str(first)})

    assert first == out_root / "clip_001.mp4"
    assert second == out_root / "clip_002.mp4"


def test_output_path_never_overwrites_input(tmp_path):
    src = tmp_path / "clip.mp4"
    src.touch()
    out = output_path_for(src, {"output_root": str(tmp_path), "output_extension": ".mp4"})
    assert out == tmp_path / "clip_out.mp4"


def test_unique_file_free_path(tmp_path):
    assert unique_file(tmp_path / "x.mkv") == tmp_path / "x.mkv"


def test_find_media_files(tmp_path):
    (tmp_path / "a.MKV").touch()
    (tmp_path / "notes.txt").touch()
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "b.mp3").touch()
    assert find_media_files(tmp_path) == [tmp_path / "a.MKV", tmp_path / "sub" / "b.mp3"]
    assert find_media_files(tmp_path / "notes.txt") == []


def test_safe_name():
    assert safe_name('a:b*c?"d') == "a b c d"
    assert safe_name("///") == "Unnamed"
