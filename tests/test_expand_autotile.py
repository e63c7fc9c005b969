import io
import json
import sys
import xml.etree.ElementTree as ET

import numpy as np
import pytest
from PIL import Image

import expand_autotile
from rmxp_autotile import compose


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(sys, "stdin", io.StringIO(""))
    return tmp_path


def write_sheet(path, tile_w=32, tile_h=32, seed=0):
    rng = np.random.default_rng(seed)
    arr = rng.integers(0, 256, size=(tile_h * 4, tile_w * 3, 4), dtype=np.uint8)
    Image.fromarray(arr).save(path)
    return arr


def test_expand_writes_png_and_tsx(workdir, capsys):
    arr = write_sheet(workdir / "grass.png")
    expand_autotile.main(["grass.png", "--tile-size", "32x32", "--tileset", "grass.tsx", "--transparent-color", "#ff00ff"])

    out_png = workdir / "grass_expanded.png"
    with Image.open(out_png) as img:
        assert img.size == (256, 192)
        np.testing.assert_array_equal(np.asarray(img), compose(arr, 32, 32))

    root = ET.fromstring((workdir / "grass.tsx").read_text(encoding="utf-8").split("\n", 1)[1])
    assert root.get("name") == "grass"
    assert root.find("image").get("source") == "grass_expanded.png"
    assert root.find("image").get("trans") == "ff00ff"

    assert (workdir / "gen" / "analysis" / "autotiles" / "grass.sym").exists()
    debug = json.loads((workdir / "gen" / "analysis" / "autotiles" / "grass.json").read_text(encoding="utf-8"))
    assert debug["tile_count"] == 48
    assert debug["tiles"][0]["case"] == [26, 27, 32, 33]

    out = capsys.readouterr().out
    assert "Wrote" in out and "grass_expanded.png" in out


def test_expand_json_tileset_and_custom_output(workdir):
    write_sheet(workdir / "water.png", 16, 16)
    expand_autotile.main(
        ["water.png", "--tile-size", "16x16", "-o", "out/sea.png", "--tileset", "out/sea.tsj",
         "--name", "sea", "--sym", "", "--json", ""]
    )
    data = json.loads((workdir / "out" / "sea.tsj").read_text(encoding="utf-8"))
    assert data["name"] == "sea"
    assert data["image"] == "sea.png"
    assert data["tilewidth"] == 16
    assert data["imagewidth"] == 128
    assert not (workdir / "gen").exists()


def test_unknown_tileset_extension_falls_back_to_tsx(workdir, capsys):
    write_sheet(workdir / "grass.png")
    expand_autotile.main(["grass.png", "--tileset", "grass.tileset", "--sym", "", "--json", ""])
    text = (workdir / "grass.tileset").read_text(encoding="utf-8")
    assert "<tileset" in text
    assert "saving in TSX format" in capsys.readouterr().err


def test_odd_tile_size_exits_with_error(workdir, capsys):
    write_sheet(workdir / "grass.png")
    with pytest.raises(SystemExit) as exc:
        expand_autotile.main(["grass.png", "--tile-width", "31", "--no-prefs"])
    assert exc.value.code == 1
    err = capsys.readouterr().err
    assert "grass.png:1:1: error:" in err
    assert "even tile size" in err
    assert not (workdir / "grass_expanded.png").exists()


def test_size_mismatch_exits_with_error(workdir, capsys):
    Image.new("RGBA", (95, 128)).save(workdir / "bad.png")
    with pytest.raises(SystemExit) as exc:
        expand_autotile.main(["bad.png", "--tile-size", "32x32", "--no-prefs"])
    assert exc.value.code == 1
    err = capsys.readouterr().err
    assert "96x128" in err and "95x128" in err
    assert not (workdir / "bad_expanded.png").exists()


def test_missing_source_exits_with_error(workdir, capsys):
    with pytest.raises(SystemExit) as exc:
        expand_autotile.main(["nothing.png", "--no-prefs"])
    assert exc.value.code == 1
    assert "Non-existent file" in capsys.readouterr().err


def test_unreadable_source_exits_with_error(workdir, capsys):
    (workdir / "junk.png").write_bytes(b"junk")
    with pytest.raises(SystemExit):
        expand_autotile.main(["junk.png", "--no-prefs"])
    assert "Cannot read source image" in capsys.readouterr().err


def test_existing_output_needs_force(workdir, capsys):
    write_sheet(workdir / "grass.png")
    (workdir / "grass_expanded.png").write_bytes(b"old")
    with pytest.raises(SystemExit):
        expand_autotile.main(["grass.png", "--no-prefs", "--sym", "", "--json", ""])
    assert "already exists" in capsys.readouterr().err
    assert (workdir / "grass_expanded.png").read_bytes() == b"old"

    expand_autotile.main(["grass.png", "--no-prefs", "--sym", "", "--json", "", "--force"])
    with Image.open(workdir / "grass_expanded.png") as img:
        assert img.size == (256, 192)


def test_preferences_are_remembered(workdir):
    write_sheet(workdir / "small.png", 16, 16)
    expand_autotile.main(["small.png", "--tile-size", "16x16", "--transparent-color", "magenta", "--sym", "", "--json", ""])
    prefs = json.loads((workdir / "build" / ".autotile_prefs.json").read_text(encoding="utf-8"))
    assert prefs["tile_w"] == 16
    assert prefs["use_transparent_color"] is True
    assert prefs["transparent_color"] == "#ff00ff"

    # second run picks up 16x16 and the color without flags
    expand_autotile.main(["small.png", "--tileset", "small.tsj", "--force", "--sym", "", "--json", ""])
    data = json.loads((workdir / "small.tsj").read_text(encoding="utf-8"))
    assert data["tilewidth"] == 16
    assert data["transparentcolor"] == "#ff00ff"


def test_confirm_overwrite_prompts_on_tty(tmp_path, monkeypatch):
    target = tmp_path / "x.png"
    target.write_bytes(b"x")

    class Tty(io.StringIO):
        def isatty(self):
            return True

    monkeypatch.setattr(sys, "stdin", Tty("y\n"))
    assert expand_autotile.confirm_overwrite(target, force=False)
    monkeypatch.setattr(sys, "stdin", Tty("n\n"))
    assert not expand_autotile.confirm_overwrite(target, force=False)
    assert expand_autotile.confirm_overwrite(tmp_path / "new.png", force=False)


def test_expand_cmyk_jpeg(workdir):
    Image.new("CMYK", (96, 128), (0, 255, 255, 0)).save(workdir / "grass.jpg")
    expand_autotile.main(["grass.jpg", "--no-prefs", "--sym", "", "--json", ""])
    with Image.open(workdir / "grass_expanded.png") as img:
        assert img.size == (256, 192)
        assert img.mode == "RGB"


@pytest.mark.parametrize("flag", ["--tile-width", "--tile-height"])
def test_zero_tile_dimension_exits_with_error(workdir, capsys, flag):
    write_sheet(workdir / "grass.png")
    with pytest.raises(SystemExit) as exc:
        expand_autotile.main(["grass.png", flag, "0", "--no-prefs"])
    assert exc.value.code == 1
    assert "grass.png:1:1: error:" in capsys.readouterr().err
    assert not (workdir / "grass_expanded.png").exists()
