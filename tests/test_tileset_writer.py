import json
import xml.etree.ElementTree as ET

import pytest
from PIL import Image

from rmxp_autotile import OutputWriteFailed, expand_autotile
from tileset_writer import (
    TilesetDescriptor,
    format_for_file,
    render_tsj,
    render_tsx,
    save_expanded_image,
    write_descriptor,
)


def make_expanded(color=None):
    img = Image.new("RGBA", (96, 128), (1, 2, 3, 255))
    return expand_autotile(img, 32, 32, transparent_color=color)


def test_format_for_file():
    assert format_for_file("a/grass.tsx") == "tsx"
    assert format_for_file("grass.XML") == "tsx"
    assert format_for_file("grass.tsj") == "json"
    assert format_for_file("grass.json") == "json"
    assert format_for_file("grass.tmx") is None
    assert format_for_file("grass") is None


def test_descriptor_from_expanded(tmp_path):
    desc = TilesetDescriptor.from_expanded("grass", make_expanded((255, 0, 255)), tmp_path / "grass_expanded.png")
    assert desc.tile_w == 32 and desc.tile_h == 32
    assert (desc.image_w, desc.image_h) == (256, 192)
    assert desc.tile_count == 48
    assert desc.columns == 8
    assert desc.transparent_color == (255, 0, 255)


def test_render_tsx(tmp_path):
    desc = TilesetDescriptor.from_expanded("grass", make_expanded((255, 0, 255)), tmp_path / "img" / "grass_expanded.png")
    text = render_tsx(desc, tmp_path / "grass.tsx")
    assert text.startswith('<?xml version="1.0" encoding="UTF-8"?>')

    root = ET.fromstring(text.split("\n", 1)[1])
    assert root.tag == "tileset"
    assert root.get("name") == "grass"
    assert root.get("tilewidth") == "32"
    assert root.get("tileheight") == "32"
    assert root.get("tilecount") == "48"
    assert root.get("columns") == "8"
    image = root.find("image")
    assert image.get("source") == "img/grass_expanded.png"
    assert image.get("trans") == "ff00ff"
    assert image.get("width") == "256"
    assert image.get("height") == "192"


def test_render_tsx_without_color_and_escaped_name(tmp_path):
    desc = TilesetDescriptor.from_expanded('a&b "c"', make_expanded(), tmp_path / "x.png")
    root = ET.fromstring(render_tsx(desc, tmp_path / "x.tsx").split("\n", 1)[1])
    assert root.get("name") == 'a&b "c"'
    assert root.find("image").get("trans") is None


def test_render_tsj(tmp_path):
    desc = TilesetDescriptor.from_expanded("grass", make_expanded((0, 128, 255)), tmp_path / "grass_expanded.png")
    data = render_tsj(desc, tmp_path / "tilesets" / "grass.tsj")
    assert data["type"] == "tileset"
    assert data["image"] == "../grass_expanded.png"
    assert data["imagewidth"] == 256
    assert data["imageheight"] == 192
    assert data["tilecount"] == 48
    assert data["columns"] == 8
    assert data["transparentcolor"] == "#0080ff"


def test_write_descriptor_json(tmp_path):
    desc = TilesetDescriptor.from_expanded("grass", make_expanded(), tmp_path / "grass_expanded.png")
    out = tmp_path / "grass.tsj"
    write_descriptor(desc, out, "json")
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["name"] == "grass"
    assert "transparentcolor" not in data


def test_write_descriptor_unknown_format(tmp_path):
    desc = TilesetDescriptor.from_expanded("grass", make_expanded(), tmp_path / "grass_expanded.png")
    with pytest.raises(ValueError):
        write_descriptor(desc, tmp_path / "grass.tmx", "tmx")


def test_write_descriptor_failure(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory", encoding="utf-8")
    desc = TilesetDescriptor.from_expanded("grass", make_expanded(), tmp_path / "grass_expanded.png")
    with pytest.raises(OutputWriteFailed):
        write_descriptor(desc, blocker / "grass.tsx", "tsx")


def test_save_expanded_image(tmp_path):
    expanded = make_expanded()
    out = tmp_path / "out" / "grass_expanded.png"
    save_expanded_image(expanded, out)
    with Image.open(out) as img:
        assert img.size == (256, 192)
        assert img.tobytes() == expanded.image.tobytes()


def test_save_expanded_image_failure(tmp_path):
    with pytest.raises(OutputWriteFailed):
        save_expanded_image(make_expanded(), tmp_path / "grass.unknownext")


@pytest.mark.parametrize(
    "mode,saved_mode",
    [("CMYK", "RGB"), ("YCbCr", "RGB"), ("PA", "RGBA"), ("RGBA", "RGBA"), ("P", "P")],
)
def test_save_expanded_image_converts_for_png(tmp_path, mode, saved_mode):
    expanded = expand_autotile(Image.new(mode, (96, 128)), 32, 32)
    out = tmp_path / "grass_expanded.png"
    save_expanded_image(expanded, out)
    assert expanded.image.mode == mode
    with Image.open(out) as img:
        assert img.size == (256, 192)
        assert img.mode == saved_mode


def test_save_expanded_image_float_source(tmp_path):
    expanded = expand_autotile(Image.new("F", (96, 128), 7.0), 32, 32)
    out = tmp_path / "depth_expanded.png"
    save_expanded_image(expanded, out)
    with Image.open(out) as img:
        assert img.size == (256, 192)
        assert img.getpixel((0, 0)) == 7
