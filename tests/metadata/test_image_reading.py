import io
import json

from PIL import Image
from PIL.PngImagePlugin import PngInfo

from sdmeta_core.features.metadata import readers, service
from sdmeta_core.features.metadata.models import PngTextChunk, RawMetadata
from sdmeta_shared import SegmentSource, SoftwareId

A1111_NO_SIZE = "a cat\nNegative prompt: dog\nSteps: 30, Sampler: Euler a, CFG scale: 6, Seed: 3"


def _png_bytes(size=(64, 48), text=None, itxt=None) -> bytes:
    info = PngInfo()
    for key, value in (text or {}).items():
        info.add_text(key, value)
    for key, value in (itxt or {}).items():
        info.add_itxt(key, value)
    buf = io.BytesIO()
    Image.new("RGB", size).save(buf, format="PNG", pnginfo=info)
    return buf.getvalue()


def test_read_png_text_chunks() -> None:
    data = _png_bytes(text={"parameters": A1111_NO_SIZE}, itxt={"comment": "猫"})
    res = readers.read_raw_metadata(data)
    assert res.ok
    assert res.meta["format"] == "png"
    read = res.data
    assert (read.width, read.height) == (64, 48)
    by_key = {chunk.keyword: chunk for chunk in read.raw.chunks}
    assert by_key["parameters"].type == "tEXt"
    assert by_key["parameters"].text == A1111_NO_SIZE
    assert by_key["comment"].type == "iTXt"
    assert by_key["comment"].text == "猫"


def test_read_image_dimension_fallback(tmp_path) -> None:
    path = tmp_path / "gen.png"
    path.write_bytes(_png_bytes(size=(96, 80), text={"parameters": A1111_NO_SIZE}))

    result = service.read_image(path)
    assert result.status == "success"
    assert result.metadata.software == SoftwareId.SD_WEBUI
    assert (result.metadata.width, result.metadata.height) == (96, 80)

    result = service.read_image(path, fallback_dimensions=False)
    assert (result.metadata.width, result.metadata.height) == (0, 0)


def test_read_image_empty_and_invalid(tmp_path) -> None:
    assert service.read_image(_png_bytes()).status == "empty"

    result = service.read_image(b"definitely not an image")
    assert result.status == "invalid"
    assert result.message

    gif = io.BytesIO()
    Image.new("P", (4, 4)).save(gif, format="GIF")
    assert service.read_image(gif.getvalue()).status == "invalid"


def test_read_image_unrecognized_keeps_raw() -> None:
    result = service.read_image(_png_bytes(text={"foo": "bar"}))
    assert result.status == "unrecognized"
    assert result.raw.chunks == (PngTextChunk.text_chunk("foo", "bar"),)


def test_read_jpeg_comment_and_exif_description() -> None:
    graph = {"3": {"class_type": "KSampler", "inputs": {"seed": 5}}}
    exif = Image.Exif()
    exif[readers.TAG_IMAGE_DESCRIPTION] = "Workflow: " + json.dumps({"nodes": []})
    exif[readers.TAG_MAKE] = "Prompt: " + json.dumps(graph)
    buf = io.BytesIO()
    Image.new("RGB", (32, 16)).save(buf, format="JPEG", exif=exif.tobytes(), comment=b"jpeg comment")

    res = readers.read_raw_metadata(buf.getvalue())
    assert res.ok
    segments = {segment.source: segment for segment in res.data.raw.segments}
    assert segments[SegmentSource.JPEG_COM].data == "jpeg comment"
    assert segments[SegmentSource.EXIF_MAKE].prefix == "Prompt"
    assert json.loads(segments[SegmentSource.EXIF_MAKE].data) == graph
    assert segments[SegmentSource.EXIF_IMAGE_DESCRIPTION].prefix == "Workflow"


def test_decode_user_comment_headers() -> None:
    text = "Steps: 20"
    assert readers.decode_user_comment(b"UNICODE\x00" + text.encode("utf-16-be")) == text
    assert readers.decode_user_comment(b"UNICODE\x00" + text.encode("utf-16-le")) == text
    assert readers.decode_user_comment(b"ASCII\x00\x00\x00" + b"abc") == "abc"
    assert readers.decode_user_comment(b"\x00" * 8 + "猫".encode("utf-8")) == "猫"
    assert readers.decode_user_comment("already text") == "already text"


def test_parse_raw_statuses() -> None:
    assert service.parse_raw(RawMetadata.png([])).status == "empty"
    raw = RawMetadata.png([PngTextChunk.text_chunk("parameters", A1111_NO_SIZE)])
    result = service.parse_raw(raw)
    assert result.status == "success"
    assert result.raw is raw
    assert result.metadata.prompt == "a cat"
