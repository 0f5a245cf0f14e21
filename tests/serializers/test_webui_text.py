from sdmeta_core.features.metadata.models import (
    CharacterPrompt,
    GenerationMetadata,
    HiresSettings,
    MetadataSegment,
    ModelSettings,
    ParseResult,
    PngTextChunk,
    Point,
    RawMetadata,
    SamplingSettings,
    UpscaleSettings,
)
from sdmeta_core.features.parsers.a1111 import parse_a1111
from sdmeta_core.features.serializers import build_settings_line, format_as_webui, format_raw, stringify
from sdmeta_shared import SegmentSource, SoftwareId

FULL_TEXT = (
    "masterpiece, 1girl\n"
    "Negative prompt: lowres, bad hands\n"
    "Steps: 28, Sampler: DPM++ 2M, Schedule type: Karras, CFG scale: 7, Seed: 12345, Size: 832x1216, "
    "Model hash: abc123, Model: animagine, Clip skip: 2, Denoising strength: 0.4, "
    "Hires upscale: 1.5, Hires steps: 10, Hires upscaler: R-ESRGAN 4x+"
)


def test_a1111_text_survives_parse_and_format() -> None:
    md = parse_a1111({"parameters": FULL_TEXT}).data
    assert format_as_webui(md) == FULL_TEXT


def test_minimal_metadata_is_prompt_only() -> None:
    md = GenerationMetadata(software=SoftwareId.COMFYUI, prompt="a cat")
    assert format_as_webui(md) == "a cat"
    assert build_settings_line(md) == ""


def test_line_endings_are_normalized() -> None:
    md = GenerationMetadata(software=SoftwareId.COMFYUI, prompt="a\r\nb\rc", negative_prompt="x\r\ny")
    assert format_as_webui(md) == "a\nb\nc\nNegative prompt: x\ny"


def test_character_prompts_section() -> None:
    md = GenerationMetadata(
        software=SoftwareId.NOVELAI,
        prompt="base",
        negative_prompt="neg",
        width=832,
        height=1216,
        character_prompts=(
            CharacterPrompt(prompt="girl", center=Point(x=0.3, y=0.5)),
            CharacterPrompt(prompt="boy"),
        ),
    )
    assert format_as_webui(md) == (
        "base\n# Character 1 [0.3, 0.5]:\ngirl\n# Character 2:\nboy\nNegative prompt: neg\nSize: 832x1216"
    )


def test_upscale_reported_as_hires_fields() -> None:
    md = GenerationMetadata(
        software=SoftwareId.COMFYUI,
        width=512,
        height=512,
        upscale=UpscaleSettings(upscaler="4x-UltraSharp", scale=2.0),
    )
    assert build_settings_line(md) == "Size: 512x512, Hires upscale: 2, Hires upscaler: 4x-UltraSharp"


def test_sampling_denoise_used_without_hires() -> None:
    md = GenerationMetadata(software=SoftwareId.COMFYUI, sampling=SamplingSettings(steps=20, denoise=0.6))
    assert build_settings_line(md) == "Steps: 20, Denoising strength: 0.6"


def test_hires_denoise_wins_over_sampling() -> None:
    md = GenerationMetadata(
        software=SoftwareId.COMFYUI,
        sampling=SamplingSettings(denoise=0.6),
        hires=HiresSettings(denoise=0.3),
    )
    assert build_settings_line(md) == "Denoising strength: 0.3"


def test_extras_override_in_place_and_append() -> None:
    md = GenerationMetadata(
        software=SoftwareId.SD_WEBUI,
        sampling=SamplingSettings(steps=20, seed=1),
        model=ModelSettings(name="m"),
    )
    line = build_settings_line(md, {"Seed": 99, "Version": "v1.10.1"})
    assert line == "Steps: 20, Seed: 99, Model: m, Version: v1.10.1"


def test_stringify_dispatches_on_status() -> None:
    raw = RawMetadata.png([PngTextChunk.text_chunk("a", "one"), PngTextChunk.text_chunk("b", "two")])
    md = GenerationMetadata(software=SoftwareId.SD_WEBUI, prompt="p")
    assert stringify(ParseResult.success(md, raw)) == "p"
    assert stringify(ParseResult.unrecognized(raw)) == "one\n\ntwo"
    assert stringify(ParseResult.empty()) == ""
    assert stringify(ParseResult.invalid("bad")) == ""


def test_format_raw_segments() -> None:
    raw = RawMetadata.of_segments(
        "jpeg",
        [
            MetadataSegment(source=SegmentSource.EXIF_USER_COMMENT, data="x"),
            MetadataSegment(source=SegmentSource.JPEG_COM, data="y"),
        ],
    )
    assert format_raw(raw) == "x\n\ny"
