from sdmeta_core.features.parsers import a1111
from sdmeta_shared import SoftwareId

FULL_TEXT = (
    "masterpiece, 1girl,\nsolo\n"
    "Negative prompt: lowres, bad hands\n"
    "Steps: 28, Sampler: DPM++ 2M, Schedule type: Karras, CFG scale: 7, Seed: 12345, Size: 832x1216, "
    "Model hash: abc123, Model: animagine, Denoising strength: 0.4, Clip skip: 2, "
    "Hires upscale: 1.5, Hires steps: 10, Hires upscaler: R-ESRGAN 4x+, Version: v1.10.1"
)


def test_split_parameters() -> None:
    prompt, negative, settings = a1111.split_parameters(FULL_TEXT)
    assert prompt == "masterpiece, 1girl,\nsolo"
    assert negative == "lowres, bad hands"
    assert settings.startswith("Steps: 28")


def test_split_without_negative_or_settings() -> None:
    assert a1111.split_parameters("only a prompt") == ("only a prompt", "", "")
    assert a1111.split_parameters("a cat\nSteps: 20, Seed: 1") == ("a cat", "", "Steps: 20, Seed: 1")
    assert a1111.split_parameters("a cat\nNegative prompt: dog") == ("a cat", "dog", "")


def test_parse_settings_keeps_commas_inside_values() -> None:
    settings = a1111.parse_settings("Steps: 20, Sampler: Euler a, ADetailer prompt: smile, blush, Seed: 5")
    assert settings["Steps"] == "20"
    assert settings["Sampler"] == "Euler a"
    assert settings["ADetailer prompt"] == "smile, blush"
    assert settings["Seed"] == "5"


def test_parse_number_and_size() -> None:
    assert a1111.parse_number("7") == 7
    assert a1111.parse_number("7.5 (x)") == 7.5
    assert a1111.parse_number("abc") is None
    assert a1111.parse_number(None) is None
    assert a1111.parse_size("832x1216") == (832, 1216)
    assert a1111.parse_size("bad") == (0, 0)


def test_full_text_end_to_end() -> None:
    res = a1111.parse_a1111({"parameters": FULL_TEXT})
    assert res.ok
    md = res.data
    assert md.software == SoftwareId.SD_WEBUI
    assert md.prompt == "masterpiece, 1girl,\nsolo"
    assert md.negative_prompt == "lowres, bad hands"
    assert (md.width, md.height) == (832, 1216)
    assert md.model.name == "animagine"
    assert md.model.hash == "abc123"
    assert md.sampling.sampler == "DPM++ 2M"
    assert md.sampling.scheduler == "Karras"
    assert md.sampling.steps == 28
    assert md.sampling.cfg == 7
    assert md.sampling.seed == 12345
    assert md.sampling.clip_skip == 2
    assert md.hires.scale == 1.5
    assert md.hires.steps == 10
    assert md.hires.upscaler == "R-ESRGAN 4x+"
    assert md.hires.denoise == 0.4
    assert md.upscale is None


def test_hires_size_gives_scale() -> None:
    text = "a cat\nSteps: 20, Size: 512x512, Hires size: 1024x1024, Hires upscaler: Latent"
    md = a1111.parse_a1111({"parameters": text}).data
    assert md.hires.scale == 2
    assert md.hires.upscaler == "Latent"
    assert md.hires.steps is None


def test_no_settings_leaves_optionals_unset() -> None:
    md = a1111.parse_a1111({"parameters": "just words"}).data
    assert md.prompt == "just words"
    assert md.sampling is None
    assert md.model is None
    assert md.hires is None
    assert (md.width, md.height) == (0, 0)


def test_variant_from_version_and_app() -> None:
    def software(suffix: str) -> SoftwareId:
        return a1111.parse_a1111({"parameters": f"x\nSteps: 1, {suffix}"}).data.software

    assert software("Version: f2.0.1v1.10.1-previous-1") == SoftwareId.FORGE
    assert software("Version: neo") == SoftwareId.FORGE_NEO
    assert software("Version: classic") == SoftwareId.FORGE_CLASSIC
    assert software("App: SD.Next") == SoftwareId.SD_NEXT
    assert software("Version: 1.6.0") == SoftwareId.SD_WEBUI


def test_software_hint_wins() -> None:
    res = a1111.parse_a1111({"parameters": FULL_TEXT}, software="reforge")
    assert res.data.software == SoftwareId.REFORGE
    res = a1111.parse_a1111({"parameters": FULL_TEXT}, software=SoftwareId.CIVITAI)
    assert res.data.software == SoftwareId.CIVITAI
    res = a1111.parse_a1111({"parameters": FULL_TEXT}, software=SoftwareId.NOVELAI)
    assert res.data.software == SoftwareId.SD_WEBUI


def test_jpeg_user_comment_source() -> None:
    res = a1111.parse_a1111({"UserComment": FULL_TEXT})
    assert res.ok
    assert res.data.sampling.seed == 12345


def test_missing_entry_is_unsupported() -> None:
    res = a1111.parse_a1111({"prompt": "{}"})
    assert res.is_code("UNSUPPORTED_FORMAT")
