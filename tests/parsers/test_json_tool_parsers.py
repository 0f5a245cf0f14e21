import json

from sdmeta_core.features.metadata.models import CharacterPrompt, Point
from sdmeta_core.features.parsers import easydiffusion, fooocus, hf_space, invokeai, novelai, ruined_fooocus
from sdmeta_shared import SoftwareId

A1111_TEXT = "a cat\nNegative prompt: dog\nSteps: 30, Sampler: Euler a, CFG scale: 6, Seed: 3, Size: 512x768"


def _novelai_comment(**overrides) -> dict:
    comment = {
        "prompt": "legacy prompt",
        "uc": "legacy uc",
        "steps": 28,
        "width": 832,
        "height": 1216,
        "scale": 5,
        "seed": 111,
        "sampler": "k_euler_ancestral",
        "noise_schedule": "karras",
        "v4_prompt": {
            "caption": {
                "base_caption": "v4 base",
                "char_captions": [
                    {"char_caption": "girl", "centers": [{"x": 0.3, "y": 0.5}]},
                    {"char_caption": "boy", "centers": [{"x": 0.7, "y": 0.5}]},
                ],
            },
            "use_coords": True,
            "use_order": False,
        },
        "v4_negative_prompt": {"caption": {"base_caption": "v4 neg", "char_captions": []}},
    }
    comment.update(overrides)
    return comment


def test_novelai_v4() -> None:
    res = novelai.parse_novelai({"Software": "NovelAI", "Comment": json.dumps(_novelai_comment())})
    assert res.ok
    md = res.data
    assert md.software == SoftwareId.NOVELAI
    assert md.prompt == "v4 base"
    assert md.negative_prompt == "v4 neg"
    assert (md.width, md.height) == (832, 1216)
    assert md.sampling.sampler == "k_euler_ancestral"
    assert md.sampling.scheduler == "karras"
    assert md.sampling.cfg == 5
    assert md.character_prompts == (
        CharacterPrompt(prompt="girl", center=Point(x=0.3, y=0.5)),
        CharacterPrompt(prompt="boy", center=Point(x=0.7, y=0.5)),
    )
    assert md.use_coords is True
    assert md.use_order is False


def test_novelai_legacy_without_characters() -> None:
    comment = _novelai_comment()
    del comment["v4_prompt"]
    del comment["v4_negative_prompt"]
    md = novelai.parse_novelai({"Software": "NovelAI", "Comment": json.dumps(comment)}).data
    assert md.prompt == "legacy prompt"
    assert md.negative_prompt == "legacy uc"
    assert md.character_prompts is None
    assert md.use_coords is None
    assert md.use_order is None


def test_novelai_image_description_wins() -> None:
    record = {
        "Software": "NovelAI",
        "Comment": json.dumps(_novelai_comment()),
        "ImageDescription": "\x00\x00\x00\x00exif prompt",
    }
    assert novelai.parse_novelai(record).data.prompt == "exif prompt"


def test_novelai_errors() -> None:
    assert novelai.parse_novelai({"Comment": "{}"}).is_code("UNSUPPORTED_FORMAT")
    assert novelai.parse_novelai({"Software": "NovelAI"}).is_code("PARSE_ERROR")
    assert novelai.parse_novelai({"Software": "NovelAI", "Comment": "{nope"}).is_code("PARSE_ERROR")
    no_size = _novelai_comment()
    del no_size["width"]
    assert novelai.parse_novelai({"Software": "NovelAI", "Comment": json.dumps(no_size)}).is_code("PARSE_ERROR")


def test_invokeai_png_entry() -> None:
    data = {
        "positive_prompt": "inv cat",
        "negative_prompt": "bad",
        "width": 768,
        "height": 512,
        "seed": 1,
        "steps": 30,
        "cfg_scale": 7.5,
        "scheduler": "dpmpp_2m",
        "model": {"name": "juggernaut", "hash": "blake3:x"},
    }
    res = invokeai.parse_invokeai({"invokeai_metadata": json.dumps(data)})
    assert res.ok
    md = res.data
    assert md.software == SoftwareId.INVOKEAI
    assert md.prompt == "inv cat"
    assert md.sampling.sampler == "dpmpp_2m"
    assert md.sampling.cfg == 7.5
    assert md.model.name == "juggernaut"
    assert md.model.hash == "blake3:x"


def test_invokeai_nested_in_user_comment() -> None:
    comment = json.dumps({"invokeai_metadata": {"positive_prompt": "nested", "width": 512, "height": 512}})
    res = invokeai.parse_invokeai({"UserComment": comment})
    assert res.ok
    assert res.data.prompt == "nested"
    assert res.data.sampling is None


def test_invokeai_errors() -> None:
    assert invokeai.parse_invokeai({"parameters": "x"}).is_code("UNSUPPORTED_FORMAT")
    assert invokeai.parse_invokeai({"invokeai_metadata": "nope"}).is_code("PARSE_ERROR")


def test_easydiffusion_png_entries() -> None:
    record = {
        "prompt": " ed cat ",
        "negative_prompt": "bad",
        "use_stable_diffusion_model": "C:\\models\\sd\\realistic.safetensors",
        "width": "512",
        "height": "768",
        "seed": "42",
        "num_inference_steps": "25",
        "guidance_scale": "7.5",
        "sampler_name": "euler_a",
        "clip_skip": "0",
        "prompt_strength": "0.8",
    }
    res = easydiffusion.parse_easydiffusion(record)
    assert res.ok
    md = res.data
    assert md.software == SoftwareId.EASYDIFFUSION
    assert md.prompt == "ed cat"
    assert (md.width, md.height) == (512, 768)
    assert md.model.name == "realistic.safetensors"
    assert md.sampling.seed == 42
    assert md.sampling.steps == 25
    assert md.sampling.cfg == 7.5
    assert md.sampling.clip_skip is None
    assert md.sampling.denoise == 0.8


def test_easydiffusion_capitalized_labels() -> None:
    record = {
        "Prompt": "cap cat",
        "Negative Prompt": "neg",
        "Stable Diffusion model": "a/b/model.ckpt",
        "Width": "640",
        "Height": "480",
        "Steps": "20",
        "Guidance Scale": "7",
        "Seed": "5",
        "Sampler": "ddim",
    }
    md = easydiffusion.parse_easydiffusion(record).data
    assert md.prompt == "cap cat"
    assert md.negative_prompt == "neg"
    assert md.model.name == "model.ckpt"
    assert (md.width, md.height) == (640, 480)
    assert md.sampling.sampler == "ddim"


def test_easydiffusion_json_payload() -> None:
    payload = json.dumps({"prompt": "json cat", "use_stable_diffusion_model": "m", "width": 512, "height": 512})
    res = easydiffusion.parse_easydiffusion({"parameters": payload})
    assert res.ok
    assert res.data.prompt == "json cat"
    assert easydiffusion.parse_easydiffusion({"parameters": "text"}).is_code("UNSUPPORTED_FORMAT")


def test_fooocus_json_comment() -> None:
    data = {
        "prompt": "foo cat",
        "negative_prompt": "bad",
        "base_model": "juggernautXL",
        "resolution": "(1152, 896)",
        "steps": 30,
        "guidance_scale": 4,
        "seed": "1234",
        "sampler": "dpmpp_2m_sde_gpu",
        "scheduler": "karras",
    }
    res = fooocus.parse_fooocus({"Comment": json.dumps(data)})
    assert res.ok
    md = res.data
    assert md.software == SoftwareId.FOOOCUS
    assert (md.width, md.height) == (1152, 896)
    assert md.sampling.cfg == 4
    assert md.sampling.seed == 1234
    assert md.model.name == "juggernautXL"


def test_fooocus_a1111_scheme() -> None:
    res = fooocus.parse_fooocus({"parameters": A1111_TEXT, "fooocus_scheme": "a1111"})
    assert res.ok
    assert res.data.software == SoftwareId.FOOOCUS
    assert res.data.sampling.steps == 30
    assert res.data.negative_prompt == "dog"


def test_fooocus_folded_scheme_object() -> None:
    folded = json.dumps({"parameters": A1111_TEXT, "fooocus_scheme": "a1111"})
    res = fooocus.parse_fooocus({"UserComment": folded})
    assert res.ok
    assert res.data.prompt == "a cat"

    inner = json.dumps({"prompt": "inner", "resolution": [640, 480]})
    folded = json.dumps({"parameters": inner, "fooocus_scheme": "fooocus"})
    md = fooocus.parse_fooocus({"UserComment": folded}).data
    assert md.prompt == "inner"
    assert (md.width, md.height) == (640, 480)


def test_fooocus_plain_text_without_scheme() -> None:
    assert fooocus.parse_fooocus({"Comment": "just words"}).is_code("UNSUPPORTED_FORMAT")


def test_ruined_fooocus() -> None:
    data = {
        "software": "RuinedFooocus",
        "Prompt": "rf cat",
        "Negative": "bad",
        "base_model_name": "sdxl.safetensors",
        "base_model_hash": "h",
        "steps": 30,
        "cfg": 8,
        "width": 1024,
        "height": 1024,
        "seed": 7,
        "sampler_name": "dpmpp_2m",
        "scheduler": "karras",
        "clip_skip": 1,
    }
    res = ruined_fooocus.parse_ruined_fooocus({"parameters": json.dumps(data)})
    assert res.ok
    md = res.data
    assert md.software == SoftwareId.RUINED_FOOOCUS
    assert md.prompt == "rf cat"
    assert md.model.hash == "h"
    assert md.sampling.clip_skip == 1
    untagged = json.dumps({"Prompt": "x"})
    assert ruined_fooocus.parse_ruined_fooocus({"parameters": untagged}).is_code("UNSUPPORTED_FORMAT")


def test_hf_space() -> None:
    data = {
        "prompt": "hf cat",
        "negative_prompt": "bad",
        "resolution": "832 x 1216",
        "guidance_scale": 7,
        "num_inference_steps": 28,
        "seed": 5,
        "sampler": "Euler a",
        "Model": "Animagine XL 3.1",
        "Model hash": "e3c47aedb0",
    }
    res = hf_space.parse_hf_space({"parameters": json.dumps(data)})
    assert res.ok
    md = res.data
    assert md.software == SoftwareId.HF_SPACE
    assert (md.width, md.height) == (832, 1216)
    assert md.model.name == "Animagine XL 3.1"
    assert md.sampling.steps == 28
    assert hf_space.parse_resolution("bad") == (0, 0)


def test_empty_strings_build_no_settings() -> None:
    ruined = {"software": "RuinedFooocus", "Prompt": "p", "base_model_name": "", "sampler_name": "", "scheduler": ""}
    res = ruined_fooocus.parse_ruined_fooocus({"parameters": json.dumps(ruined)})
    assert res.ok
    assert res.data.model is None
    assert res.data.sampling is None

    hf = {"prompt": "p", "Model": "", "Model hash": "", "sampler": "", "resolution": "832 x 1216"}
    res = hf_space.parse_hf_space({"parameters": json.dumps(hf)})
    assert res.ok
    assert res.data.model is None
    assert res.data.sampling is None
