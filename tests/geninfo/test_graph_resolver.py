from sdmeta_core.features.geninfo import graph as g


def _txt2img_graph() -> dict:
    return {
        "3": {
            "class_type": "KSampler",
            "inputs": {
                "seed": 42,
                "steps": 20,
                "cfg": 7.5,
                "sampler_name": "euler",
                "scheduler": "normal",
                "denoise": 1.0,
                "model": ["4", 0],
                "positive": ["6", 0],
                "negative": ["7", 0],
                "latent_image": ["5", 0],
            },
        },
        "4": {"class_type": "CheckpointLoaderSimple", "inputs": {"ckpt_name": "sdxl.safetensors"}},
        "5": {"class_type": "EmptyLatentImage", "inputs": {"width": 832, "height": 1216, "batch_size": 1}},
        "6": {"class_type": "CLIPTextEncode", "inputs": {"text": "a cat", "clip": ["4", 1]}},
        "7": {"class_type": "CLIPTextEncode", "inputs": {"text": "blurry", "clip": ["4", 1]}},
        "8": {"class_type": "VAEDecode", "inputs": {"samples": ["3", 0], "vae": ["4", 2]}},
    }


def _hires_graph(denoise: float = 1.0) -> dict:
    graph = _txt2img_graph()
    graph["10"] = {"class_type": "LatentUpscaleBy", "inputs": {"samples": ["3", 0], "upscale_method": "nearest-exact", "scale_by": 1.5}}
    graph["11"] = {
        "class_type": "KSampler",
        "inputs": {
            "seed": 7,
            "steps": 12,
            "cfg": 7.5,
            "sampler_name": "euler",
            "scheduler": "normal",
            "denoise": denoise,
            "positive": ["6", 0],
            "negative": ["7", 0],
            "latent_image": ["10", 0],
        },
    }
    return graph


def test_is_node_reference() -> None:
    assert g.is_node_reference(["4", 0])
    assert g.is_node_reference([4, 1])
    assert not g.is_node_reference(["4"])
    assert not g.is_node_reference("4")
    assert not g.is_node_reference([True, 0])
    assert not g.is_node_reference(["4", "x"])


def test_resolve_node_handles_dangling_and_numeric_ids() -> None:
    graph = _txt2img_graph()
    assert g.resolve_node(graph, ["4", 0])["class_type"] == "CheckpointLoaderSimple"
    assert g.resolve_node(graph, [4.0, 0])["class_type"] == "CheckpointLoaderSimple"
    assert g.resolve_node(graph, ["99", 0]) is None
    assert g.resolve_node(graph, "4") is None


def test_classify_nodes_keeps_first_of_each_role() -> None:
    classified = g.classify_nodes(_hires_graph())
    assert classified.sampler["inputs"]["seed"] == 42
    assert classified.checkpoint["inputs"]["ckpt_name"] == "sdxl.safetensors"
    assert classified.latent_upscale["class_type"] == "LatentUpscaleBy"
    assert classified.upscale_model is None


def test_classify_nodes_ignores_malformed_nodes() -> None:
    classified = g.classify_nodes({"1": "junk", "2": {"inputs": {}}, "3": {"class_type": 5}})
    assert classified == g.ClassifiedNodes()


def test_extract_text_follows_references() -> None:
    graph = {
        "1": {"class_type": "CLIPTextEncode", "inputs": {"text": ["2", 0]}},
        "2": {"class_type": "PrimitiveString", "inputs": {"prompt": ["3", 0]}},
        "3": {"class_type": "Text", "inputs": {"Text": "deep"}},
    }
    assert g.extract_text(graph, "1") == "deep"
    assert g.extract_text(graph, "1", max_depth=2) == ""
    assert g.extract_text(graph, "missing") == ""


def test_extract_text_cycle_terminates() -> None:
    graph = {
        "1": {"class_type": "A", "inputs": {"text": ["2", 0]}},
        "2": {"class_type": "B", "inputs": {"text": ["1", 0]}},
    }
    assert g.extract_text(graph, "1") == ""


def test_extract_text_sdxl_combination() -> None:
    def node(text_g, text_l):
        return {"1": {"class_type": "CLIPTextEncodeSDXL", "inputs": {"text_g": text_g, "text_l": text_l}}}

    assert g.extract_text(node("a", "a"), "1") == "a"
    assert g.extract_text(node("a", "b"), "1") == "a,\nb"
    assert g.extract_text(node("", "b"), "1") == "b"
    assert g.extract_text(node("a", ""), "1") == "a"


def test_resolve_graph_txt2img() -> None:
    facts = g.resolve_graph(_txt2img_graph())
    assert facts.prompt == "a cat"
    assert facts.negative_prompt == "blurry"
    assert (facts.width, facts.height) == (832, 1216)
    assert facts.model.name == "sdxl.safetensors"
    assert facts.sampling.seed == 42
    assert facts.sampling.steps == 20
    assert facts.sampling.cfg == 7.5
    assert facts.sampling.sampler == "euler"
    assert facts.sampling.scheduler == "normal"
    assert facts.sampling.denoise is None
    assert facts.hires is None
    assert facts.upscale is None


def test_hires_detected_structurally_with_full_denoise() -> None:
    facts = g.resolve_graph(_hires_graph(denoise=1.0))
    assert facts.hires is not None
    assert facts.hires.scale == 1.5
    assert facts.hires.upscaler == "nearest-exact"
    assert facts.hires.steps == 12
    assert facts.hires.denoise == 1.0
    # Base facts still come from the first pass
    assert facts.sampling.seed == 42
    assert facts.sampling.steps == 20
    assert facts.upscale is None


def test_hires_sampler_listed_first_is_not_used_as_base() -> None:
    graph = _hires_graph(denoise=0.5)
    reordered = {"11": graph.pop("11"), **graph}
    facts = g.resolve_graph(reordered)
    assert facts.sampling.seed == 42
    assert facts.hires.denoise == 0.5


def test_hires_through_vae_encode_and_image_scale() -> None:
    graph = _txt2img_graph()
    graph["20"] = {"class_type": "UpscaleModelLoader", "inputs": {"model_name": "4x-UltraSharp.pth"}}
    graph["21"] = {"class_type": "ImageUpscaleWithModel", "inputs": {"upscale_model": ["20", 0], "image": ["8", 0]}}
    graph["22"] = {"class_type": "ImageScale", "inputs": {"image": ["21", 0], "upscale_method": "lanczos", "width": 1248, "height": 1824}}
    graph["23"] = {"class_type": "VAEEncode", "inputs": {"pixels": ["22", 0], "vae": ["4", 2]}}
    graph["24"] = {
        "class_type": "KSampler",
        "inputs": {"seed": 1, "steps": 10, "denoise": 0.4, "positive": ["6", 0], "negative": ["7", 0], "latent_image": ["23", 0]},
    }
    facts = g.resolve_graph(graph)
    assert facts.hires.scale == 1.5
    assert facts.hires.upscaler == "4x-UltraSharp.pth"
    assert facts.hires.steps == 10
    assert facts.hires.denoise == 0.4
    assert facts.upscale is None


def test_vae_encode_of_plain_image_is_not_hires() -> None:
    graph = _txt2img_graph()
    graph["30"] = {"class_type": "LoadImage", "inputs": {"image": "in.png"}}
    graph["31"] = {"class_type": "VAEEncode", "inputs": {"pixels": ["30", 0]}}
    graph["3"]["inputs"]["latent_image"] = ["31", 0]
    graph["3"]["inputs"]["denoise"] = 0.6
    facts = g.resolve_graph(graph)
    assert facts.hires is None
    assert facts.sampling.denoise == 0.6


def test_post_hoc_upscale_without_second_pass() -> None:
    graph = _txt2img_graph()
    graph["20"] = {"class_type": "UpscaleModelLoader", "inputs": {"model_name": "RealESRGAN_x4.pth"}}
    graph["22"] = {"class_type": "ImageScaleBy", "inputs": {"upscale_method": "lanczos", "scale_by": 2}}
    facts = g.resolve_graph(graph)
    assert facts.hires is None
    assert facts.upscale.upscaler == "RealESRGAN_x4.pth"
    assert facts.upscale.scale == 2


def test_sampler_custom_advanced() -> None:
    graph = {
        "1": {
            "class_type": "SamplerCustomAdvanced",
            "inputs": {"noise": ["2", 0], "guider": ["3", 0], "sampler": ["4", 0], "sigmas": ["5", 0], "latent_image": ["8", 0]},
        },
        "2": {"class_type": "RandomNoise", "inputs": {"noise_seed": 123}},
        "3": {"class_type": "CFGGuider", "inputs": {"cfg": 3.5, "positive": ["6", 0], "negative": ["7", 0]}},
        "4": {"class_type": "KSamplerSelect", "inputs": {"sampler_name": "dpmpp_2m"}},
        "5": {"class_type": "BasicScheduler", "inputs": {"steps": 28, "scheduler": "simple", "denoise": 1}},
        "6": {"class_type": "CLIPTextEncode", "inputs": {"text": "flux cat"}},
        "7": {"class_type": "CLIPTextEncode", "inputs": {"text": ""}},
        "8": {"class_type": "EmptyLatentImage", "inputs": {"width": 1024, "height": 1024}},
        "9": {"class_type": "UNETLoader", "inputs": {"unet_name": "flux1-dev.safetensors"}},
    }
    facts = g.resolve_graph(graph)
    assert facts.prompt == "flux cat"
    assert facts.negative_prompt == ""
    assert facts.sampling.seed == 123
    assert facts.sampling.steps == 28
    assert facts.sampling.cfg == 3.5
    assert facts.sampling.sampler == "dpmpp_2m"
    assert facts.sampling.scheduler == "simple"
    assert facts.sampling.denoise is None
    assert facts.model.name == "flux1-dev.safetensors"


def test_seed_reference_and_clip_skip() -> None:
    graph = _txt2img_graph()
    graph["3"]["inputs"]["seed"] = ["40", 0]
    graph["40"] = {"class_type": "Seed (rgthree)", "inputs": {"seed": 99}}
    graph["41"] = {"class_type": "CLIPSetLastLayer", "inputs": {"stop_at_clip_layer": -2}}
    facts = g.resolve_graph(graph)
    assert facts.sampling.seed == 99
    assert facts.sampling.clip_skip == 2


def test_rgthree_dimensions() -> None:
    node = {"class_type": "SDXL Empty Latent Image (rgthree)", "inputs": {"dimensions": "1152 x 896  (landscape)"}}
    assert g.extract_dimensions(None, node) == (1152, 896)
    assert g.extract_dimensions(None, {"inputs": {"dimensions": "custom"}}) == (0, 0)


def test_calculate_scale() -> None:
    assert g.calculate_scale(1248, 832) == 1.5
    assert g.calculate_scale(1000, 0) is None
    assert g.calculate_scale(None, 512) is None
    assert g.calculate_scale(1024, 768) == 1.33


def test_empty_or_garbage_graph() -> None:
    assert g.resolve_graph({}) == g.GraphFacts()
    assert g.resolve_graph({"1": [1, 2], "2": None}) == g.GraphFacts()


def test_sampler_custom_advanced_hires_reads_sigmas() -> None:
    graph = _txt2img_graph()
    graph["10"] = {"class_type": "LatentUpscaleBy", "inputs": {"samples": ["3", 0], "upscale_method": "bislerp", "scale_by": 2}}
    graph["11"] = {
        "class_type": "SamplerCustomAdvanced",
        "inputs": {"noise": ["12", 0], "guider": ["13", 0], "sampler": ["14", 0], "sigmas": ["15", 0], "latent_image": ["10", 0]},
    }
    graph["12"] = {"class_type": "RandomNoise", "inputs": {"noise_seed": 9}}
    graph["13"] = {"class_type": "CFGGuider", "inputs": {"cfg": 4, "positive": ["6", 0], "negative": ["7", 0]}}
    graph["14"] = {"class_type": "KSamplerSelect", "inputs": {"sampler_name": "euler"}}
    graph["15"] = {"class_type": "BasicScheduler", "inputs": {"steps": 8, "scheduler": "karras", "denoise": 0.45}}
    facts = g.resolve_graph(graph)
    assert facts.hires.scale == 2
    assert facts.hires.upscaler == "bislerp"
    assert facts.hires.steps == 8
    assert facts.hires.denoise == 0.45
    assert facts.sampling.seed == 42
