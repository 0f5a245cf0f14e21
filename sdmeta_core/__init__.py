"""sd-metadata core: detection, parsing and conversion of AI image generation metadata."""
