"""
GIF assembly via ffmpeg.

The processing is described as a graph of named stages (crop, scale,
overlay-compose, palette-generate, palette-apply) and rendered into a single
-filter_complex argument. All pixel work happens inside ffmpeg.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel

from ..config import DEFAULT_TIMEOUT_SEC, DesignMode, GifEncodeConfig, GifSettings
from ..core.types import CharacterSequence
from ..utils.subprocess import format_cmd, run_subprocess

FRAMES_INPUT = "0:v"
DESIGN_INPUT = "1:v"
OUTPUT_LABEL = "out"


class FilterStage(BaseModel):
    """One named node in an ffmpeg filter graph."""

    name: str
    filter: str
    options: dict[str, str | int] = {}
    inputs: list[str] = []
    outputs: list[str] = []

    class Config:
        frozen = True

    def render(self) -> str:
        """e.g. "[0:v]scale=w=512:h=512:flags=lanczos[frames]"."""
        head = "".join(f"[{label}]" for label in self.inputs)
        tail = "".join(f"[{label}]" for label in self.outputs)
        body = self.filter
        if self.options:
            body += "=" + ":".join(f"{k}={v}" for k, v in self.options.items())
        return f"{head}{body}{tail}"


class FilterGraph(BaseModel):
    """Ordered filter stages rendered as one -filter_complex string."""

    stages: list[FilterStage]

    def stage(self, name: str) -> FilterStage:
        for s in self.stages:
            if s.name == name:
                return s
        raise KeyError(name)

    @property
    def names(self) -> list[str]:
        return [s.name for s in self.stages]

    def render(self) -> str:
        return ";".join(s.render() for s in self.stages)


class GifCommandBuilder:
    """Builder for the ffmpeg command that assembles one character GIF."""

    @staticmethod
    def build_filter_graph(
        mode: DesignMode,
        size: tuple[int, int],
        crop_rect: tuple[int, int, int, int] | None = None,
        settings: GifSettings | None = None,
    ) -> FilterGraph:
        """Create the stage graph.

        In UNDER mode the design is the base layer and the frames are drawn
        over it; in OVER mode the design is drawn over the frames.
        """
        settings = settings or GifSettings()
        w, h = size
        stages: list[FilterStage] = []

        frames_src = FRAMES_INPUT
        if crop_rect is not None:
            x, y, cw, ch = crop_rect
            stages.append(FilterStage(
                name="crop", filter="crop",
                options={"w": cw, "h": ch, "x": x, "y": y},
                inputs=[frames_src], outputs=["cropped"],
            ))
            frames_src = "cropped"

        scale_opts = {"w": w, "h": h, "flags": settings.scale_flags}
        stages.append(FilterStage(
            name="scale", filter="scale", options=scale_opts,
            inputs=[frames_src], outputs=["frames"],
        ))
        stages.append(FilterStage(
            name="design-scale", filter="scale", options=scale_opts,
            inputs=[DESIGN_INPUT], outputs=["design"],
        ))

        layers = ["design", "frames"] if mode is DesignMode.UNDER else ["frames", "design"]
        stages.append(FilterStage(
            name="overlay-compose", filter="overlay",
            options={"format": "auto", "shortest": 1},
            inputs=layers, outputs=["composed"],
        ))
        stages.append(FilterStage(
            name="palette-split", filter="split",
            inputs=["composed"], outputs=["pa", "pb"],
        ))
        stages.append(FilterStage(
            name="palette-generate", filter="palettegen",
            options={"max_colors": settings.palette_max_colors, "stats_mode": "full"},
            inputs=["pa"], outputs=["palette"],
        ))
        stages.append(FilterStage(
            name="palette-apply", filter="paletteuse",
            options={"dither": settings.dither},
            inputs=["pb", "palette"], outputs=[OUTPUT_LABEL],
        ))
        return FilterGraph(stages=stages)

    @staticmethod
    def build_gif_cmd(config: GifEncodeConfig) -> list[str]:
        """Create the ffmpeg command for one GIF."""
        graph = GifCommandBuilder.build_filter_graph(
            config.design_mode, (config.width, config.height), config.crop_rect, config.gif
        )
        frames_input = str(Path(config.frames_dir) / config.frame_pattern)
        return [
            "ffmpeg",
            "-hide_banner",
            "-loglevel", "error",
            "-nostdin",
            "-y",
            "-framerate", str(config.gif.frame_rate),
            "-start_number", str(config.start_number),
            "-i", frames_input,
            "-loop", "1",
            "-i", config.design_path,
            "-filter_complex", graph.render(),
            "-map", f"[{OUTPUT_LABEL}]",
            "-loop", "0",
            config.out_path,
        ]


def build_encode_config(
    char: CharacterSequence,
    out_path: Path,
    size: tuple[int, int],
    crop_rect: tuple[int, int, int, int] | None = None,
    gif: GifSettings | None = None,
    timeout_sec: int = DEFAULT_TIMEOUT_SEC,
) -> GifEncodeConfig:
    """Describe one character's GIF encode."""
    return GifEncodeConfig(
        frames_dir=char.directory.as_posix(),
        frame_pattern=char.sequence.printf_pattern,
        start_number=char.sequence.min_index,
        design_path=char.design_file.as_posix(),
        design_mode=DesignMode(char.design_mode),
        out_path=out_path.as_posix(),
        width=size[0],
        height=size[1],
        crop_rect=crop_rect,
        timeout_sec=timeout_sec,
        gif=gif or GifSettings(),
    )


def encode_gif_task(config: GifEncodeConfig) -> tuple[bool, str, int | None]:
    """
    Encode one character GIF. Safe to run in a worker thread.
    Returns (success, message, output_size_bytes|None).
    """
    try:
        out = Path(config.out_path)
        out.parent.mkdir(parents=True, exist_ok=True)

        cmd = GifCommandBuilder.build_gif_cmd(config)
        code, stderr = run_subprocess(cmd, log=False, timeout=config.timeout_sec)
        if code != 0:
            return False, f"ffmpeg failed ({code}): {stderr.strip()} | cmd: {format_cmd(cmd)}", None

        size = out.stat().st_size if out.exists() else None
        return True, f"DONE: {out.name} ({size} bytes) | cmd: {format_cmd(cmd)}", size
    except Exception as ex:
        return False, f"Exception: {type(ex).__name__}: {ex}", None
