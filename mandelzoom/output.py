"""Image, video and viewer collaborators for rendered frames."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Union

import imageio.v2 as imageio
import numpy as np
import PIL.Image

from .config import (
    FRAME_DIGITS,
    FRAME_PREFIX,
    FRAMERATE,
    IMAGE_FORMAT,
    PIXEL_FORMAT,
    VIDEO_CODEC,
    VIDEO_EXECUTABLE,
)

PathLike = Union[str, Path]


class VideoAssemblyError(RuntimeError):
    """The external video encoder could not be started."""


@dataclass(frozen=True)
class EncoderResult:
    command: list[str]
    returncode: int
    stdout: str
    stderr: str


def _pil_format_name(ext: str) -> str:
    upper = ext.upper()
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def _normalize_format(image_format: str) -> str:
    return (image_format or IMAGE_FORMAT).lower().lstrip(".") or IMAGE_FORMAT


def save_image(path: PathLike, buffer: np.ndarray, image_format: Optional[str] = None) -> Path:
    """Write an RGB pixel buffer to ``path``; the format defaults to the file extension."""

    path = Path(path)
    image_format = _normalize_format(image_format or path.suffix)
    path.parent.mkdir(parents=True, exist_ok=True)
    image = PIL.Image.fromarray(np.ascontiguousarray(buffer, dtype=np.uint8))
    image.save(str(path), format=_pil_format_name(image_format))
    return path


@dataclass
class FrameWriter:
    """Frame sink persisting each frame as ``{prefix}{frame_id}.{format}`` inside ``directory``."""

    directory: PathLike
    prefix: str = FRAME_PREFIX
    image_format: str = IMAGE_FORMAT
    written: list[Path] = field(default_factory=list, init=False)

    def __post_init__(self) -> None:
        self.directory = Path(self.directory).expanduser()
        self.image_format = _normalize_format(self.image_format)

    def path_for(self, frame_id: str) -> Path:
        return self.directory / f"{self.prefix}{frame_id}.{self.image_format}"

    @property
    def pattern(self) -> str:
        """printf-style input pattern understood by ffmpeg."""

        return str(self.directory / f"{self.prefix}%0{FRAME_DIGITS}d.{self.image_format}")

    def __call__(self, frame_id: str, buffer: np.ndarray) -> Path:
        path = save_image(self.path_for(frame_id), buffer, self.image_format)
        self.written.append(path)
        return path


def build_encoder_command(
    pattern: str,
    output: PathLike,
    *,
    start_number: int = 0,
    framerate: int = FRAMERATE,
    codec: str = VIDEO_CODEC,
    pixel_format: str = PIXEL_FORMAT,
    executable: str = VIDEO_EXECUTABLE,
) -> list[str]:
    return [
        executable,
        "-y",
        "-framerate", str(framerate),
        "-start_number", str(start_number),
        "-i", pattern,
        "-c:v", codec,
        "-pix_fmt", pixel_format,
        str(output),
    ]


def assemble_video(
    pattern: str,
    output: PathLike,
    *,
    start_number: int = 0,
    framerate: int = FRAMERATE,
    codec: str = VIDEO_CODEC,
    pixel_format: str = PIXEL_FORMAT,
    executable: str = VIDEO_EXECUTABLE,
    runner: Callable[..., Any] = subprocess.run,
) -> EncoderResult:
    """Run the external encoder over a numbered frame sequence.

    Only a failure to start the encoder is an error; its exit status is
    returned to the caller unchecked.
    """

    command = build_encoder_command(
        pattern,
        output,
        start_number=start_number,
        framerate=framerate,
        codec=codec,
        pixel_format=pixel_format,
        executable=executable,
    )
    Path(output).expanduser().parent.mkdir(parents=True, exist_ok=True)
    try:
        completed = runner(command, capture_output=True, text=True)
    except OSError as exc:
        raise VideoAssemblyError(f"Failed to execute {executable}: {exc}") from exc

    return EncoderResult(
        command=command,
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )


def assemble_gif(paths: Iterable[PathLike], output: PathLike, *, fps: int = FRAMERATE) -> Path:
    """Collect saved frames into an animated GIF preview."""

    output = Path(output).expanduser()
    output.parent.mkdir(parents=True, exist_ok=True)
    writer = imageio.get_writer(str(output), mode="I", duration=1.0 / fps, loop=0)
    try:
        for path in paths:
            writer.append_data(imageio.imread(str(path)))
    finally:
        writer.close()
    return output


def open_viewer(path: PathLike) -> None:
    """Show an image with the platform viewer Pillow selects."""

    with PIL.Image.open(str(path)) as image:
        image.show()
